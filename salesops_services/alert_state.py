"""
salesops_services.alert_state -- Stores for the last-alerted SLA status.

Responsibility:
    Persist, per tenant, the SLA status each project was last evaluated
    against so that alerting is edge-triggered.  Only non-healthy statuses
    are stored; a project back on track has no record.

Implementations:
    InMemoryAlertStateStore   -- process-local, for tests and single workers.
    SqlAlchemyAlertStateStore -- ``sla_alert_states`` table; survives
                                 restarts and is shared across workers.

Failure modes:
    SqlAlchemyAlertStateStore wraps database errors in ``AlertStateError``
    after the transaction has been rolled back.
"""

from __future__ import annotations

import threading
from typing import Mapping, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from salesops_engines.sla import normalize_status
from salesops_kernel.db.engine import session_scope
from salesops_kernel.domain.records import SLAStatus
from salesops_kernel.exceptions import AlertStateError
from salesops_kernel.logging_config import get_logger
from salesops_kernel.models.sla_alert_state import SLAAlertState

logger = get_logger("services.alert_state")


class AlertStateStore(Protocol):
    """Load and replace one tenant's project -> status map."""

    def load(self, tenant_id: str) -> dict[str, SLAStatus]: ...

    def save(self, tenant_id: str, state: Mapping[str, SLAStatus]) -> None: ...


class InMemoryAlertStateStore:
    """Dictionary-backed store."""

    def __init__(self) -> None:
        self._state: dict[str, dict[str, SLAStatus]] = {}
        self._lock = threading.Lock()

    def load(self, tenant_id: str) -> dict[str, SLAStatus]:
        with self._lock:
            return dict(self._state.get(tenant_id, {}))

    def save(self, tenant_id: str, state: Mapping[str, SLAStatus]) -> None:
        with self._lock:
            self._state[tenant_id] = {
                pid: status for pid, status in state.items()
                if status is not SLAStatus.ON_TRACK
            }


class SqlAlchemyAlertStateStore:
    """
    Database-backed store over ``SLAAlertState`` rows.

    ``save`` rewrites the tenant's rows to match ``state`` in a single
    transaction: rows for projects no longer present are deleted, changed
    statuses are updated and new projects are inserted.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory

    def load(self, tenant_id: str) -> dict[str, SLAStatus]:
        try:
            with session_scope(self._session_factory) as session:
                rows = session.execute(
                    select(SLAAlertState.project_id, SLAAlertState.status)
                    .where(SLAAlertState.tenant_id == tenant_id)
                ).all()
        except SQLAlchemyError as exc:
            raise AlertStateError(tenant_id, str(exc)) from exc

        state: dict[str, SLAStatus] = {}
        for project_id, raw_status in rows:
            status = normalize_status(raw_status)
            if status is None:
                logger.warning("alert_state_unknown_status", extra={
                    "tenant_id": tenant_id,
                    "project_id": project_id,
                    "status": raw_status,
                })
                continue
            state[project_id] = status
        return state

    def save(self, tenant_id: str, state: Mapping[str, SLAStatus]) -> None:
        wanted = {
            pid: SLAStatus(status).value for pid, status in state.items()
            if SLAStatus(status) is not SLAStatus.ON_TRACK
        }
        try:
            with session_scope(self._session_factory) as session:
                existing = {
                    row.project_id: row
                    for row in session.scalars(
                        select(SLAAlertState)
                        .where(SLAAlertState.tenant_id == tenant_id)
                    )
                }

                stale = [pid for pid in existing if pid not in wanted]
                if stale:
                    session.execute(
                        delete(SLAAlertState)
                        .where(SLAAlertState.tenant_id == tenant_id)
                        .where(SLAAlertState.project_id.in_(stale))
                    )

                for project_id, status in wanted.items():
                    row = existing.get(project_id)
                    if row is None:
                        session.add(SLAAlertState(
                            tenant_id=tenant_id,
                            project_id=project_id,
                            status=status,
                        ))
                    elif row.status != status:
                        row.status = status
        except SQLAlchemyError as exc:
            raise AlertStateError(tenant_id, str(exc)) from exc

        logger.debug("alert_state_saved", extra={
            "tenant_id": tenant_id,
            "tracked_projects": len(wanted),
        })
