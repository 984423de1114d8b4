"""
salesops_services.alerting -- SLA alert pass orchestration.

Responsibility:
    Runs one SLA pass for a tenant: refreshes every project's SLA status,
    detects status transitions against the recorded alert state, delivers
    one notification per transition and records the new state.

Architecture position:
    Services -- stateful orchestration over the pure scheduling and alert
    engines, an ``AlertStateStore`` and a ``NotificationSink``.

Invariants enforced:
    - Edge-triggered: a project that stays at-risk or late across passes is
      notified once per transition, not once per pass.
    - The load -> compare -> save -> deliver cycle for a tenant runs under
      a per-tenant lock, so concurrent passes cannot double-notify.
    - State is recorded before delivery: a pass whose save fails delivers
      nothing, and the next pass detects the same transitions again.

Failure modes:
    - AlertStateError from the state store propagates before any
      notification of that pass is delivered.
    - A sink failure after a successful save loses the remaining
      notifications of that pass (at-most-once delivery).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date
from typing import Sequence

from salesops_config.schema import DEFAULT_AT_RISK_WINDOW_DAYS, StageConfig
from salesops_engines.alerts import SLAAlert, detect_transitions
from salesops_engines.scheduling import StageScheduler
from salesops_engines.sla import SLAEvaluator
from salesops_kernel.domain.clock import Clock, SystemClock
from salesops_kernel.domain.records import Notification, Project
from salesops_kernel.logging_config import get_logger
from salesops_services.alert_state import AlertStateStore, InMemoryAlertStateStore
from salesops_services.notifications import (
    InMemoryNotificationSink,
    NotificationSink,
    notification_for_alert,
)

logger = get_logger("services.alerting")


@dataclass(frozen=True)
class SLAPassResult:
    """Refreshed projects plus what the pass emitted."""

    projects: tuple[Project, ...]
    alerts: tuple[SLAAlert, ...]
    notifications: tuple[Notification, ...]


class SLAAlertService:
    """
    Edge-triggered SLA alerting for all tenants.

    Contract:
        ``run_pass`` never raises for bad project data; only state-store
        failures propagate.
    """

    def __init__(
        self,
        state_store: AlertStateStore | None = None,
        sink: NotificationSink | None = None,
        clock: Clock | None = None,
        evaluator: SLAEvaluator | None = None,
    ):
        self._state_store = state_store or InMemoryAlertStateStore()
        self._sink = sink or InMemoryNotificationSink()
        self._clock = clock or SystemClock()
        self._evaluator = evaluator or SLAEvaluator()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    @property
    def state_store(self) -> AlertStateStore:
        return self._state_store

    def _lock_for(self, tenant_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(tenant_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[tenant_id] = lock
            return lock

    def run_pass(
        self,
        tenant_id: str,
        projects: Sequence[Project],
        stages: Sequence[StageConfig],
        as_of: date | None = None,
        at_risk_window: int = DEFAULT_AT_RISK_WINDOW_DAYS,
    ) -> SLAPassResult:
        """
        Refresh SLA status for ``projects`` and notify on transitions.

        ``as_of`` defaults to the clock's current UTC date.
        """
        today = as_of or self._clock.today()
        scheduler = StageScheduler(self._evaluator, at_risk_window)

        observations = [scheduler.observe(p, stages, today) for p in projects]
        refreshed = tuple(
            replace(p, sla_status=obs.status)
            for p, obs in zip(projects, observations)
        )

        with self._lock_for(tenant_id):
            previous = self._state_store.load(tenant_id)
            outcome = detect_transitions(observations, previous)

            if outcome.changed:
                self._state_store.save(tenant_id, outcome.state)

            created_at = self._clock.now_utc()
            notifications = tuple(
                notification_for_alert(alert, tenant_id, created_at)
                for alert in outcome.alerts
            )
            for notification in notifications:
                self._sink.deliver(notification)

        logger.info("sla_pass_completed", extra={
            "tenant_id": tenant_id,
            "as_of": today,
            "project_count": len(projects),
            "alert_count": len(outcome.alerts),
            "tracked_projects": len(outcome.state),
        })
        return SLAPassResult(
            projects=refreshed,
            alerts=outcome.alerts,
            notifications=notifications,
        )
