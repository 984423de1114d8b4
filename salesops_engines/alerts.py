"""
Module: salesops_engines.alerts
Responsibility:
    Edge-triggered SLA alerting.  Compares fresh SLA observations with the
    last recorded status per project and decides which projects deserve an
    at-risk or late alert, and what the recorded state becomes.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The recorded state is an
    explicit input and output; persisting it is the caller's job.

Transition rules (previous -> current):
    unchanged                  -> no alert, no state change
    any other -> late          -> late alert, record late
    none/onTrack -> atRisk     -> at-risk alert, record atRisk
    late -> atRisk             -> record atRisk, no alert
    recorded -> onTrack        -> clear record, no alert
    none -> onTrack            -> nothing

Usage:
    result = detect_transitions(observations, previous_state)
    for alert in result.alerts:
        ...
    store.save(tenant_id, result.state)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from salesops_engines.sla import SLAObservation
from salesops_kernel.domain.records import SLAStatus
from salesops_kernel.logging_config import get_logger

logger = get_logger("engines.alerts")


@dataclass(frozen=True)
class SLAAlert:
    """A status transition worth notifying about."""

    project_id: str
    stage_id: str
    status: SLAStatus
    previous_status: SLAStatus | None
    days_in_stage: int
    days_over_target: int


@dataclass(frozen=True)
class AlertPass:
    """Outcome of one detection pass."""

    alerts: tuple[SLAAlert, ...]
    state: dict[str, SLAStatus] = field(default_factory=dict)
    changed: bool = False


def detect_transitions(
    observations: Iterable[SLAObservation],
    previous_state: Mapping[str, SLAStatus],
) -> AlertPass:
    """
    Apply the transition rules to every observation in order.

    Projects without an observation in this pass keep their recorded
    status.  ``previous_state`` is not modified.
    """
    state: dict[str, SLAStatus] = dict(previous_state)
    alerts: list[SLAAlert] = []
    changed = False

    for obs in observations:
        previous = state.get(obs.project_id)
        current = obs.status
        if current == previous:
            continue

        if current is SLAStatus.ON_TRACK:
            if previous is not None:
                del state[obs.project_id]
                changed = True
                logger.debug("sla_alert_cleared", extra={
                    "project_id": obs.project_id,
                    "previous_status": previous,
                })
            continue

        state[obs.project_id] = current
        changed = True

        if current is SLAStatus.AT_RISK and previous is SLAStatus.LATE:
            # Recovery from late is recorded without a new alert.
            continue

        alerts.append(SLAAlert(
            project_id=obs.project_id,
            stage_id=obs.stage_id,
            status=current,
            previous_status=previous,
            days_in_stage=obs.days_in_stage,
            days_over_target=obs.days_over_target,
        ))

    return AlertPass(alerts=tuple(alerts), state=state, changed=changed)
