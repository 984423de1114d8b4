"""
Module: salesops_engines.sla
Responsibility:
    Classify a project's timeliness in its current stage as onTrack, atRisk
    or late by comparing days elapsed in the stage with the stage's
    configured target duration.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Totality: ``evaluate`` returns a status for every input and never
      raises.  SLA computation must never block pipeline advancement.
    - Missing stage or missing target duration -> 7-day target.
    - Negative, missing or non-numeric elapsed days -> 0 elapsed days.

Algorithm:
    remaining = target - days_elapsed
    remaining < 0                       -> late
    0 <= remaining <= at_risk_window    -> atRisk   (window defaults to 2)
    remaining > at_risk_window          -> onTrack

Usage:
    from salesops_engines.sla import SLAEvaluator

    evaluator = SLAEvaluator()
    evaluator.evaluate("DESIGN", 5, stages)   # SLAStatus.AT_RISK (7 - 5 = 2)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from salesops_config.schema import (
    DEFAULT_AT_RISK_WINDOW_DAYS,
    StageConfig,
    target_days_for,
)
from salesops_kernel.domain.records import SLAStatus
from salesops_kernel.logging_config import get_logger

logger = get_logger("engines.sla")


def coerce_elapsed_days(value: Any) -> float:
    """Elapsed days as a non-negative number; bad input becomes 0."""
    try:
        days = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if math.isnan(days) or days < 0:
        return 0
    return days


def normalize_status(value: Any) -> SLAStatus | None:
    """Map a stored status (enum or raw string) to ``SLAStatus``; unknown -> None."""
    if isinstance(value, SLAStatus):
        return value
    try:
        return SLAStatus(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class SLAObservation:
    """Freshly computed SLA state of one project at one point in time."""

    project_id: str
    stage_id: str
    status: SLAStatus
    days_in_stage: int
    target_days: int

    @property
    def days_over_target(self) -> int:
        return max(0, self.days_in_stage - self.target_days)


@dataclass(frozen=True)
class SLAHealth:
    """Aggregate SLA health over a set of stage observations."""

    score: int
    status: SLAStatus
    late_count: int
    at_risk_count: int


class SLAEvaluator:
    """
    Pure SLA classification.

    Contract:
        Stages are passed in; the evaluator holds no configuration and no
        clock.  All methods are total over their input domain.
    """

    def target_days(self, stage_id: Any, stages: Sequence[StageConfig]) -> int:
        return target_days_for(stages, stage_id)

    def evaluate(
        self,
        stage_id: Any,
        days_elapsed_in_stage: Any,
        stages: Sequence[StageConfig],
        at_risk_window: int = DEFAULT_AT_RISK_WINDOW_DAYS,
    ) -> SLAStatus:
        """
        Classify elapsed time in ``stage_id`` against its target.

        Postconditions:
            Returns exactly one ``SLAStatus``; never raises.
        """
        target = self.target_days(stage_id, stages)
        elapsed = coerce_elapsed_days(days_elapsed_in_stage)
        remaining = target - elapsed

        if remaining < 0:
            status = SLAStatus.LATE
        elif remaining <= at_risk_window:
            status = SLAStatus.AT_RISK
        else:
            status = SLAStatus.ON_TRACK

        logger.debug("sla_evaluated", extra={
            "stage_id": str(stage_id),
            "target_days": target,
            "days_elapsed": elapsed,
            "sla_status": status.value,
        })
        return status

    def days_until_late(
        self,
        stage_id: Any,
        days_elapsed_in_stage: Any,
        stages: Sequence[StageConfig],
    ) -> int:
        """Whole days left before the stage target is missed (0 once late)."""
        target = self.target_days(stage_id, stages)
        elapsed = coerce_elapsed_days(days_elapsed_in_stage)
        return max(0, math.floor(target - elapsed))

    def days_until_risk(
        self,
        stage_id: Any,
        days_elapsed_in_stage: Any,
        stages: Sequence[StageConfig],
        at_risk_window: int = DEFAULT_AT_RISK_WINDOW_DAYS,
    ) -> int:
        """Whole days left before the stage enters the at-risk window."""
        target = self.target_days(stage_id, stages)
        elapsed = coerce_elapsed_days(days_elapsed_in_stage)
        return max(0, math.floor(target - at_risk_window - elapsed))

    def pipeline_health(self, statuses: Iterable[SLAStatus]) -> SLAHealth:
        """
        Roll up stage statuses into a 0-100 health score.

        Each late stage costs 30 points and each at-risk stage 10.  The
        aggregate status is the worst status seen.
        """
        late_count = 0
        at_risk_count = 0
        for status in statuses:
            if status is SLAStatus.LATE:
                late_count += 1
            elif status is SLAStatus.AT_RISK:
                at_risk_count += 1

        score = max(0, 100 - late_count * 30 - at_risk_count * 10)
        if late_count:
            overall = SLAStatus.LATE
        elif at_risk_count:
            overall = SLAStatus.AT_RISK
        else:
            overall = SLAStatus.ON_TRACK

        return SLAHealth(
            score=score,
            status=overall,
            late_count=late_count,
            at_risk_count=at_risk_count,
        )
