"""
Module: salesops_engines.scheduling
Responsibility:
    Maintain a project's per-stage target and actual dates as it moves
    through the configured pipeline, and derive its SLA status.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  "Today" is the explicit
    ``as_of`` parameter; callers (services) read it from the clock.

Invariants enforced:
    - Stage order and "next stage" come only from the supplied stage list.
    - Advancement is one stage at a time and never past the final stage.
    - ``actual_dates`` only gain entries for stages the project has left.
    - Target dates for stages not yet reached are re-chained from the
      actual advancement date on every advance; they are living estimates.

Failure modes:
    None raised.  Unknown stages, missing dates and unparseable timestamps
    degrade to documented defaults (see ``days_in_stage``).

Usage:
    scheduler = StageScheduler()
    project = scheduler.initialize(project, stages, as_of=date(2024, 3, 1))
    project = scheduler.advance(project, stages, as_of=date(2024, 3, 4))
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Sequence

from salesops_config.schema import (
    DEFAULT_AT_RISK_WINDOW_DAYS,
    StageConfig,
    stage_index,
)
from salesops_engines.sla import SLAEvaluator, SLAObservation
from salesops_kernel.domain.dates import add_days, coerce_date, days_between
from salesops_kernel.domain.records import Project
from salesops_kernel.logging_config import get_logger

logger = get_logger("engines.scheduling")


class StageScheduler:
    """
    Target/actual date bookkeeping for projects.

    Contract:
        Every method returns a new ``Project`` (or the input unchanged);
        inputs are never mutated.
    """

    def __init__(
        self,
        evaluator: SLAEvaluator | None = None,
        at_risk_window: int = DEFAULT_AT_RISK_WINDOW_DAYS,
    ):
        self._evaluator = evaluator or SLAEvaluator()
        self._at_risk_window = at_risk_window

    # ------------------------------------------------------------------
    # Elapsed time
    # ------------------------------------------------------------------

    def stage_entry_date(
        self,
        project: Project,
        stages: Sequence[StageConfig],
    ) -> date | None:
        """
        Date the project entered its current stage.

        The actual completion date of the previous stage when recorded,
        otherwise the project's creation date.
        """
        index = stage_index(stages, project.stage)
        if index > 0 and project.actual_dates:
            previous = stages[index - 1].stage_id
            entered = coerce_date(project.actual_dates.get(previous))
            if entered is not None:
                return entered
        return coerce_date(project.created_at)

    def days_in_stage(
        self,
        project: Project,
        stages: Sequence[StageConfig],
        as_of: date,
    ) -> int:
        """Whole days spent in the current stage; 0 for missing or future dates."""
        entered = self.stage_entry_date(project, stages)
        if entered is None:
            return 0
        return max(0, days_between(entered, as_of))

    # ------------------------------------------------------------------
    # SLA
    # ------------------------------------------------------------------

    def observe(
        self,
        project: Project,
        stages: Sequence[StageConfig],
        as_of: date,
    ) -> SLAObservation:
        """Fresh SLA observation for the project's current stage."""
        elapsed = self.days_in_stage(project, stages, as_of)
        status = self._evaluator.evaluate(
            project.stage, elapsed, stages, self._at_risk_window
        )
        return SLAObservation(
            project_id=project.project_id,
            stage_id=project.stage,
            status=status,
            days_in_stage=elapsed,
            target_days=self._evaluator.target_days(project.stage, stages),
        )

    def refresh_sla(
        self,
        project: Project,
        stages: Sequence[StageConfig],
        as_of: date,
    ) -> Project:
        """Recompute ``sla_status`` only."""
        observation = self.observe(project, stages, as_of)
        return replace(project, sla_status=observation.status)

    # ------------------------------------------------------------------
    # Schedule maintenance
    # ------------------------------------------------------------------

    def initialize(
        self,
        project: Project,
        stages: Sequence[StageConfig],
        as_of: date,
    ) -> Project:
        """
        Build the full target-date schedule on first observation.

        Already-initialized projects (both date maps present) only get
        their SLA status refreshed.  Otherwise the schedule is chained from
        the creation date: stages before the current one are backfilled
        with actual = target (there is no historical record), the current
        and later stages get target dates only.
        """
        if project.target_dates is not None and project.actual_dates is not None:
            return self.refresh_sla(project, stages, as_of)

        cursor = coerce_date(project.created_at) or as_of
        current_index = stage_index(stages, project.stage)
        target_dates: dict[str, date] = {}
        actual_dates: dict[str, date] = {}

        for i, stage in enumerate(stages):
            cursor = add_days(cursor, stage.effective_target_days)
            target_dates[stage.stage_id] = cursor
            if i < current_index:
                actual_dates[stage.stage_id] = cursor

        if current_index == -1:
            logger.warning("schedule_stage_not_configured", extra={
                "project_id": project.project_id,
                "stage": project.stage,
            })

        logger.debug("schedule_initialized", extra={
            "project_id": project.project_id,
            "stage": project.stage,
            "backfilled_stages": len(actual_dates),
        })

        updated = replace(
            project,
            target_dates=target_dates,
            actual_dates=actual_dates,
        )
        return self.refresh_sla(updated, stages, as_of)

    def advance(
        self,
        project: Project,
        stages: Sequence[StageConfig],
        as_of: date,
    ) -> Project:
        """
        Move the project to the next configured stage.

        Returns the input unchanged when the project is at the final stage
        or its stage is not in the configuration.  Otherwise records today
        as the actual completion of the current stage, re-chains target
        dates for every later stage starting from today, and refreshes the
        SLA status for the new stage.
        """
        index = stage_index(stages, project.stage)
        if index == -1 or index >= len(stages) - 1:
            logger.info("stage_advance_ignored", extra={
                "project_id": project.project_id,
                "stage": project.stage,
                "reason": "final_stage" if index != -1 else "unknown_stage",
            })
            return project

        actual_dates = dict(project.actual_dates or {})
        actual_dates[project.stage] = as_of

        target_dates = dict(project.target_dates or {})
        cursor = as_of
        for stage in stages[index + 1:]:
            cursor = add_days(cursor, stage.effective_target_days)
            target_dates[stage.stage_id] = cursor

        new_stage = stages[index + 1].stage_id
        updated = replace(
            project,
            stage=new_stage,
            last_updated=as_of,
            target_dates=target_dates,
            actual_dates=actual_dates,
        )
        updated = self.refresh_sla(updated, stages, as_of)

        logger.info("stage_advanced", extra={
            "project_id": project.project_id,
            "from_stage": project.stage,
            "to_stage": new_stage,
            "sla_status": updated.sla_status,
        })
        return updated
