"""
Pipeline configuration schema.

Defines the tenant-scoped, human-authored pipeline description: an ordered
list of stages, each with an optional target duration.  YAML files are
parsed into these types by the loader; engines consume the ``stages`` tuple
as a read-only ordered list.

Stage navigation helpers live here too so that scheduling, SLA evaluation
and forecasting all derive "next stage" and "remaining stages" from the
same supplied configuration and never from a hardcoded list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

# Fallback target duration for stages without a configured duration.
DEFAULT_TARGET_DAYS = 7

# Days before the target date at which a stage counts as at-risk.
DEFAULT_AT_RISK_WINDOW_DAYS = 2


@dataclass(frozen=True)
class StageConfig:
    """One step of the installation pipeline."""

    stage_id: str
    name: str
    order: int
    target_days: int | None = None
    color: str | None = None
    description: str | None = None

    @property
    def effective_target_days(self) -> int:
        """Configured duration, or the 7-day fallback."""
        if self.target_days is None:
            return DEFAULT_TARGET_DAYS
        return self.target_days


@dataclass(frozen=True)
class PipelineConfiguration:
    """
    A tenant's complete pipeline.

    Contract:
        ``stages`` is sorted ascending by ``order`` and stage ids are unique
        (enforced by the loader, see ``loader.build_pipeline``).
    """

    tenant_id: str | None
    stages: tuple[StageConfig, ...]
    at_risk_window_days: int = DEFAULT_AT_RISK_WINDOW_DAYS
    checksum: str = ""
    source: str = "default"

    @property
    def stage_ids(self) -> tuple[str, ...]:
        return stage_ids(self.stages)


# ---------------------------------------------------------------------------
# Navigation over an ordered stage list
# ---------------------------------------------------------------------------


def stage_ids(stages: Sequence[StageConfig]) -> tuple[str, ...]:
    return tuple(s.stage_id for s in stages)


def stage_index(stages: Sequence[StageConfig], stage_id: str) -> int:
    """0-based position of ``stage_id``; -1 if not configured."""
    for i, stage in enumerate(stages):
        if stage.stage_id == stage_id:
            return i
    return -1


def get_stage(stages: Sequence[StageConfig], stage_id: str) -> StageConfig | None:
    index = stage_index(stages, stage_id)
    return stages[index] if index >= 0 else None


def next_stage(stages: Sequence[StageConfig], stage_id: str) -> StageConfig | None:
    """Stage following ``stage_id``; None at the final or an unknown stage."""
    index = stage_index(stages, stage_id)
    if index == -1 or index >= len(stages) - 1:
        return None
    return stages[index + 1]


def is_final_stage(stages: Sequence[StageConfig], stage_id: str) -> bool:
    return bool(stages) and stages[-1].stage_id == stage_id


def target_days_for(stages: Sequence[StageConfig], stage_id: str) -> int:
    """Configured target duration for ``stage_id`` with the 7-day fallback."""
    stage = get_stage(stages, stage_id)
    if stage is None:
        return DEFAULT_TARGET_DAYS
    return stage.effective_target_days


def stage_display_name(stages: Sequence[StageConfig], stage_id: str) -> str:
    stage = get_stage(stages, stage_id)
    return stage.name if stage is not None else stage_id


def total_pipeline_days(stages: Sequence[StageConfig]) -> int:
    """Sum of every stage's target duration, end to end."""
    return sum(s.effective_target_days for s in stages)
