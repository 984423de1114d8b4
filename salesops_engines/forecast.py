"""
Module: salesops_engines.forecast
Responsibility:
    Probability-weighted 30/60/90-day commission revenue forecast over a
    snapshot of leads, projects and commissions, with expected installs, a
    0-100 confidence score and stage/rep/priority breakdowns.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Callers pass snapshots and
    the tenant's stage configuration; nothing is read from storage.

Invariants enforced:
    - All money arithmetic is Decimal; rounding (half-up) happens once, on
      the final totals.
    - Bucket monotonicity: an item counted in a horizon is counted in every
      longer horizon, so revenue_30 <= revenue_60 <= revenue_90.
    - CLOSED_LOST leads and terminal-stage projects contribute nothing.
    - Confidence is in [0, 100] and is 0 when there are no leads and no
      projects.
    - Never raises for missing or malformed record fields.

Usage:
    from salesops_engines.forecast import compute_forecast

    result = compute_forecast(leads, projects, commissions, stages)
    result.revenue_30, result.confidence
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Sequence

from salesops_config.schema import (
    DEFAULT_TARGET_DAYS,
    StageConfig,
    is_final_stage,
    stage_index,
)
from salesops_engines.tracer import traced_engine
from salesops_kernel.domain.records import (
    Commission,
    CommissionStatus,
    Lead,
    LeadPriority,
    LeadStatus,
    Project,
    SLAStatus,
    enum_value,
)
from salesops_kernel.logging_config import get_logger

logger = get_logger("engines.forecast")

FORECAST_HORIZONS: tuple[int, ...] = (30, 60, 90)

COMMISSION_RATE = Decimal("0.06")
PRICE_PER_WATT = Decimal("3.0")
DEFAULT_SYSTEM_KW = Decimal("8")

LEAD_STATUS_PROBABILITY: dict[str, Decimal] = {
    LeadStatus.NEW.value: Decimal("0.10"),
    LeadStatus.QUALIFIED.value: Decimal("0.25"),
    LeadStatus.PROPOSAL_SENT.value: Decimal("0.45"),
    LeadStatus.CLOSED_WON.value: Decimal("0.95"),
}

LEAD_CONVERSION_DAYS: dict[str, int] = {
    LeadStatus.NEW.value: 45,
    LeadStatus.QUALIFIED.value: 30,
    LeadStatus.PROPOSAL_SENT.value: 14,
    LeadStatus.CLOSED_WON.value: 0,
}
UNKNOWN_STATUS_CONVERSION_DAYS = 30

PRIORITY_MULTIPLIER: dict[str, Decimal] = {
    LeadPriority.HIGH.value: Decimal("0.7"),
    LeadPriority.MEDIUM.value: Decimal("1.0"),
    LeadPriority.LOW.value: Decimal("1.3"),
}
DEFAULT_PRIORITY = LeadPriority.MEDIUM.value

STAGE_PROBABILITY: dict[str, Decimal] = {
    "SITE_SURVEY": Decimal("0.90"),
    "DESIGN": Decimal("0.92"),
    "PERMITTING": Decimal("0.95"),
    "INSTALL": Decimal("1.0"),
    "INSPECTION": Decimal("1.0"),
    "PTO": Decimal("1.0"),
}
DEFAULT_STAGE_PROBABILITY = Decimal("0.9")

SLA_PENALTY_DAYS: dict[str, int] = {
    SLAStatus.ON_TRACK.value: 0,
    SLAStatus.AT_RISK.value: 4,
    SLAStatus.LATE.value: 10,
}

# Projects finishing inside this many days count toward expected installs
# even when they miss the 30-day bucket.
INSTALL_HORIZON_DAYS = 45

UNASSIGNED_REP = "Unassigned"

_PENDING_COMMISSION_STATUSES = frozenset(
    {CommissionStatus.PENDING.value.upper(), CommissionStatus.APPROVED.value.upper()}
)


# =============================================================================
# Result types
# =============================================================================


@dataclass(frozen=True)
class ForecastBreakdown:
    """
    Rounded expected revenue of every counted item, grouped three ways.

    ``by_stage`` holds lead statuses and project stage ids in one map.
    """

    by_stage: dict[str, int] = field(default_factory=dict)
    by_rep: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ForecastResult:
    """Commission revenue forecast for one snapshot."""

    revenue_30: int
    revenue_60: int
    revenue_90: int
    expected_commissions: int
    expected_installs: int
    confidence: int
    breakdown: ForecastBreakdown

    @property
    def confidence_label(self) -> str:
        return confidence_label(self.confidence)


# =============================================================================
# Helpers
# =============================================================================


def to_decimal(value: Any) -> Decimal:
    """Best-effort Decimal; None, NaN, infinities and garbage become 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    if isinstance(value, float):
        if not math.isfinite(value):
            return Decimal("0")
        return Decimal(str(value))
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _score(lead: Lead) -> Decimal | None:
    if lead.score is None or isinstance(lead.score, bool):
        return None
    try:
        score = Decimal(str(lead.score))
    except (InvalidOperation, ValueError):
        return None
    return score if score.is_finite() else None


def _priority_key(lead: Lead) -> str:
    priority = enum_value(lead.priority)
    return str(priority) if priority else DEFAULT_PRIORITY


def confidence_label(confidence: int | float) -> str:
    """High (>= 80), Medium (>= 50) or Low."""
    if confidence >= 80:
        return "High"
    if confidence >= 50:
        return "Medium"
    return "Low"


class _Buckets:
    """Running Decimal totals per horizon plus breakdown maps."""

    def __init__(self) -> None:
        self.totals: dict[int, Decimal] = {h: Decimal("0") for h in FORECAST_HORIZONS}
        self.by_stage: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        self.by_rep: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        self.by_priority: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))

    def add(self, amount: Decimal, days: int) -> None:
        """Add to every horizon >= days."""
        for horizon in FORECAST_HORIZONS:
            if days <= horizon:
                self.totals[horizon] += amount


# =============================================================================
# Engine
# =============================================================================


class RevenueForecastEngine:
    """
    Stateless forecast calculator.

    Contract:
        ``compute`` is deterministic over its inputs.  Stage durations and
        the terminal stage come from the supplied stage list.
    """

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    def lead_expected_revenue(self, lead: Lead) -> Decimal:
        """Expected commission from a lead (unrounded)."""
        status = str(enum_value(lead.status))
        probability = LEAD_STATUS_PROBABILITY.get(status, Decimal("0"))
        score = _score(lead)
        if score is not None and score >= 80:
            boost = Decimal("1.15")
        elif score is not None and score >= 60:
            boost = Decimal("1.05")
        else:
            boost = Decimal("1.0")
        return to_decimal(lead.estimated_bill) * COMMISSION_RATE * probability * boost

    def lead_conversion_days(self, lead: Lead) -> int:
        status = str(enum_value(lead.status))
        base = LEAD_CONVERSION_DAYS.get(status, UNKNOWN_STATUS_CONVERSION_DAYS)
        multiplier = PRIORITY_MULTIPLIER.get(_priority_key(lead), Decimal("1.0"))
        return round_half_up(Decimal(base) * multiplier)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def project_expected_revenue(self, project: Project) -> Decimal:
        kw = to_decimal(project.kw)
        if kw <= 0:
            kw = DEFAULT_SYSTEM_KW
        probability = STAGE_PROBABILITY.get(
            str(project.stage), DEFAULT_STAGE_PROBABILITY
        )
        return kw * 1000 * PRICE_PER_WATT * COMMISSION_RATE * probability

    def project_completion_days(
        self,
        project: Project,
        stages: Sequence[StageConfig],
    ) -> int:
        """
        Days remaining through the terminal stage plus the SLA penalty.

        Sums the configured durations of the current stage and every later
        stage.  A stage missing from the configuration counts as one 7-day
        stage.
        """
        index = stage_index(stages, project.stage)
        if index == -1:
            remaining = DEFAULT_TARGET_DAYS
        else:
            remaining = sum(s.effective_target_days for s in stages[index:])
        status = enum_value(project.sla_status) or SLAStatus.ON_TRACK.value
        return remaining + SLA_PENALTY_DAYS.get(str(status), 0)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def expected_commissions(self, commissions: Sequence[Commission]) -> Decimal:
        """Sum of pending and approved commission amounts."""
        total = Decimal("0")
        for commission in commissions:
            status = str(enum_value(commission.status) or "").upper()
            if status in _PENDING_COMMISSION_STATUSES:
                total += to_decimal(commission.amount_usd)
        return total

    def confidence(
        self,
        leads: Sequence[Lead],
        projects: Sequence[Project],
    ) -> int:
        """
        Heuristic data-quality score in [0, 100].

        Base 50, plus up to 20 for the project-to-lead ratio, plus 10 each
        scaled by the high-priority share and the well-scored (>= 70) share
        of leads, plus 10 scaled by the on-track share of projects, minus 15
        scaled by the at-risk-or-late share.
        """
        if not leads and not projects:
            return 0

        lead_count = len(leads)
        project_count = len(projects)
        lead_denominator = Decimal(max(lead_count, 1))

        points = Decimal("50")
        points += min(
            Decimal("20"),
            Decimal(project_count) / lead_denominator * 20,
        )

        if lead_count:
            high = sum(
                1 for lead in leads
                if _priority_key(lead) == LeadPriority.HIGH.value
            )
            scored = sum(
                1 for lead in leads
                if (_score(lead) or Decimal("0")) >= 70
            )
            points += Decimal(high) / Decimal(lead_count) * 10
            points += Decimal(scored) / Decimal(lead_count) * 10

        if project_count:
            on_track = 0
            troubled = 0
            for project in projects:
                status = enum_value(project.sla_status) or SLAStatus.ON_TRACK.value
                if status == SLAStatus.ON_TRACK.value:
                    on_track += 1
                elif status in (SLAStatus.AT_RISK.value, SLAStatus.LATE.value):
                    troubled += 1
            points += Decimal(on_track) / Decimal(project_count) * 10
            points -= Decimal(troubled) / Decimal(project_count) * 15

        points = max(Decimal("0"), min(Decimal("100"), points))
        return round_half_up(points)

    @traced_engine(
        "revenue_forecast", "1.0",
        fingerprint_fields=("leads", "projects", "commissions"),
    )
    def compute(
        self,
        *,
        leads: Sequence[Lead],
        projects: Sequence[Project],
        commissions: Sequence[Commission],
        stages: Sequence[StageConfig],
    ) -> ForecastResult:
        """
        Full forecast over one snapshot.

        Postconditions:
            revenue_30 <= revenue_60 <= revenue_90; all values are integers.
        """
        buckets = _Buckets()
        lead_status_keys: set[str] = set()
        expected_installs = 0
        skipped_leads = 0
        skipped_projects = 0

        for lead in leads:
            status = str(enum_value(lead.status))
            if status == LeadStatus.CLOSED_LOST.value:
                skipped_leads += 1
                continue
            amount = self.lead_expected_revenue(lead)
            buckets.add(amount, self.lead_conversion_days(lead))
            lead_status_keys.add(status)
            buckets.by_stage[status] += amount
            buckets.by_rep[lead.assigned_to or UNASSIGNED_REP] += amount
            buckets.by_priority[_priority_key(lead)] += amount

        warned: set[str] = set()
        for project in projects:
            if stages and is_final_stage(stages, project.stage):
                skipped_projects += 1
                continue
            amount = self.project_expected_revenue(project)
            days = self.project_completion_days(project, stages)
            if days <= FORECAST_HORIZONS[0]:
                expected_installs += 1
            elif days <= INSTALL_HORIZON_DAYS:
                expected_installs += 1
            buckets.add(amount, days)
            key = str(project.stage)
            if key in lead_status_keys and key not in warned:
                warned.add(key)
                logger.warning("forecast_breakdown_key_collision", extra={
                    "key": key,
                })
            buckets.by_stage[key] += amount

        result = ForecastResult(
            revenue_30=round_half_up(buckets.totals[30]),
            revenue_60=round_half_up(buckets.totals[60]),
            revenue_90=round_half_up(buckets.totals[90]),
            expected_commissions=round_half_up(self.expected_commissions(commissions)),
            expected_installs=expected_installs,
            confidence=self.confidence(leads, projects),
            breakdown=ForecastBreakdown(
                by_stage={k: round_half_up(v) for k, v in buckets.by_stage.items()},
                by_rep={k: round_half_up(v) for k, v in buckets.by_rep.items()},
                by_priority={k: round_half_up(v) for k, v in buckets.by_priority.items()},
            ),
        )

        logger.info("revenue_forecast_computed", extra={
            "lead_count": len(leads),
            "project_count": len(projects),
            "skipped_leads": skipped_leads,
            "skipped_projects": skipped_projects,
            "revenue_30": result.revenue_30,
            "revenue_60": result.revenue_60,
            "revenue_90": result.revenue_90,
            "expected_installs": result.expected_installs,
            "confidence": result.confidence,
        })
        return result


def compute_forecast(
    leads: Sequence[Lead],
    projects: Sequence[Project],
    commissions: Sequence[Commission],
    stages: Sequence[StageConfig] | None = None,
) -> ForecastResult:
    """Module-level convenience; ``stages`` defaults to the packaged pipeline."""
    if stages is None:
        from salesops_config.loader import load_default_pipeline

        stages = load_default_pipeline().stages
    return RevenueForecastEngine().compute(
        leads=list(leads),
        projects=list(projects),
        commissions=list(commissions),
        stages=tuple(stages),
    )
