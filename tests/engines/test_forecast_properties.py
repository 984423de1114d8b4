"""
Property tests for the forecast and SLA engines.

Uses Hypothesis to generate arbitrary snapshots and checks:
- Bucket monotonicity (30 <= 60 <= 90)
- CLOSED_LOST leads never change the forecast
- Confidence bounds, and 0 for empty snapshots
- SLA evaluation is total over wide elapsed-day ranges and arbitrary ids
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from salesops_config import load_default_pipeline
from salesops_engines.forecast import compute_forecast
from salesops_engines.sla import SLAEvaluator
from salesops_kernel.domain.records import (
    Lead,
    LeadPriority,
    LeadStatus,
    Project,
    SLAStatus,
)

STAGES = load_default_pipeline().stages

lead_statuses = st.sampled_from(list(LeadStatus) + ["ON_HOLD"])
priorities = st.sampled_from([None, *LeadPriority])
sla_statuses = st.sampled_from([None, *SLAStatus])
stage_ids = st.sampled_from([s.stage_id for s in STAGES] + ["UNKNOWN"])
amounts = st.one_of(
    st.none(),
    st.integers(min_value=0, max_value=5000),
    st.decimals(min_value=0, max_value=5000, places=2, allow_nan=False),
)


@st.composite
def leads(draw, status=lead_statuses):
    return Lead(
        lead_id=draw(st.uuids()).hex,
        status=draw(status),
        estimated_bill=draw(amounts),
        priority=draw(priorities),
        score=draw(st.one_of(st.none(), st.integers(min_value=0, max_value=100))),
        assigned_to=draw(st.sampled_from([None, "ana", "ben"])),
    )


@st.composite
def projects(draw):
    return Project(
        project_id=draw(st.uuids()).hex,
        lead_id="lead",
        stage=draw(stage_ids),
        kw=draw(st.one_of(st.none(), st.decimals(min_value=0, max_value=50, places=1))),
        sla_status=draw(sla_statuses),
    )


class TestForecastProperties:

    @settings(max_examples=100, deadline=None)
    @given(st.lists(leads(), max_size=15), st.lists(projects(), max_size=15))
    def test_buckets_are_monotonic(self, lead_list, project_list):
        result = compute_forecast(lead_list, project_list, [], STAGES)
        assert 0 <= result.revenue_30 <= result.revenue_60 <= result.revenue_90

    @settings(max_examples=100, deadline=None)
    @given(
        st.lists(leads(), max_size=10),
        st.lists(leads(status=st.just(LeadStatus.CLOSED_LOST)), min_size=1, max_size=5),
    )
    def test_closed_lost_leads_do_not_contribute(self, lead_list, lost):
        base = compute_forecast(lead_list, [], [], STAGES)
        with_lost = compute_forecast(lead_list + lost, [], [], STAGES)
        assert with_lost.revenue_30 == base.revenue_30
        assert with_lost.revenue_60 == base.revenue_60
        assert with_lost.revenue_90 == base.revenue_90
        assert with_lost.breakdown.by_stage == base.breakdown.by_stage

    @settings(max_examples=100, deadline=None)
    @given(st.lists(leads(), max_size=15), st.lists(projects(), max_size=15))
    def test_confidence_bounds(self, lead_list, project_list):
        confidence = compute_forecast(lead_list, project_list, [], STAGES).confidence
        assert 0 <= confidence <= 100
        if not lead_list and not project_list:
            assert confidence == 0

    @settings(max_examples=50, deadline=None)
    @given(st.lists(projects(), max_size=10))
    def test_expected_installs_bounded_by_projects(self, project_list):
        result = compute_forecast([], project_list, [], STAGES)
        assert 0 <= result.expected_installs <= len(project_list)


class TestSLATotality:

    @given(
        st.one_of(st.sampled_from([s.stage_id for s in STAGES]), st.text(max_size=12)),
        st.integers(min_value=-1000, max_value=1000),
    )
    def test_evaluate_always_returns_a_status(self, stage_id, days):
        status = SLAEvaluator().evaluate(stage_id, days, STAGES)
        assert status in (SLAStatus.ON_TRACK, SLAStatus.AT_RISK, SLAStatus.LATE)

    @given(st.floats(allow_nan=True, allow_infinity=True))
    def test_evaluate_tolerates_any_float(self, days):
        assert isinstance(SLAEvaluator().evaluate("DESIGN", days, STAGES), SLAStatus)

    @given(st.integers(min_value=0, max_value=200))
    def test_status_worsens_with_time(self, days):
        order = {SLAStatus.ON_TRACK: 0, SLAStatus.AT_RISK: 1, SLAStatus.LATE: 2}
        evaluator = SLAEvaluator()
        now = evaluator.evaluate("INSTALL", days, STAGES)
        later = evaluator.evaluate("INSTALL", days + 1, STAGES)
        assert order[later] >= order[now]


def test_decimal_amounts_accepted():
    lead = Lead("l1", LeadStatus.QUALIFIED, estimated_bill=Decimal("200.00"))
    assert compute_forecast([lead], [], [], STAGES).revenue_30 == 3
