"""
Tests for the stage scheduler.

Covers:
- Initial schedule construction and backfill of passed stages
- Idempotent initialization
- Advancement: actual date recording, target re-chaining, SLA refresh
- Advancement no-ops at the final stage and for unknown stages
- Days-in-stage derivation from previous-stage actual dates
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from salesops_config.schema import StageConfig
from salesops_engines.scheduling import StageScheduler
from salesops_kernel.domain.records import SLAStatus

TODAY = date(2024, 3, 1)


@pytest.fixture
def scheduler() -> StageScheduler:
    return StageScheduler()


class TestInitialize:
    """First observation builds the whole target-date schedule."""

    def test_chains_targets_from_created_at(self, scheduler, stages, make_project):
        project = make_project(stage="SITE_SURVEY", created_at=date(2024, 2, 1))
        result = scheduler.initialize(project, stages, TODAY)

        assert result.target_dates == {
            "SITE_SURVEY": date(2024, 2, 4),
            "DESIGN": date(2024, 2, 11),
            "PERMITTING": date(2024, 2, 16),
            "INSTALL": date(2024, 3, 1),
            "INSPECTION": date(2024, 3, 8),
            "PTO": date(2024, 3, 18),
        }
        assert result.actual_dates == {}

    def test_backfills_stages_before_current(self, scheduler, stages, make_project):
        project = make_project(stage="PERMITTING", created_at=date(2024, 2, 1))
        result = scheduler.initialize(project, stages, TODAY)

        assert result.actual_dates == {
            "SITE_SURVEY": date(2024, 2, 4),
            "DESIGN": date(2024, 2, 11),
        }
        assert "PERMITTING" not in result.actual_dates

    def test_sets_sla_status(self, scheduler, stages, make_project):
        """PERMITTING entered 2024-02-11 (DESIGN backfill); 19 days > 5."""
        project = make_project(stage="PERMITTING", created_at=date(2024, 2, 1))
        result = scheduler.initialize(project, stages, TODAY)
        assert result.sla_status == SLAStatus.LATE

    def test_created_at_iso_string(self, scheduler, stages, make_project):
        project = make_project(created_at="2024-02-28T09:15:00Z")
        result = scheduler.initialize(project, stages, TODAY)
        assert result.target_dates["SITE_SURVEY"] == date(2024, 3, 2)

    def test_missing_created_at_uses_today(self, scheduler, stages, make_project):
        result = scheduler.initialize(make_project(), stages, TODAY)
        assert result.target_dates["SITE_SURVEY"] == TODAY + timedelta(days=3)
        assert result.sla_status == SLAStatus.ON_TRACK

    def test_is_idempotent(self, scheduler, stages, make_project):
        project = make_project(stage="DESIGN", created_at=date(2024, 2, 20))
        once = scheduler.initialize(project, stages, TODAY)
        twice = scheduler.initialize(once, stages, TODAY)

        assert twice.target_dates == once.target_dates
        assert twice.actual_dates == once.actual_dates
        assert twice.sla_status == once.sla_status

    def test_existing_maps_only_refresh_status(self, scheduler, stages, make_project):
        project = make_project(
            stage="DESIGN",
            created_at=date(2024, 2, 1),
            target_dates={"DESIGN": "2024-01-01"},
            actual_dates={},
        )
        result = scheduler.initialize(project, stages, TODAY)
        assert result.target_dates == {"DESIGN": "2024-01-01"}
        assert result.sla_status == SLAStatus.LATE

    def test_input_not_mutated(self, scheduler, stages, make_project):
        project = make_project(created_at=date(2024, 2, 1))
        scheduler.initialize(project, stages, TODAY)
        assert project.target_dates is None
        assert project.sla_status is None


class TestAdvance:
    """One stage at a time along the configured order."""

    def test_site_survey_to_design(self, scheduler, stages, make_project):
        """Five days into SITE_SURVEY, advancing lands on-track in DESIGN."""
        project = make_project(
            stage="SITE_SURVEY",
            created_at=TODAY - timedelta(days=5),
        )
        project = scheduler.initialize(project, stages, TODAY)
        result = scheduler.advance(project, stages, TODAY)

        assert result.stage == "DESIGN"
        assert result.actual_dates["SITE_SURVEY"] == TODAY
        assert result.target_dates["DESIGN"] == TODAY + timedelta(days=7)
        assert result.target_dates["PERMITTING"] == TODAY + timedelta(days=12)
        assert result.target_dates["PTO"] == TODAY + timedelta(days=43)
        assert result.sla_status == SLAStatus.ON_TRACK
        assert result.last_updated == TODAY

    def test_passed_targets_are_kept(self, scheduler, stages, make_project):
        project = make_project(stage="SITE_SURVEY", created_at=date(2024, 2, 1))
        project = scheduler.initialize(project, stages, TODAY)
        result = scheduler.advance(project, stages, TODAY)
        assert result.target_dates["SITE_SURVEY"] == date(2024, 2, 4)

    def test_final_stage_is_noop(self, scheduler, stages, make_project):
        project = make_project(stage="PTO")
        assert scheduler.advance(project, stages, TODAY) is project

    def test_unknown_stage_is_noop(self, scheduler, stages, make_project):
        project = make_project(stage="DEMOLITION")
        assert scheduler.advance(project, stages, TODAY) is project

    def test_advance_without_initialization(self, scheduler, stages, make_project):
        result = scheduler.advance(make_project(stage="INSTALL"), stages, TODAY)
        assert result.stage == "INSPECTION"
        assert result.actual_dates == {"INSTALL": TODAY}
        assert set(result.target_dates) == {"INSPECTION", "PTO"}

    def test_walks_whole_pipeline(self, scheduler, stages, make_project):
        project = scheduler.initialize(make_project(created_at=TODAY), stages, TODAY)
        visited = [project.stage]
        for _ in range(10):
            project = scheduler.advance(project, stages, TODAY)
            if project.stage == visited[-1]:
                break
            visited.append(project.stage)
        assert visited == [s.stage_id for s in stages]
        assert set(project.actual_dates) == {s.stage_id for s in stages[:-1]}

    def test_custom_pipeline_order(self, scheduler, make_project):
        custom = (
            StageConfig("SALE", "Sale", 0, 2),
            StageConfig("BUILD", "Build", 1, 20),
            StageConfig("DONE", "Done", 2, 1),
        )
        result = scheduler.advance(make_project(stage="SALE"), custom, TODAY)
        assert result.stage == "BUILD"
        assert result.target_dates == {
            "BUILD": TODAY + timedelta(days=20),
            "DONE": TODAY + timedelta(days=21),
        }

    def test_logs_advancement(self, scheduler, stages, make_project, captured_logs):
        scheduler.advance(make_project(stage="DESIGN"), stages, TODAY)
        events = [r for r in captured_logs() if r["message"] == "stage_advanced"]
        assert events
        assert events[0]["from_stage"] == "DESIGN"
        assert events[0]["to_stage"] == "PERMITTING"


class TestDaysInStage:
    """Entry date is the previous stage's actual date, else created_at."""

    def test_uses_previous_actual(self, scheduler, stages, make_project):
        project = make_project(
            stage="DESIGN",
            created_at=date(2024, 1, 1),
            actual_dates={"SITE_SURVEY": date(2024, 2, 25)},
        )
        assert scheduler.days_in_stage(project, stages, TODAY) == 5

    def test_falls_back_to_created_at(self, scheduler, stages, make_project):
        project = make_project(stage="DESIGN", created_at=date(2024, 2, 20))
        assert scheduler.days_in_stage(project, stages, TODAY) == 10

    def test_datetime_created_at(self, scheduler, stages, make_project):
        project = make_project(
            created_at=datetime(2024, 2, 28, 23, 0, tzinfo=timezone.utc),
        )
        assert scheduler.days_in_stage(project, stages, TODAY) == 2

    def test_future_entry_clamps_to_zero(self, scheduler, stages, make_project):
        project = make_project(created_at=date(2025, 1, 1))
        assert scheduler.days_in_stage(project, stages, TODAY) == 0

    def test_garbage_dates(self, scheduler, stages, make_project):
        project = make_project(
            stage="DESIGN",
            created_at="not a date",
            actual_dates={"SITE_SURVEY": "also not"},
        )
        assert scheduler.days_in_stage(project, stages, TODAY) == 0
        assert scheduler.refresh_sla(project, stages, TODAY).sla_status == SLAStatus.ON_TRACK

    def test_observe(self, scheduler, stages, make_project):
        project = make_project(stage="DESIGN", created_at=date(2024, 2, 20))
        obs = scheduler.observe(project, stages, TODAY)
        assert obs.status == SLAStatus.LATE
        assert obs.days_in_stage == 10
        assert obs.days_over_target == 3
