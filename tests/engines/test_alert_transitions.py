"""
Tests for edge-triggered SLA alert detection.

Covers every transition rule and the multi-pass sequence
onTrack -> atRisk -> late -> late -> onTrack emitting exactly two alerts.
"""

import pytest

from salesops_engines.alerts import detect_transitions
from salesops_engines.sla import SLAObservation
from salesops_kernel.domain.records import SLAStatus

ON_TRACK = SLAStatus.ON_TRACK
AT_RISK = SLAStatus.AT_RISK
LATE = SLAStatus.LATE


def _obs(status, project_id="p1", days=5, target=7):
    return SLAObservation(
        project_id=project_id,
        stage_id="DESIGN",
        status=status,
        days_in_stage=days,
        target_days=target,
    )


class TestTransitionRules:

    @pytest.mark.parametrize("previous,current,alerted,recorded", [
        (None, ON_TRACK, None, None),
        (None, AT_RISK, AT_RISK, AT_RISK),
        (None, LATE, LATE, LATE),
        (AT_RISK, AT_RISK, None, AT_RISK),
        (AT_RISK, LATE, LATE, LATE),
        (AT_RISK, ON_TRACK, None, None),
        (LATE, LATE, None, LATE),
        (LATE, AT_RISK, None, AT_RISK),
        (LATE, ON_TRACK, None, None),
    ])
    def test_rule(self, previous, current, alerted, recorded):
        state = {} if previous is None else {"p1": previous}
        outcome = detect_transitions([_obs(current)], state)

        if alerted is None:
            assert outcome.alerts == ()
        else:
            assert [a.status for a in outcome.alerts] == [alerted]
            assert outcome.alerts[0].previous_status == previous
        assert outcome.state.get("p1") == recorded

    def test_unchanged_status_is_not_a_write(self):
        outcome = detect_transitions([_obs(LATE)], {"p1": LATE})
        assert outcome.changed is False

    def test_no_record_and_on_track_is_not_a_write(self):
        assert detect_transitions([_obs(ON_TRACK)], {}).changed is False

    def test_previous_state_not_mutated(self):
        previous = {"p1": AT_RISK}
        detect_transitions([_obs(LATE)], previous)
        assert previous == {"p1": AT_RISK}

    def test_unobserved_projects_keep_their_record(self):
        outcome = detect_transitions([_obs(AT_RISK, "p2")], {"p1": LATE})
        assert outcome.state == {"p1": LATE, "p2": AT_RISK}

    def test_late_alert_carries_days_over(self):
        outcome = detect_transitions([_obs(LATE, days=12, target=7)], {})
        assert outcome.alerts[0].days_over_target == 5
        assert outcome.alerts[0].days_in_stage == 12


class TestMultiPassSequence:
    """onTrack -> atRisk -> late -> late -> onTrack emits exactly two alerts."""

    def test_sequence(self):
        state = {}
        emitted = []
        for status in (ON_TRACK, AT_RISK, LATE, LATE, ON_TRACK):
            outcome = detect_transitions([_obs(status)], state)
            emitted.extend(a.status for a in outcome.alerts)
            state = outcome.state

        assert emitted == [AT_RISK, LATE]
        assert state == {}

    def test_relapse_after_recovery_alerts_again(self):
        state = {}
        emitted = []
        for status in (AT_RISK, ON_TRACK, AT_RISK):
            outcome = detect_transitions([_obs(status)], state)
            emitted.extend(a.status for a in outcome.alerts)
            state = outcome.state
        assert emitted == [AT_RISK, AT_RISK]

    def test_independent_projects(self):
        outcome = detect_transitions(
            [_obs(AT_RISK, "a"), _obs(LATE, "b"), _obs(ON_TRACK, "c")],
            {"c": LATE},
        )
        assert {(a.project_id, a.status) for a in outcome.alerts} == {
            ("a", AT_RISK), ("b", LATE),
        }
        assert outcome.state == {"a": AT_RISK, "b": LATE}
