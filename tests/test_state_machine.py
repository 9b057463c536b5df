"""
Heartbeat state machine: hysteresis, retries, maintenance and resend.
"""

import random
from datetime import datetime, timezone

import pytest

from monitoring.models import Heartbeat, MonitorStatus, ProbeResult
from monitoring.state_machine import Cadence, MonitorState, evaluate


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
UP = ProbeResult.up("OK", NOW, NOW)
DOWN = ProbeResult.down("refused", NOW, NOW)


def run(outcomes, max_retries=0, resend_interval=0, state=None):
    """Feed a sequence of 'U' / 'D' / 'M' outcomes, returning every decision."""
    state = state or MonitorState()
    decisions = []
    for outcome in outcomes:
        decision = evaluate(
            state,
            UP if outcome == "U" else DOWN,
            max_retries,
            in_maintenance=outcome == "M",
            resend_interval=resend_interval,
        )
        decisions.append(decision)
        state = decision.state
    return decisions


class TestFirstOutcome:
    def test_first_up_is_important(self):
        (decision,) = run("U")
        assert decision.status == MonitorStatus.UP
        assert decision.important is True
        assert decision.cadence is Cadence.NORMAL

    def test_first_down_without_retries_is_confirmed(self):
        (decision,) = run("D")
        assert decision.status == MonitorStatus.DOWN
        assert decision.important is True
        assert decision.down_count == 1

    def test_first_down_within_retry_budget_is_not_important(self):
        # Pending monitor, max_retries=2: only the third Down is a transition
        decisions = run("DDD", max_retries=2)

        assert [d.important for d in decisions] == [False, False, True]
        assert [d.down_count for d in decisions] == [0, 0, 1]
        assert decisions[-1].cadence is Cadence.NORMAL
        assert not any(d.should_notify for d in decisions[:2])


class TestIdempotence:
    def test_repeated_ups_are_important_once(self):
        decisions = run("UUUUU")
        assert [d.important for d in decisions] == [True, False, False, False, False]

    def test_repeated_ups_after_recovery_are_important_once(self):
        decisions = run("DUUU")
        assert [d.important for d in decisions] == [True, True, False, False]

    def test_repeated_ups_after_retry_recovery_are_never_important(self):
        decisions = run("UDUUU", max_retries=1)
        assert [d.important for d in decisions[2:]] == [False, False, False]


class TestRetries:
    def test_downs_within_retry_budget_are_not_important(self):
        decisions = run("UDDD", max_retries=2)

        assert [d.status for d in decisions[1:]] == [MonitorStatus.DOWN] * 3
        assert [d.important for d in decisions[1:]] == [False, False, True]
        assert [d.retries for d in decisions[1:]] == [1, 2, 3]
        assert [d.cadence for d in decisions[1:]] == [Cadence.RETRY, Cadence.RETRY, Cadence.NORMAL]
        assert decisions[-1].down_count == 1

    def test_recovery_during_retries_is_not_important(self):
        decisions = run("UDU", max_retries=2)
        assert decisions[-1].status == MonitorStatus.UP
        assert decisions[-1].important is False
        assert decisions[-1].retries == 0

    def test_recovery_after_confirmed_down_is_important(self):
        decisions = run("UDDU", max_retries=1)
        assert decisions[2].important is True
        assert decisions[3].important is True
        assert decisions[3].down_count == 0

    def test_repeated_confirmed_downs_are_not_important(self):
        decisions = run("DDDD")
        assert [d.important for d in decisions] == [True, False, False, False]
        assert [d.down_count for d in decisions] == [1, 2, 3, 4]


class TestMaintenance:
    def test_maintenance_is_never_important_and_never_notifies(self):
        decisions = run("UMDM")
        for decision in (decisions[1], decisions[3]):
            assert decision.status == MonitorStatus.MAINTENANCE
            assert decision.important is False
            assert decision.should_notify is False

    def test_maintenance_resets_retries_but_keeps_confirmed_status(self):
        decisions = run("UDM", max_retries=3)
        state = decisions[-1].state
        assert state.retries == 0
        assert state.confirmed_status == MonitorStatus.UP

    def test_up_after_maintenance_matches_pre_maintenance_state(self):
        decisions = run("UMU")
        assert decisions[-1].important is False

        decisions = run("DMU")
        assert decisions[-1].important is True


class TestResend:
    def test_resend_every_n_confirmed_downs_after_the_first(self):
        decisions = run("D" * 7, resend_interval=2)
        assert [d.important for d in decisions] == [True] + [False] * 6
        assert [d.resend for d in decisions] == [False, False, True, False, True, False, True]
        assert [d.should_notify for d in decisions] == [True, False, True, False, True, False, True]

    def test_resend_disabled_by_default(self):
        decisions = run("D" * 5)
        assert not any(d.resend for d in decisions)

    def test_retrying_downs_never_resend(self):
        decisions = run("UDD", max_retries=5, resend_interval=1)
        assert not any(d.resend for d in decisions)


class TestRestore:
    def _hb(self, status, important=False, retries=0, down_count=0):
        return Heartbeat(
            monitor_id=1,
            status=status,
            msg="",
            time=NOW,
            end_time=NOW,
            retries=retries,
            down_count=down_count,
            important=important,
        )

    def test_no_history_restores_pending(self):
        assert MonitorState.from_heartbeats(None, None) == MonitorState()

    def test_restores_confirmed_down_and_counters(self):
        latest = self._hb(MonitorStatus.DOWN, retries=4, down_count=3)
        important = self._hb(MonitorStatus.DOWN, important=True, down_count=1)

        state = MonitorState.from_heartbeats(latest, important)

        assert state.confirmed_status == MonitorStatus.DOWN
        assert state.down_count == 3
        assert state.retries == 4

        decision = evaluate(state, DOWN, max_retries=0)
        assert decision.important is False
        assert decision.down_count == 4

    def test_restored_retrying_state_continues_counting(self):
        latest = self._hb(MonitorStatus.DOWN, retries=1)
        important = self._hb(MonitorStatus.UP, important=True)

        state = MonitorState.from_heartbeats(latest, important)
        assert state.is_retrying

        decision = evaluate(state, DOWN, max_retries=2)
        assert decision.retries == 2
        assert decision.important is False


@pytest.mark.parametrize("seed", range(20))
def test_random_sequences_keep_counter_invariants(seed):
    rng = random.Random(seed)
    outcomes = "".join(rng.choice("UUDDM") for _ in range(60))
    max_retries = rng.randint(0, 3)
    decisions = run(outcomes, max_retries=max_retries, resend_interval=rng.randint(0, 3))

    previous_down_count = 0
    for outcome, decision in zip(outcomes, decisions):
        if decision.status == MonitorStatus.UP:
            assert decision.down_count == 0
        if decision.status == MonitorStatus.MAINTENANCE:
            assert decision.important is False
            assert decision.down_count == previous_down_count
        if outcome == "D":
            confirmed = decision.retries > max_retries
            expected = previous_down_count + 1 if confirmed else previous_down_count
            assert decision.down_count == expected
        if decision.important:
            assert decision.status in (MonitorStatus.UP, MonitorStatus.DOWN)
        previous_down_count = decision.down_count
