"""Tests for fuse_staking/core/flags.py — transition tables for the sticky flags."""

import pytest

from fuse_staking.core import PreconditionError, ReentrancyError
from fuse_staking.core.flags import GuardState, OverLimit, PauseState, Safeguard, transition


class TestOverLimit:
    def test_breach_is_sticky(self):
        s = transition(OverLimit.WITHIN, "breach")
        assert s is OverLimit.BREACHED
        assert transition(s, "breach") is OverLimit.BREACHED

    def test_clear(self):
        assert transition(OverLimit.BREACHED, "clear") is OverLimit.WITHIN
        assert transition(OverLimit.WITHIN, "clear") is OverLimit.WITHIN

    def test_unknown_trigger(self):
        with pytest.raises(PreconditionError):
            transition(OverLimit.WITHIN, "pause")


class TestPauseState:
    def test_round_trip(self):
        assert transition(transition(PauseState.ACTIVE, "pause"), "unpause") is PauseState.ACTIVE

    @pytest.mark.parametrize(
        "state,trigger",
        [(PauseState.PAUSED, "pause"), (PauseState.ACTIVE, "unpause")],
    )
    def test_idempotent_calls_fail(self, state, trigger):
        with pytest.raises(PreconditionError):
            transition(state, trigger)


class TestSafeguard:
    def test_disable_then_enable(self):
        s = transition(Safeguard.ENABLED, "disable")
        assert s is Safeguard.DISABLED
        assert transition(s, "enable") is Safeguard.ENABLED

    def test_enable_requires_disabled(self):
        with pytest.raises(PreconditionError):
            transition(Safeguard.ENABLED, "enable")


class TestGuardState:
    def test_enter_exit(self):
        assert transition(transition(GuardState.IDLE, "enter"), "exit") is GuardState.IDLE

    def test_nested_enter_is_reentrancy(self):
        with pytest.raises(ReentrancyError):
            transition(GuardState.BUSY, "enter")
