"""Tests for fuse_staking/core/invariants.py — post-state invariant registry."""

from dataclasses import replace

from fuse_staking.core import ZERO_ADDRESS, initial_state
from fuse_staking.core.flags import GuardState
from fuse_staking.core.invariants import INVARIANT_REGISTRY, capacity_violations, check_all
from fuse_staking.state import InMemoryCustody, InMemoryRegistry
from tests.pool_harness import OWNER, POOL, REGISTRY, TOKEN, TREASURY, V1, V2


def _state():
    return initial_state(
        owner=OWNER,
        initial_validator=V1,
        registry_ref=REGISTRY,
        token_ledger_ref=TOKEN,
        treasury=TREASURY,
        initial_timestamp=0,
        stake_limit=100,
        epoch_interval=10,
    )


class TestAllInvariantsOnInitialState:
    def test_initial_state_passes_all(self):
        assert check_all(_state()) == []

    def test_registry_has_8_invariants(self):
        assert len(INVARIANT_REGISTRY) == 8


class TestRoster:
    def test_empty_roster(self):
        s = replace(_state(), validators=())
        assert "inv_roster_nonempty" in check_all(s)

    def test_duplicates(self):
        s = replace(_state(), validators=(V1, V2, V1))
        assert "inv_roster_unique" in check_all(s)

    def test_null_validator(self):
        s = replace(_state(), validators=(V1, ZERO_ADDRESS))
        assert "inv_roster_no_null" in check_all(s)

    def test_cursor_out_of_range(self):
        s = replace(_state(), validators=(V1, V2), validator_index=2)
        assert "inv_cursor_in_range" in check_all(s)


class TestRatioAndGuards:
    def test_ratio_below_peg(self):
        s = replace(_state(), price_ratio=10**18 - 1)
        assert check_all(s) == ["inv_ratio_at_least_peg"]

    def test_zero_interval(self):
        s = replace(_state(), epoch_interval=0)
        assert "inv_epoch_interval_positive" in check_all(s)

    def test_guard_left_busy(self):
        s = replace(_state(), guard=GuardState.BUSY)
        assert "inv_guard_released" in check_all(s)


class TestCapacity:
    def test_external_overfill_detected(self):
        registry = InMemoryRegistry(custody=InMemoryCustody(), delegator=POOL, max_stake=100)
        registry.add_external_stake(V1, 100)
        s = _state()
        assert capacity_violations(s, registry) == []
        # Simulate a registry that lowered its cap after stake was placed.
        registry._max_stake = 50
        assert capacity_violations(s, registry) == [f"over_cap:{V1}"]
