"""Withdrawal flow (unselected and selected) through StakingPool."""

import pytest

from fuse_staking.core import (
    CapacityError,
    Event,
    PoolError,
    PreconditionError,
    ReentrancyError,
    TransferError,
)
from fuse_staking.core.fixed_point import RATIO_SCALE
from fuse_staking.core.flags import GuardState
from tests.pool_harness import ALICE, BOB, OWNER, POOL, T0, V1, V2, deploy, redeem


class TestUnselectedWithdraw:
    def test_round_trip_without_rewards(self):
        d = deploy()
        minted = d.pool.deposit(ALICE, 1_000, now=T0)
        payout = redeem(d, ALICE, minted)
        assert payout == 1_000
        assert d.custody.paid_to(ALICE) == 1_000
        assert d.token.total_supply() == 0
        assert d.pool.system_total_staked == 0
        assert d.registry.delegated_amount(POOL, V1) == 0
        kinds = [e.event for e in d.pool.events]
        assert kinds[-2:] == [Event.TOKENS_BURNED, Event.WITHDRAWN]

    def test_withdrawn_event(self):
        d = deploy()
        d.pool.deposit(ALICE, 1_000, now=T0)
        redeem(d, ALICE, 400)
        last = d.pool.events[-1]
        assert last.data == {"sender": ALICE, "amount": 400, "price_ratio": RATIO_SCALE, "payout": 400}

    def test_pays_accrued_rewards(self):
        d = deploy()
        d.pool.deposit(ALICE, 1_000, now=T0)
        d.registry.accrue_rewards(100)
        payout = redeem(d, ALICE, 500)
        assert d.pool.price_ratio == RATIO_SCALE + RATIO_SCALE // 10
        assert payout == 550
        assert d.pool.system_total_staked == 550
        assert d.custody.balance() == 0

    def test_spills_across_validators(self):
        d = deploy(validators=(V1, V2), max_stake=1_000, stake_limit=2_000)
        d.pool.deposit(ALICE, 800, now=T0)
        d.pool.deposit(ALICE, 500, now=T0)
        assert d.pool.validator_index == 1
        redeem(d, ALICE, 600)
        assert d.pool.delegations() == {V1: 700, V2: 0}

    def test_missing_allowance_rolls_back(self):
        d = deploy()
        d.pool.deposit(ALICE, 1_000, now=T0)
        d.registry.accrue_rewards(100)
        with pytest.raises(TransferError):
            d.pool.withdraw(ALICE, 10)
        assert d.pool.price_ratio == RATIO_SCALE
        assert d.custody.balance() == 100
        assert d.token.balance_of(ALICE) == 1_000

    def test_refused_payout_rolls_back(self):
        d = deploy()
        d.pool.deposit(ALICE, 1_000, now=T0)
        d.custody.refuse_payments(ALICE)
        with pytest.raises(TransferError):
            redeem(d, ALICE, 1_000)
        assert d.token.balance_of(ALICE) == 1_000
        assert d.token.total_supply() == 1_000
        assert d.pool.system_total_staked == 1_000
        assert d.registry.delegated_amount(POOL, V1) == 1_000
        assert d.pool.state.guard is GuardState.IDLE

    def test_zero_amount_rejected(self):
        d = deploy()
        d.pool.deposit(ALICE, 1_000, now=T0)
        with pytest.raises(PreconditionError):
            redeem(d, ALICE, 0)


class TestSelectedWithdraw:
    def _two_validators(self):
        d = deploy(validators=(V1, V2), max_stake=1_000, stake_limit=2_000)
        d.pool.deposit(ALICE, 800, now=T0)
        d.pool.deposit(BOB, 500, now=T0)
        return d

    def test_named_validator_covers(self):
        d = self._two_validators()
        assert redeem(d, BOB, 300, validator_index=1) == 300
        assert d.pool.delegations() == {V1: 1_000, V2: 0}

    def test_no_spill_over(self):
        d = self._two_validators()
        with pytest.raises(CapacityError):
            redeem(d, ALICE, 301, validator_index=1)
        assert d.pool.delegations() == {V1: 1_000, V2: 300}
        assert d.token.balance_of(ALICE) == 800

    def test_paused_rejects_selected_path_only(self):
        d = self._two_validators()
        d.pool.pause(OWNER)
        with pytest.raises(PreconditionError):
            redeem(d, ALICE, 10, validator_index=0)
        assert redeem(d, ALICE, 10) == 10

    def test_index_out_of_range(self):
        d = self._two_validators()
        with pytest.raises(PreconditionError):
            redeem(d, ALICE, 10, validator_index=2)


class TestReentrancy:
    def test_nested_withdraw_during_payout_is_rejected(self):
        d = deploy()
        d.pool.deposit(ALICE, 1_000, now=T0)
        nested: list[PoolError] = []

        def hook(amount):
            try:
                redeem(d, ALICE, 1)
            except PoolError as exc:
                nested.append(exc)
                raise

        d.custody.set_receive_hook(ALICE, hook)
        with pytest.raises(TransferError):
            redeem(d, ALICE, 500)

        assert len(nested) == 1
        assert isinstance(nested[0], ReentrancyError)
        assert d.pool.state.guard is GuardState.IDLE
        assert d.token.balance_of(ALICE) == 1_000
        assert d.pool.system_total_staked == 1_000

        d.custody.set_receive_hook(ALICE, None)
        assert redeem(d, ALICE, 500) == 500

    def test_guard_released_after_success(self):
        d = deploy()
        d.pool.deposit(ALICE, 1_000, now=T0)
        redeem(d, ALICE, 1)
        redeem(d, ALICE, 1)
        assert d.pool.state.guard is GuardState.IDLE

    def test_deposit_during_payout_is_allowed(self):
        d = deploy()
        d.pool.deposit(ALICE, 1_000, now=T0)
        d.custody.set_receive_hook(ALICE, lambda amount: d.pool.deposit(BOB, 10, now=T0))

        assert redeem(d, ALICE, 500) == 500

        assert d.custody.paid_to(ALICE) == 500
        assert d.token.balance_of(BOB) == 10
        assert d.pool.system_total_staked == 510
        assert d.pool.state.guard is GuardState.IDLE
        assert d.pool.check_invariants() == []
        kinds = [e.event for e in d.pool.events]
        assert kinds[-3:] == [Event.TOKENS_BURNED, Event.DEPOSITED, Event.WITHDRAWN]
        assert d.reopen().state == d.pool.state
