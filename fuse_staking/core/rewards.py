"""Reward realization and exchange-ratio update.

Rewards arrive as growth of the pool's liquid balance. Before any shares are
minted or burned the pool realizes that growth:

    realized  = pool_balance - incoming_value
    fee       = realized * protocol_fee_bps // 10_000
    net       = realized - fee
    ratio'    = ratio + net * 1e18 // total_supply
    fee_shares = fee * 1e18 // ratio'

`incoming_value` is the value attached to the triggering call (the deposit
amount, or 0 for a withdrawal), so only externally accrued rewards count.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from .distribution import Movement, distribute
from .errors import PreconditionError, TransferError
from .fixed_point import protocol_fee, ratio_increment, tokens_for_value
from .interfaces import ClaimTokenLedger, ValidatorRegistry
from .types import PoolState, RewardUpdate

logger = logging.getLogger(__name__)


def compute_reward_update(
    state: PoolState,
    *,
    pool_balance: int,
    incoming_value: int,
    total_supply: int,
) -> RewardUpdate | None:
    """Return the amounts to apply, or None when there is nothing to realize."""
    realized = pool_balance - incoming_value
    if realized < 0:
        raise PreconditionError(
            f"pool balance {pool_balance} is below the incoming value {incoming_value}"
        )
    if realized == 0:
        return None

    fee = protocol_fee(realized, state.protocol_fee_bps)
    net = realized - fee
    increment = ratio_increment(net, total_supply)
    new_ratio = state.price_ratio + increment
    return RewardUpdate(
        realized=realized,
        fee=fee,
        net=net,
        ratio_increment=increment,
        new_ratio=new_ratio,
        fee_shares=tokens_for_value(fee, new_ratio),
    )


def apply_reward_update(
    state: PoolState,
    update: RewardUpdate,
    *,
    registry: ValidatorRegistry,
    ledger: ClaimTokenLedger,
) -> tuple[PoolState, list[Movement]]:
    """Fold a computed update into the pool: re-stake rewards and pay the fee.

    Net reward and fee are re-delegated separately, in that order, with the
    treasury's fee shares minted between the two.
    """
    state = replace(state, price_ratio=update.new_ratio)
    state, net_moves = distribute(state, update.net, registry)

    if update.fee_shares > 0 and not ledger.mint(state.treasury, update.fee_shares):
        raise TransferError(f"minting {update.fee_shares} fee shares to treasury failed")
    state, fee_moves = distribute(state, update.fee, registry)

    state = replace(state, system_total_staked=state.system_total_staked + update.realized)
    logger.debug(
        "realized %d (fee %d, net %d); ratio %d -> treasury shares %d",
        update.realized,
        update.fee,
        update.net,
        update.new_ratio,
        update.fee_shares,
    )
    return state, net_moves + fee_moves
