"""Stake distribution across the validator roster.

`distribute` places an amount on validators without exceeding the registry's
per-validator cap; `collect` pulls an amount back off them. Both prefer the
cursor validator and only fall back to a roster scan when it cannot cover the
whole amount.

The fallback scan always starts at roster position 0, not at the cursor. This
fixes the order in which validators fill up and drain, so it must not be
changed to a cursor-relative scan.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from .errors import CapacityError, PreconditionError
from .interfaces import ValidatorRegistry
from .types import Address, PoolState

logger = logging.getLogger(__name__)

Movement = tuple[Address, int]


def available_capacity(registry: ValidatorRegistry, validator: Address, cap: int) -> int:
    return max(0, cap - registry.stake_amount(validator))


def distribute(
    state: PoolState,
    amount: int,
    registry: ValidatorRegistry,
) -> tuple[PoolState, list[Movement]]:
    """Delegate `amount` across the roster.

    Returns the state (cursor possibly moved) and the `(validator, amount)`
    delegations performed, in order.

    Raises:
        CapacityError: the whole roster cannot absorb `amount`.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")
    if amount == 0:
        return state, []

    cap = registry.max_stake_per_validator()
    current = state.current_validator
    available = available_capacity(registry, current, cap)
    if available >= amount:
        registry.delegate(current, amount)
        logger.debug("delegated %d to cursor validator %s", amount, current)
        return state, [(current, amount)]

    moves: list[Movement] = []
    if available > 0:
        registry.delegate(current, available)
        moves.append((current, available))
    remaining = amount - available

    cursor = state.validator_index
    for i, validator in enumerate(state.validators):
        room = available_capacity(registry, validator, cap)
        if room >= remaining:
            registry.delegate(validator, remaining)
            moves.append((validator, remaining))
            remaining = 0
            cursor = i
            break
        if room > 0:
            registry.delegate(validator, room)
            moves.append((validator, room))
            remaining -= room

    if remaining > 0:
        raise CapacityError(f"insufficient validator capacity: {remaining} of {amount} unplaced")

    logger.debug("distributed %d over %d delegations, cursor %d", amount, len(moves), cursor)
    return replace(state, validator_index=cursor), moves


def collect(
    state: PoolState,
    amount: int,
    registry: ValidatorRegistry,
    delegator: Address,
    validator_index: int | None = None,
) -> list[Movement]:
    """Withdraw `amount` of the pool's stake from the roster.

    With `validator_index` set, the named validator alone must cover the
    amount. Otherwise the cursor validator is drained first and the rest is
    pulled from the roster in list order.

    Raises:
        PreconditionError: `validator_index` is out of range.
        CapacityError: the pool's delegations cannot cover `amount`.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")
    if amount == 0:
        return []

    if validator_index is not None:
        if not (0 <= validator_index < len(state.validators)):
            raise PreconditionError(f"validator index out of range: {validator_index}")
        validator = state.validators[validator_index]
        held = registry.delegated_amount(delegator, validator)
        if held < amount:
            raise CapacityError(f"validator {validator} holds {held}, cannot cover {amount}")
        registry.withdraw(validator, amount)
        return [(validator, amount)]

    current = state.current_validator
    held = registry.delegated_amount(delegator, current)
    if held >= amount:
        registry.withdraw(current, amount)
        return [(current, amount)]

    moves: list[Movement] = []
    if held > 0:
        registry.withdraw(current, held)
        moves.append((current, held))
    remaining = amount - held

    for validator in state.validators:
        if remaining == 0:
            break
        take = min(registry.delegated_amount(delegator, validator), remaining)
        if take > 0:
            registry.withdraw(validator, take)
            moves.append((validator, take))
            remaining -= take

    if remaining > 0:
        raise CapacityError(f"insufficient liquidity: {remaining} of {amount} not withdrawable")

    logger.debug("collected %d over %d withdrawals", amount, len(moves))
    return moves
