"""Invariant checkers for `PoolState`.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant IDs (empty = all pass). The service checks the
post-state of every mutating call and rolls back on any violation.
"""

from __future__ import annotations

from typing import Callable

from .fixed_point import MAX_PROTOCOL_FEE_BPS, RATIO_SCALE
from .flags import GuardState
from .interfaces import ValidatorRegistry
from .types import ZERO_ADDRESS, PoolState


def inv_roster_nonempty(s: PoolState) -> bool:
    return len(s.validators) >= 1


def inv_roster_unique(s: PoolState) -> bool:
    return len(set(s.validators)) == len(s.validators)


def inv_roster_no_null(s: PoolState) -> bool:
    return ZERO_ADDRESS not in s.validators


def inv_cursor_in_range(s: PoolState) -> bool:
    return 0 <= s.validator_index < len(s.validators)


def inv_fee_capped(s: PoolState) -> bool:
    return 0 <= s.protocol_fee_bps <= MAX_PROTOCOL_FEE_BPS


def inv_ratio_at_least_peg(s: PoolState) -> bool:
    return s.price_ratio >= RATIO_SCALE


def inv_epoch_interval_positive(s: PoolState) -> bool:
    return s.epoch_interval > 0


def inv_guard_released(s: PoolState) -> bool:
    return s.guard is GuardState.IDLE


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

GUARD_INVARIANT = "inv_guard_released"

INVARIANT_REGISTRY: dict[str, Callable[[PoolState], bool]] = {
    "inv_roster_nonempty": inv_roster_nonempty,
    "inv_roster_unique": inv_roster_unique,
    "inv_roster_no_null": inv_roster_no_null,
    "inv_cursor_in_range": inv_cursor_in_range,
    "inv_fee_capped": inv_fee_capped,
    "inv_ratio_at_least_peg": inv_ratio_at_least_peg,
    "inv_epoch_interval_positive": inv_epoch_interval_positive,
    GUARD_INVARIANT: inv_guard_released,
}


def check_all(state: PoolState) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state)
    ]


def capacity_violations(state: PoolState, registry: ValidatorRegistry) -> list[str]:
    """Validators on the roster holding more than the registry cap."""
    cap = registry.max_stake_per_validator()
    return [
        f"over_cap:{validator}"
        for validator in state.validators
        if registry.stake_amount(validator) > cap
    ]
