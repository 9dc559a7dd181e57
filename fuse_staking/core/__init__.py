"""Pure accounting core for the staking pool.

Mirrors the pool's on-chain semantics:
- deterministic, integer-only arithmetic (1e18 ratio scale, bps fees),
- immutable state (frozen dataclasses),
- fail-closed flag transitions and invariant checks.

Public API:
- `initial_state(...) -> PoolState`
- `advance_epoch(state, now)`
- `distribute(state, amount, registry)` / `collect(state, amount, registry, delegator)`
- `compute_reward_update(...)` / `apply_reward_update(...)`
- `check_all(state) -> list[str]`
"""

from .distribution import collect, distribute
from .epoch import advance_epoch
from .errors import (
    AlreadyInitializedError,
    AuthorizationError,
    CapacityError,
    ConfigurationError,
    NotInitializedError,
    PoolError,
    PoolInvariantError,
    PreconditionError,
    ReentrancyError,
    TransferError,
)
from .invariants import check_all
from .rewards import apply_reward_update, compute_reward_update
from .state import initial_state, state_from_dict, state_to_dict
from .types import ZERO_ADDRESS, EpochAdvance, Event, PoolEvent, PoolState, RewardUpdate

__all__ = [
    "collect",
    "distribute",
    "advance_epoch",
    "AlreadyInitializedError",
    "AuthorizationError",
    "CapacityError",
    "ConfigurationError",
    "NotInitializedError",
    "PoolError",
    "PoolInvariantError",
    "PreconditionError",
    "ReentrancyError",
    "TransferError",
    "check_all",
    "apply_reward_update",
    "compute_reward_update",
    "initial_state",
    "state_from_dict",
    "state_to_dict",
    "ZERO_ADDRESS",
    "EpochAdvance",
    "Event",
    "PoolEvent",
    "PoolState",
    "RewardUpdate",
]
