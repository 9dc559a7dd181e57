"""Data types for the staking pool core.

All types are frozen dataclasses (immutable); transitions build new values
with `dataclasses.replace()`.

Units/conventions:
- `price_ratio` is base-asset units per claim token, scaled by 1e18.
- `protocol_fee_bps` is basis points (1/10_000).
- `*_time` and `epoch_interval` share one integer time unit (seconds).
- addresses are canonical lowercase `0x` + 40 hex chars.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Mapping

from .fixed_point import MAX_PROTOCOL_FEE_BPS, RATIO_SCALE
from .flags import GuardState, OverLimit, PauseState, Safeguard


Address = str

ZERO_ADDRESS: Address = "0x" + "00" * 20


@unique
class Event(Enum):
    """One member per notification the pool emits."""
    INITIALIZED = "Initialized"
    DEPOSITED = "Deposited"
    WITHDRAWN = "Withdrawn"
    TOKENS_BURNED = "TokensBurned"
    EPOCH_UPDATED = "EpochUpdated"
    RATIO_UPDATED = "RatioUpdated"
    VALIDATOR_ADDED = "ValidatorAdded"
    VALIDATOR_REMOVED = "ValidatorRemoved"
    VALIDATOR_REPLACED = "ValidatorReplaced"
    CURSOR_CHANGED = "CursorChanged"
    LIMIT_CHANGED = "LimitChanged"
    SAFEGUARD_DISABLED = "SafeguardDisabled"
    SAFEGUARD_ENABLED = "SafeguardEnabled"
    FEE_CHANGED = "FeeChanged"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"
    TREASURY_CHANGED = "TreasuryChanged"
    EPOCH_INTERVAL_CHANGED = "EpochIntervalChanged"


@dataclass(frozen=True)
class PoolEvent:
    event: Event
    data: Mapping[str, int | str] = field(default_factory=dict)


@dataclass(frozen=True)
class PoolState:
    """Complete durable state of one staking pool."""

    # Collaborators
    owner: Address
    treasury: Address
    token_ledger_ref: Address
    registry_ref: Address

    # Roster
    validators: tuple[Address, ...]
    validator_index: int = 0

    # Exchange rate
    price_ratio: int = RATIO_SCALE
    protocol_fee_bps: int = 0

    # Epoch
    epoch: int = 0
    epoch_interval: int = 1
    last_update_time: int = 0

    # Limits
    system_stake_limit: int = 0
    system_total_staked: int = 0
    safeguard: Safeguard = Safeguard.ENABLED
    over_limit: OverLimit = OverLimit.WITHIN

    # Guards
    pause: PauseState = PauseState.ACTIVE
    guard: GuardState = GuardState.IDLE

    def __post_init__(self) -> None:
        if not isinstance(self.validators, tuple):
            raise TypeError("validators must be a tuple")
        for name in (
            "validator_index",
            "price_ratio",
            "protocol_fee_bps",
            "epoch",
            "epoch_interval",
            "last_update_time",
            "system_stake_limit",
            "system_total_staked",
        ):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")
        if self.protocol_fee_bps > MAX_PROTOCOL_FEE_BPS:
            raise ValueError(f"protocol_fee_bps must be <= {MAX_PROTOCOL_FEE_BPS}")

    @property
    def current_validator(self) -> Address:
        return self.validators[self.validator_index]

    @property
    def is_over_limit(self) -> bool:
        return self.over_limit is OverLimit.BREACHED

    @property
    def is_paused(self) -> bool:
        return self.pause is PauseState.PAUSED

    @property
    def safeguard_enabled(self) -> bool:
        return self.safeguard is Safeguard.ENABLED


@dataclass(frozen=True)
class EpochAdvance:
    """Outcome of one epoch check."""

    increments: int
    epoch: int
    last_update_time: int


@dataclass(frozen=True)
class RewardUpdate:
    """Amounts derived from one reward realization.

    `fee_shares` are the claim tokens minted to the treasury, priced at
    `new_ratio` (the ratio after the net reward is folded in).
    """

    realized: int
    fee: int
    net: int
    ratio_increment: int
    new_ratio: int
    fee_shares: int
