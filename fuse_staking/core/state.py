"""State construction and serialization for the pool.

`state_to_dict()` flattens a `PoolState` into plain typed values (ints,
bools, address strings, an address list): the layout the durable store keeps.

Round-trip property (tested): `state_from_dict(state_to_dict(s)) == s`.
"""

from __future__ import annotations

from typing import Any, Mapping

from .errors import ConfigurationError
from .fixed_point import MAX_PROTOCOL_FEE_BPS, RATIO_SCALE
from .flags import GuardState, OverLimit, PauseState, Safeguard
from .types import ZERO_ADDRESS, Address, PoolState


UINT_FIELDS: tuple[str, ...] = (
    "price_ratio",
    "epoch",
    "epoch_interval",
    "last_update_time",
    "system_stake_limit",
    "system_total_staked",
    "protocol_fee_bps",
    "validator_index",
)
BOOL_FIELDS: tuple[str, ...] = ("safeguard_enabled", "over_limit", "paused", "reentrancy_guard")
ADDRESS_FIELDS: tuple[str, ...] = ("owner", "treasury", "token_ledger_ref", "registry_ref")
ADDRESS_LIST_FIELDS: tuple[str, ...] = ("validators",)

STATE_VAR_NAMES: tuple[str, ...] = UINT_FIELDS + BOOL_FIELDS + ADDRESS_FIELDS + ADDRESS_LIST_FIELDS


def initial_state(
    *,
    owner: Address,
    initial_validator: Address,
    registry_ref: Address,
    token_ledger_ref: Address,
    treasury: Address,
    initial_timestamp: int,
    stake_limit: int,
    epoch_interval: int,
    protocol_fee_bps: int = 0,
) -> PoolState:
    """Return the state of a freshly initialized pool (ratio pegged at 1:1)."""
    if initial_validator == ZERO_ADDRESS:
        raise ConfigurationError("initial validator must not be the null address")
    if epoch_interval <= 0:
        raise ConfigurationError(f"epoch_interval must be positive: {epoch_interval}")
    if not (0 <= protocol_fee_bps <= MAX_PROTOCOL_FEE_BPS):
        raise ConfigurationError(f"protocol fee must be in [0, {MAX_PROTOCOL_FEE_BPS}] bps")
    if initial_timestamp < 0 or stake_limit < 0:
        raise ConfigurationError("initial_timestamp and stake_limit must be non-negative")
    return PoolState(
        owner=owner,
        treasury=treasury,
        token_ledger_ref=token_ledger_ref,
        registry_ref=registry_ref,
        validators=(initial_validator,),
        validator_index=0,
        price_ratio=RATIO_SCALE,
        protocol_fee_bps=protocol_fee_bps,
        epoch=0,
        epoch_interval=epoch_interval,
        last_update_time=initial_timestamp,
        system_stake_limit=stake_limit,
        system_total_staked=0,
    )


def state_to_dict(state: PoolState) -> dict[str, Any]:
    """Serialize a PoolState to a plain dict of typed values."""
    return {
        "price_ratio": state.price_ratio,
        "epoch": state.epoch,
        "epoch_interval": state.epoch_interval,
        "last_update_time": state.last_update_time,
        "system_stake_limit": state.system_stake_limit,
        "system_total_staked": state.system_total_staked,
        "protocol_fee_bps": state.protocol_fee_bps,
        "validator_index": state.validator_index,
        "safeguard_enabled": state.safeguard is Safeguard.ENABLED,
        "over_limit": state.over_limit is OverLimit.BREACHED,
        "paused": state.pause is PauseState.PAUSED,
        "reentrancy_guard": state.guard is GuardState.BUSY,
        "owner": state.owner,
        "treasury": state.treasury,
        "token_ledger_ref": state.token_ledger_ref,
        "registry_ref": state.registry_ref,
        "validators": list(state.validators),
    }


def state_from_dict(d: Mapping[str, Any]) -> PoolState:
    """Deserialize a dict to a PoolState. Raises KeyError on missing fields."""
    for name in UINT_FIELDS:
        val = d[name]
        if not isinstance(val, int) or isinstance(val, bool):
            raise TypeError(f"state var {name!r} must be int, got {type(val).__name__}")
    for name in BOOL_FIELDS:
        if not isinstance(d[name], bool):
            raise TypeError(f"state var {name!r} must be bool, got {type(d[name]).__name__}")
    return PoolState(
        owner=str(d["owner"]),
        treasury=str(d["treasury"]),
        token_ledger_ref=str(d["token_ledger_ref"]),
        registry_ref=str(d["registry_ref"]),
        validators=tuple(str(v) for v in d["validators"]),
        validator_index=int(d["validator_index"]),
        price_ratio=int(d["price_ratio"]),
        protocol_fee_bps=int(d["protocol_fee_bps"]),
        epoch=int(d["epoch"]),
        epoch_interval=int(d["epoch_interval"]),
        last_update_time=int(d["last_update_time"]),
        system_stake_limit=int(d["system_stake_limit"]),
        system_total_staked=int(d["system_total_staked"]),
        safeguard=Safeguard.ENABLED if d["safeguard_enabled"] else Safeguard.DISABLED,
        over_limit=OverLimit.BREACHED if d["over_limit"] else OverLimit.WITHIN,
        pause=PauseState.PAUSED if d["paused"] else PauseState.ACTIVE,
        guard=GuardState.BUSY if d["reentrancy_guard"] else GuardState.IDLE,
    )
