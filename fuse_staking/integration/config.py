"""
Pool initialization config.

`PoolConfig` carries the one-shot initialization parameters. It can be built
from a mapping or loaded from a YAML file; unknown keys are rejected.

Example YAML:

    initial_validator: "0x1111111111111111111111111111111111111111"
    registry_address: "0x2222222222222222222222222222222222222222"
    token_address: "0x3333333333333333333333333333333333333333"
    treasury: "0x4444444444444444444444444444444444444444"
    initial_timestamp: 1700000000
    stake_limit: 1000000
    epoch_interval: 86400
    protocol_fee_bps: 500
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..core.errors import ConfigurationError
from ..core.fixed_point import MAX_PROTOCOL_FEE_BPS
from ..core.types import ZERO_ADDRESS
from ..state.canonical import canonical_address


@dataclass(frozen=True)
class PoolConfig:
    initial_validator: str
    registry_address: str
    token_address: str
    treasury: str
    initial_timestamp: int
    stake_limit: int
    epoch_interval: int
    protocol_fee_bps: int = 0

    def __post_init__(self) -> None:
        for name in ("initial_validator", "registry_address", "token_address", "treasury"):
            try:
                canonical = canonical_address(getattr(self, name), name=name)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(str(exc)) from exc
            object.__setattr__(self, name, canonical)
        if self.initial_validator == ZERO_ADDRESS:
            raise ConfigurationError("initial_validator must not be the null address")
        for name in ("initial_timestamp", "stake_limit", "epoch_interval", "protocol_fee_bps"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise ConfigurationError(f"{name} must be an int")
            if v < 0:
                raise ConfigurationError(f"{name} must be non-negative: {v}")
        if self.epoch_interval == 0:
            raise ConfigurationError("epoch_interval must be positive")
        if self.protocol_fee_bps > MAX_PROTOCOL_FEE_BPS:
            raise ConfigurationError(f"protocol_fee_bps must be <= {MAX_PROTOCOL_FEE_BPS}")


_CONFIG_KEYS = frozenset(f.name for f in fields(PoolConfig))


def pool_config_from_mapping(obj: Mapping[str, Any]) -> PoolConfig:
    if not isinstance(obj, Mapping):
        raise ConfigurationError("pool config must be a mapping")
    unknown = sorted(set(obj) - _CONFIG_KEYS)
    if unknown:
        raise ConfigurationError(f"unknown pool config keys: {', '.join(unknown)}")
    try:
        return PoolConfig(**dict(obj))
    except TypeError as exc:
        raise ConfigurationError(f"invalid pool config: {exc}") from exc


def load_pool_config(path: str | Path) -> PoolConfig:
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    return pool_config_from_mapping(obj)
