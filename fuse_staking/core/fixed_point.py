"""Integer fixed-point helpers for the exchange ratio and the protocol fee.

Conventions:
- `price_ratio` is base-asset units per claim token, scaled by 1e18.
- `*_bps` rates are basis points (1/10_000).
- All divisions floor (truncate toward zero for non-negative operands).
"""

from __future__ import annotations


RATIO_SCALE = 10**18
BPS_DENOM = 10_000
MAX_PROTOCOL_FEE_BPS = 2_000


def _require_non_negative_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


def tokens_for_value(value: int, price_ratio: int) -> int:
    """Claim tokens minted for `value` base units at `price_ratio`."""
    _require_non_negative_int("value", value)
    if price_ratio <= 0:
        raise ValueError(f"price_ratio must be positive: {price_ratio}")
    return (value * RATIO_SCALE) // price_ratio


def value_for_tokens(amount: int, price_ratio: int) -> int:
    """Base units paid out for `amount` claim tokens at `price_ratio`."""
    _require_non_negative_int("amount", amount)
    _require_non_negative_int("price_ratio", price_ratio)
    return (amount * price_ratio) // RATIO_SCALE


def protocol_fee(realized: int, fee_bps: int) -> int:
    _require_non_negative_int("realized", realized)
    if not (0 <= fee_bps <= MAX_PROTOCOL_FEE_BPS):
        raise ValueError(f"fee_bps must be in [0, {MAX_PROTOCOL_FEE_BPS}]: {fee_bps}")
    return (realized * fee_bps) // BPS_DENOM


def ratio_increment(net_reward: int, total_supply: int) -> int:
    """Per-token ratio growth for `net_reward`; zero when nothing is outstanding."""
    _require_non_negative_int("net_reward", net_reward)
    _require_non_negative_int("total_supply", total_supply)
    if total_supply == 0:
        return 0
    return (net_reward * RATIO_SCALE) // total_supply
