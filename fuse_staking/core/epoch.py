"""Epoch engine.

The epoch counter advances by whole intervals of elapsed time. The stored
`last_update_time` snaps to the last boundary crossed, so any sub-interval
remainder carries over to the next check instead of being dropped.
"""

from __future__ import annotations

from dataclasses import replace

from .errors import ConfigurationError
from .types import EpochAdvance, PoolState


def epoch_increments(state: PoolState, now: int) -> int:
    """Number of whole intervals elapsed since `last_update_time` (0 if none)."""
    if state.epoch_interval <= 0:
        raise ConfigurationError("epoch_interval must be positive")
    elapsed = now - state.last_update_time
    if elapsed < state.epoch_interval:
        return 0
    return elapsed // state.epoch_interval


def advance_epoch(state: PoolState, now: int) -> tuple[PoolState, EpochAdvance | None]:
    """Return `(next_state, advance)`; `advance` is None when no boundary was crossed."""
    increments = epoch_increments(state, now)
    if increments == 0:
        return state, None
    next_state = replace(
        state,
        epoch=state.epoch + increments,
        last_update_time=state.last_update_time + increments * state.epoch_interval,
    )
    return next_state, EpochAdvance(
        increments=increments,
        epoch=next_state.epoch,
        last_update_time=next_state.last_update_time,
    )
