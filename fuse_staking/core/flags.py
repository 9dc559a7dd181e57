"""Small two-state machines for the pool's sticky flags.

Each flag is an `Enum` plus an explicit transition table. Triggers that are
not in the table are illegal and raise `PreconditionError`, so an idempotent
pause/unpause (or a nested reentrancy-guard entry) fails loudly instead of
silently succeeding.

Transition tables:

    OverLimit   WITHIN   --breach--> BREACHED
                BREACHED --breach--> BREACHED   (sticky)
                BREACHED --clear---> WITHIN     (admin limit raise only)
                WITHIN   --clear---> WITHIN

    PauseState  ACTIVE --pause--> PAUSED --unpause--> ACTIVE

    Safeguard   ENABLED --disable--> DISABLED --enable--> ENABLED

    GuardState  IDLE --enter--> BUSY --exit--> IDLE
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Mapping, TypeVar

from .errors import PreconditionError, ReentrancyError


@unique
class OverLimit(Enum):
    WITHIN = "within"
    BREACHED = "breached"


@unique
class PauseState(Enum):
    ACTIVE = "active"
    PAUSED = "paused"


@unique
class Safeguard(Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


@unique
class GuardState(Enum):
    IDLE = "idle"
    BUSY = "busy"


S = TypeVar("S", OverLimit, PauseState, Safeguard, GuardState)

OVER_LIMIT_TRANSITIONS: Mapping[tuple[OverLimit, str], OverLimit] = {
    (OverLimit.WITHIN, "breach"): OverLimit.BREACHED,
    (OverLimit.BREACHED, "breach"): OverLimit.BREACHED,
    (OverLimit.BREACHED, "clear"): OverLimit.WITHIN,
    (OverLimit.WITHIN, "clear"): OverLimit.WITHIN,
}

PAUSE_TRANSITIONS: Mapping[tuple[PauseState, str], PauseState] = {
    (PauseState.ACTIVE, "pause"): PauseState.PAUSED,
    (PauseState.PAUSED, "unpause"): PauseState.ACTIVE,
}

SAFEGUARD_TRANSITIONS: Mapping[tuple[Safeguard, str], Safeguard] = {
    (Safeguard.ENABLED, "disable"): Safeguard.DISABLED,
    (Safeguard.DISABLED, "enable"): Safeguard.ENABLED,
}

GUARD_TRANSITIONS: Mapping[tuple[GuardState, str], GuardState] = {
    (GuardState.IDLE, "enter"): GuardState.BUSY,
    (GuardState.BUSY, "exit"): GuardState.IDLE,
}

_TABLES: dict[type, Mapping] = {
    OverLimit: OVER_LIMIT_TRANSITIONS,
    PauseState: PAUSE_TRANSITIONS,
    Safeguard: SAFEGUARD_TRANSITIONS,
    GuardState: GUARD_TRANSITIONS,
}


def transition(current: S, trigger: str) -> S:
    """Return the successor of `current` under `trigger` or raise."""
    table = _TABLES[type(current)]
    nxt = table.get((current, trigger))
    if nxt is None:
        if isinstance(current, GuardState):
            raise ReentrancyError(f"guard transition rejected: {current.value} --{trigger}-->")
        raise PreconditionError(f"illegal {type(current).__name__} transition: {current.value} --{trigger}-->")
    return nxt
