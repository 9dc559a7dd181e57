"""
Flat typed key/value storage for the pool ("eternal storage").

Values live in one namespace per type (uint, bool, address, address list),
keyed by `storage_key(name)`. Unset keys read as the type's zero value, the
way an untouched storage slot does.

`save_pool_state` / `load_pool_state` map every `PoolState` field to a
typed key, so a pool can be rebuilt from its store alone.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..core.interfaces import Checkpointable
from ..core.state import (
    ADDRESS_FIELDS,
    ADDRESS_LIST_FIELDS,
    BOOL_FIELDS,
    UINT_FIELDS,
    state_from_dict,
    state_to_dict,
)
from ..core.types import ZERO_ADDRESS, PoolState
from .canonical import canonical_address, canonical_json_bytes, sha256_hex, storage_key

logger = logging.getLogger(__name__)

INITIALIZED_KEY = "initialized"


@dataclass
class EternalStorage(Checkpointable):
    """In-memory typed key/value store."""

    _uints: Dict[str, int] = field(default_factory=dict)
    _bools: Dict[str, bool] = field(default_factory=dict)
    _addresses: Dict[str, str] = field(default_factory=dict)
    _address_lists: Dict[str, List[str]] = field(default_factory=dict)

    def get_uint(self, name: str) -> int:
        return self._uints.get(storage_key(name), 0)

    def set_uint(self, name: str, value: int) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise TypeError(f"{name} must be a non-negative int")
        self._uints[storage_key(name)] = int(value)

    def get_bool(self, name: str) -> bool:
        return self._bools.get(storage_key(name), False)

    def set_bool(self, name: str, value: bool) -> None:
        if not isinstance(value, bool):
            raise TypeError(f"{name} must be a bool")
        self._bools[storage_key(name)] = value

    def get_address(self, name: str) -> str:
        return self._addresses.get(storage_key(name), ZERO_ADDRESS)

    def set_address(self, name: str, value: str) -> None:
        self._addresses[storage_key(name)] = canonical_address(value, name=name)

    def get_address_list(self, name: str) -> List[str]:
        # Return a copy to avoid accidental mutation of stored state.
        return list(self._address_lists.get(storage_key(name), []))

    def set_address_list(self, name: str, values: List[str]) -> None:
        self._address_lists[storage_key(name)] = [canonical_address(v, name=name) for v in values]

    def checkpoint(self) -> Any:
        return copy.deepcopy((self._uints, self._bools, self._addresses, self._address_lists))

    def rollback(self, token: Any) -> None:
        self._uints, self._bools, self._addresses, self._address_lists = copy.deepcopy(token)

    def __repr__(self) -> str:
        n = len(self._uints) + len(self._bools) + len(self._addresses) + len(self._address_lists)
        return f"EternalStorage({n} entries)"


def save_pool_state(store: EternalStorage, state: PoolState) -> None:
    d = state_to_dict(state)
    for name in UINT_FIELDS:
        store.set_uint(name, d[name])
    for name in BOOL_FIELDS:
        store.set_bool(name, d[name])
    for name in ADDRESS_FIELDS:
        store.set_address(name, d[name])
    for name in ADDRESS_LIST_FIELDS:
        store.set_address_list(name, d[name])
    store.set_bool(INITIALIZED_KEY, True)
    logger.debug("persisted pool state %s", pool_state_digest(state))


def load_pool_state(store: EternalStorage) -> PoolState | None:
    """Rebuild the pool state, or None if the store was never initialized."""
    if not store.get_bool(INITIALIZED_KEY):
        return None
    d: dict[str, Any] = {}
    for name in UINT_FIELDS:
        d[name] = store.get_uint(name)
    for name in BOOL_FIELDS:
        d[name] = store.get_bool(name)
    for name in ADDRESS_FIELDS:
        d[name] = store.get_address(name)
    for name in ADDRESS_LIST_FIELDS:
        d[name] = store.get_address_list(name)
    return state_from_dict(d)


def pool_state_digest(state: PoolState) -> str:
    """sha256 over the canonical JSON of the persisted layout."""
    return sha256_hex(canonical_json_bytes(state_to_dict(state)))
