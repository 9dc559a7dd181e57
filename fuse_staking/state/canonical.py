"""
Deterministic canonical encoding for pool addresses, storage keys and
persisted snapshots.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any


ADDRESS_NBYTES = 20

# NUL-terminated so no variable name can extend the prefix.
STORAGE_KEY_PREFIX = b"fuse_staking:storage:v1\x00"

_ADDRESS_RE = re.compile(r"^[0-9a-fA-F]{%d}$" % (2 * ADDRESS_NBYTES))


def _reject_floats(value: Any) -> None:
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, dict):
        if not all(isinstance(k, str) for k in value):
            raise TypeError("dict keys must be str for canonical encoding")
        for v in value.values():
            _reject_floats(v)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _reject_floats(item)


def canonical_json_bytes(value: Any) -> bytes:
    """Sorted-key, whitespace-free UTF-8 JSON of ints, bools, strs and containers."""
    _reject_floats(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), allow_nan=False).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def canonical_address(value: str, *, name: str = "address") -> str:
    """Lowercase `0x` + 40 hex chars; the prefix is optional on input."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str")
    body = value.strip()
    if body[:2].lower() == "0x":
        body = body[2:]
    if not _ADDRESS_RE.fullmatch(body):
        raise ValueError(f"{name} must be a {ADDRESS_NBYTES}-byte hex address")
    return "0x" + body.lower()


def storage_key(name: str) -> str:
    """Stable storage slot id for a named variable: sha256(prefix || name)."""
    if not isinstance(name, str) or not name:
        raise TypeError("storage key name must be a non-empty str")
    return sha256_hex(STORAGE_KEY_PREFIX + name.encode("utf-8"))
