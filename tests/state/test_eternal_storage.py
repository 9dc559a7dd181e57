"""Tests for fuse_staking/state/storage.py and canonical.py."""

from dataclasses import replace

import pytest

from fuse_staking.core import ZERO_ADDRESS, initial_state
from fuse_staking.state import EternalStorage, load_pool_state, pool_state_digest, save_pool_state
from fuse_staking.state.canonical import (
    STORAGE_KEY_PREFIX,
    canonical_address,
    canonical_json_bytes,
    sha256_hex,
    storage_key,
)
from tests.pool_harness import OWNER, REGISTRY, TOKEN, TREASURY, V1, V2


def _state():
    return initial_state(
        owner=OWNER,
        initial_validator=V1,
        registry_ref=REGISTRY,
        token_ledger_ref=TOKEN,
        treasury=TREASURY,
        initial_timestamp=7,
        stake_limit=99,
        epoch_interval=3,
    )


class TestCanonical:
    def test_address_lowercased_and_prefixed(self):
        raw = "AB" * 20
        assert canonical_address(raw) == "0x" + "ab" * 20
        assert canonical_address("0X" + raw) == "0x" + "ab" * 20

    def test_address_length_checked(self):
        with pytest.raises(ValueError):
            canonical_address("0x1234")

    def test_address_hex_checked(self):
        with pytest.raises(ValueError):
            canonical_address("0x" + "zz" * 20)

    def test_storage_key_is_stable_and_distinct(self):
        assert storage_key("epoch") == storage_key("epoch")
        assert storage_key("epoch") != storage_key("epoch_interval")
        assert storage_key("epoch").startswith("0x")
        assert len(storage_key("epoch")) == 66

    def test_storage_key_is_prefixed_hash(self):
        assert storage_key("epoch") == sha256_hex(STORAGE_KEY_PREFIX + b"epoch")
        with pytest.raises(TypeError):
            storage_key("")

    def test_canonical_json_rejects_floats(self):
        with pytest.raises(TypeError):
            canonical_json_bytes({"a": 1.5})
        assert canonical_json_bytes({"b": 1, "a": [True]}) == b'{"a":[true],"b":1}'


class TestTypedStore:
    def test_unset_keys_read_as_zero_values(self):
        store = EternalStorage()
        assert store.get_uint("x") == 0
        assert store.get_bool("x") is False
        assert store.get_address("x") == ZERO_ADDRESS
        assert store.get_address_list("x") == []

    def test_typed_setters_validate(self):
        store = EternalStorage()
        with pytest.raises(TypeError):
            store.set_uint("x", -1)
        with pytest.raises(TypeError):
            store.set_bool("x", 1)  # type: ignore[arg-type]
        with pytest.raises(ValueError):
            store.set_address("x", "0x12")

    def test_address_list_is_copied(self):
        store = EternalStorage()
        store.set_address_list("validators", [V1])
        got = store.get_address_list("validators")
        got.append(V2)
        assert store.get_address_list("validators") == [V1]

    def test_checkpoint_rollback(self):
        store = EternalStorage()
        store.set_uint("n", 1)
        token = store.checkpoint()
        store.set_uint("n", 2)
        store.set_bool("flag", True)
        store.rollback(token)
        assert store.get_uint("n") == 1
        assert store.get_bool("flag") is False


class TestPoolStatePersistence:
    def test_uninitialized_store_loads_none(self):
        assert load_pool_state(EternalStorage()) is None

    def test_save_then_load(self):
        store = EternalStorage()
        s = replace(_state(), validators=(V1, V2), validator_index=1, epoch=4)
        save_pool_state(store, s)
        assert load_pool_state(store) == s

    def test_digest_tracks_content(self):
        s = _state()
        assert pool_state_digest(s) == pool_state_digest(replace(s))
        assert pool_state_digest(s) != pool_state_digest(replace(s, epoch=1))
