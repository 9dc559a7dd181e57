"""Tests for fuse_staking/core/fixed_point.py."""

import pytest

from fuse_staking.core.fixed_point import (
    RATIO_SCALE,
    protocol_fee,
    ratio_increment,
    tokens_for_value,
    value_for_tokens,
)


class TestConversions:
    def test_peg_is_one_to_one(self):
        assert tokens_for_value(123, RATIO_SCALE) == 123
        assert value_for_tokens(123, RATIO_SCALE) == 123

    def test_truncates(self):
        ratio = 1_095_000_000_000_000_000
        assert tokens_for_value(50, ratio) == 45
        assert value_for_tokens(45, ratio) == 49

    def test_zero_ratio_rejected(self):
        with pytest.raises(ValueError):
            tokens_for_value(1, 0)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            value_for_tokens(True, RATIO_SCALE)


class TestFee:
    def test_bps(self):
        assert protocol_fee(1_000, 500) == 50
        assert protocol_fee(19, 500) == 0

    def test_cap(self):
        assert protocol_fee(10_000, 2_000) == 2_000
        with pytest.raises(ValueError):
            protocol_fee(10_000, 2_001)

    def test_ratio_increment_zero_supply(self):
        assert ratio_increment(1_000, 0) == 0
        assert ratio_increment(950, 10_000) == 95 * 10**15
