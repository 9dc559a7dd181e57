"""
In-memory validator registry.

Enforces the global per-validator cap on *total* stake (the pool's plus any
external delegators'), and moves value between the registry and the pool's
custody on delegate/withdraw. Rewards are paid straight into custody.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Tuple

from ..core.errors import CapacityError
from ..core.interfaces import Checkpointable, ValidatorRegistry
from ..core.types import Address
from .canonical import canonical_address
from .custody import InMemoryCustody

logger = logging.getLogger(__name__)


class InMemoryRegistry(ValidatorRegistry, Checkpointable):
    def __init__(self, *, custody: InMemoryCustody, delegator: Address, max_stake: int):
        if max_stake <= 0:
            raise ValueError(f"max_stake must be positive: {max_stake}")
        self.custody = custody
        self.delegator = canonical_address(delegator, name="delegator")
        self._max_stake = max_stake
        self._stakes: Dict[Address, int] = {}
        self._delegations: Dict[Tuple[Address, Address], int] = {}

    def max_stake_per_validator(self) -> int:
        return self._max_stake

    def stake_amount(self, validator: Address) -> int:
        return self._stakes.get(canonical_address(validator, name="validator"), 0)

    def delegated_amount(self, delegator: Address, validator: Address) -> int:
        key = (canonical_address(delegator, name="delegator"), canonical_address(validator, name="validator"))
        return self._delegations.get(key, 0)

    def delegate(self, validator: Address, amount: int) -> None:
        validator = canonical_address(validator, name="validator")
        if amount <= 0:
            raise ValueError(f"delegation must be positive: {amount}")
        if self.stake_amount(validator) + amount > self._max_stake:
            raise CapacityError(f"validator {validator} would exceed max stake {self._max_stake}")
        self.custody.debit(amount)
        self._stakes[validator] = self.stake_amount(validator) + amount
        key = (self.delegator, validator)
        self._delegations[key] = self._delegations.get(key, 0) + amount
        logger.debug("delegate %d -> %s", amount, validator)

    def withdraw(self, validator: Address, amount: int) -> None:
        validator = canonical_address(validator, name="validator")
        if amount <= 0:
            raise ValueError(f"withdrawal must be positive: {amount}")
        key = (self.delegator, validator)
        held = self._delegations.get(key, 0)
        if held < amount:
            raise CapacityError(f"delegator holds {held} on {validator}, cannot withdraw {amount}")
        self._delegations[key] = held - amount
        self._stakes[validator] -= amount
        self.custody.credit(amount)
        logger.debug("withdraw %d <- %s", amount, validator)

    def add_external_stake(self, validator: Address, amount: int) -> None:
        """Stake placed on `validator` by someone other than the pool."""
        validator = canonical_address(validator, name="validator")
        if amount < 0 or self.stake_amount(validator) + amount > self._max_stake:
            raise CapacityError(f"external stake {amount} does not fit on {validator}")
        self._stakes[validator] = self.stake_amount(validator) + amount

    def accrue_rewards(self, amount: int) -> None:
        """Pay block rewards for the pool's delegations into its custody."""
        self.custody.credit(amount)

    def checkpoint(self) -> Any:
        return copy.deepcopy((self._stakes, self._delegations))

    def rollback(self, token: Any) -> None:
        self._stakes, self._delegations = copy.deepcopy(token)
