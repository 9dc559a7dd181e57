"""
In-memory base-asset custody for the pool.

Tracks the pool's liquid balance and what each recipient has been paid.
Recipients may register a receive hook, which runs during `send` the way a
contract's fallback runs during a value transfer; if the hook raises a
`PoolError` the transfer is undone and reported as failed.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Set

from ..core.errors import PoolError
from ..core.interfaces import AssetCustody, Checkpointable
from ..core.types import Address
from .canonical import canonical_address

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[int], None]


class InMemoryCustody(AssetCustody, Checkpointable):
    def __init__(self) -> None:
        self._balance = 0
        self._paid: Dict[Address, int] = {}
        self._received: Dict[Address, int] = {}
        self._hooks: Dict[Address, ReceiveHook] = {}
        self._refusing: Set[Address] = set()

    def balance(self) -> int:
        return self._balance

    def credit(self, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"credit must be non-negative: {amount}")
        self._balance += amount

    def debit(self, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"debit must be non-negative: {amount}")
        if amount > self._balance:
            raise ValueError(f"Insufficient pool balance: {self._balance} < {amount}")
        self._balance -= amount

    def receive(self, sender: Address, amount: int) -> None:
        sender = canonical_address(sender, name="sender")
        self.credit(amount)
        self._received[sender] = self._received.get(sender, 0) + amount

    def send(self, to: Address, amount: int) -> bool:
        to = canonical_address(to, name="to")
        if amount < 0 or amount > self._balance or to in self._refusing:
            logger.warning("payout of %d to %s refused", amount, to)
            return False
        self._balance -= amount
        self._paid[to] = self._paid.get(to, 0) + amount
        hook = self._hooks.get(to)
        if hook is None:
            return True
        try:
            hook(amount)
        except PoolError as exc:
            self._balance += amount
            self._paid[to] -= amount
            logger.warning("receive hook of %s reverted: %s", to, exc)
            return False
        return True

    def paid_to(self, recipient: Address) -> int:
        return self._paid.get(canonical_address(recipient, name="recipient"), 0)

    def received_from(self, sender: Address) -> int:
        return self._received.get(canonical_address(sender, name="sender"), 0)

    def set_receive_hook(self, recipient: Address, hook: ReceiveHook | None) -> None:
        recipient = canonical_address(recipient, name="recipient")
        if hook is None:
            self._hooks.pop(recipient, None)
        else:
            self._hooks[recipient] = hook

    def refuse_payments(self, recipient: Address, refuse: bool = True) -> None:
        recipient = canonical_address(recipient, name="recipient")
        if refuse:
            self._refusing.add(recipient)
        else:
            self._refusing.discard(recipient)

    def checkpoint(self) -> Any:
        return (self._balance, copy.deepcopy(self._paid), copy.deepcopy(self._received))

    def rollback(self, token: Any) -> None:
        balance, paid, received = token
        self._balance = balance
        self._paid = copy.deepcopy(paid)
        self._received = copy.deepcopy(received)
