"""
In-memory claim-token ledger.

Implements `ClaimTokenLedger` over a balance table `holder -> amount` plus an
allowance table `(owner, spender) -> amount`. Only the configured minter (the
pool) may mint or burn.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Tuple

from ..core.interfaces import Checkpointable, ClaimTokenLedger
from ..core.types import Address
from .canonical import canonical_address

logger = logging.getLogger(__name__)


class InMemoryClaimToken(ClaimTokenLedger, Checkpointable):
    """
    Deterministic balance table for the pool's claim token.

    Zero balances are dropped to keep the table sparse.
    """

    def __init__(self, minter: Address):
        self.minter = canonical_address(minter, name="minter")
        self._balances: Dict[Address, int] = {}
        self._allowances: Dict[Tuple[Address, Address], int] = {}
        self._supply = 0

    def balance_of(self, holder: Address) -> int:
        return self._balances.get(canonical_address(holder, name="holder"), 0)

    def total_supply(self) -> int:
        return self._supply

    def allowance(self, owner: Address, spender: Address) -> int:
        key = (canonical_address(owner, name="owner"), canonical_address(spender, name="spender"))
        return self._allowances.get(key, 0)

    def approve(self, owner: Address, spender: Address, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"allowance cannot be negative: {amount}")
        key = (canonical_address(owner, name="owner"), canonical_address(spender, name="spender"))
        self._allowances[key] = amount

    def mint(self, to: Address, amount: int) -> bool:
        if amount < 0:
            raise ValueError(f"mint amount cannot be negative: {amount}")
        self._add(canonical_address(to, name="to"), amount)
        self._supply += amount
        return True

    def burn(self, amount: int) -> None:
        """
        Burn from the minter's own balance.

        Raises:
            ValueError: If the minter holds less than `amount`
        """
        if amount < 0:
            raise ValueError(f"burn amount cannot be negative: {amount}")
        self._add(self.minter, -amount)
        self._supply -= amount

    def transfer(self, sender: Address, recipient: Address, amount: int) -> bool:
        sender = canonical_address(sender, name="sender")
        if amount < 0 or self.balance_of(sender) < amount:
            return False
        self._add(sender, -amount)
        self._add(canonical_address(recipient, name="recipient"), amount)
        return True

    def transfer_from(self, sender: Address, recipient: Address, amount: int) -> bool:
        """Move `amount` on behalf of `sender`, spending the minter's allowance."""
        sender = canonical_address(sender, name="sender")
        allowed = self.allowance(sender, self.minter)
        if amount < 0 or allowed < amount or self.balance_of(sender) < amount:
            logger.debug("transfer_from %s rejected: allowance %d, amount %d", sender, allowed, amount)
            return False
        self._allowances[(sender, self.minter)] = allowed - amount
        return self.transfer(sender, recipient, amount)

    def _add(self, holder: Address, delta: int) -> None:
        current = self._balances.get(holder, 0)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(f"Insufficient balance: {current} + {delta} = {new_balance} < 0")
        if new_balance == 0:
            self._balances.pop(holder, None)
        else:
            self._balances[holder] = new_balance

    def checkpoint(self) -> Any:
        return copy.deepcopy((self._balances, self._allowances, self._supply))

    def rollback(self, token: Any) -> None:
        self._balances, self._allowances, self._supply = copy.deepcopy(token)

    def __repr__(self) -> str:
        return f"InMemoryClaimToken({len(self._balances)} holders, supply={self._supply})"
