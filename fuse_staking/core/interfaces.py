"""Collaborator interfaces consumed by the pool.

The pool never touches a settlement layer directly. Production adapters wrap
the real validator registry, claim-token contract and value custody; the
`fuse_staking.state` package ships in-memory implementations that enforce the
same capacity and ledger rules.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .types import Address


class ValidatorRegistry(ABC):
    """Capacity-constrained delegation targets (the consensus registry)."""

    @abstractmethod
    def max_stake_per_validator(self) -> int:
        """Global cap on total stake any single validator may hold."""

    @abstractmethod
    def stake_amount(self, validator: Address) -> int:
        """Total stake currently held by `validator`, from every delegator."""

    @abstractmethod
    def delegated_amount(self, delegator: Address, validator: Address) -> int:
        """Stake `delegator` has placed on `validator`."""

    @abstractmethod
    def delegate(self, validator: Address, amount: int) -> None:
        """Move `amount` of the pool's liquid balance onto `validator`."""

    @abstractmethod
    def withdraw(self, validator: Address, amount: int) -> None:
        """Pull `amount` of the pool's stake off `validator` back to its balance."""


class ClaimTokenLedger(ABC):
    """Fungible claim-token ledger. The pool is its only minter/burner."""

    @abstractmethod
    def mint(self, to: Address, amount: int) -> bool: ...

    @abstractmethod
    def burn(self, amount: int) -> None:
        """Burn `amount` from the pool's own token balance."""

    @abstractmethod
    def transfer_from(self, sender: Address, recipient: Address, amount: int) -> bool: ...

    @abstractmethod
    def total_supply(self) -> int: ...

    @abstractmethod
    def balance_of(self, holder: Address) -> int: ...


class AssetCustody(ABC):
    """The pool's liquid base-asset balance."""

    @abstractmethod
    def balance(self) -> int: ...

    @abstractmethod
    def receive(self, sender: Address, amount: int) -> None:
        """Accept the value attached to a deposit call."""

    @abstractmethod
    def send(self, to: Address, amount: int) -> bool:
        """Pay `amount` out to `to`. Returns False if the transfer failed."""


class Checkpointable(ABC):
    """Collaborators that can undo their own mutations.

    The pool service checkpoints every collaborator implementing this before a
    mutating call and rolls them back if the call fails, which gives in-memory
    deployments the same all-or-nothing semantics a transactional settlement
    layer provides.
    """

    @abstractmethod
    def checkpoint(self) -> Any: ...

    @abstractmethod
    def rollback(self, token: Any) -> None: ...
