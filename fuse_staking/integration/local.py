"""
In-memory deployment of a pool.

Wires `StakingPool` to the in-memory registry, claim token, custody and
storage. Used by the test-suite and for offline simulation.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..state.custody import InMemoryCustody
from ..state.ledger import InMemoryClaimToken
from ..state.registry import InMemoryRegistry
from ..state.storage import EternalStorage
from .pool import StakingPool


@dataclass
class LocalDeployment:
    pool: StakingPool
    registry: InMemoryRegistry
    token: InMemoryClaimToken
    custody: InMemoryCustody
    store: EternalStorage

    def reopen(self) -> StakingPool:
        """A fresh service instance reading the same store and collaborators."""
        return StakingPool.restore(
            self.store,
            address=self.pool.address,
            registry=self.registry,
            token=self.token,
            custody=self.custody,
        )


def build_local_pool(*, pool_address: str, max_stake_per_validator: int) -> LocalDeployment:
    custody = InMemoryCustody()
    registry = InMemoryRegistry(custody=custody, delegator=pool_address, max_stake=max_stake_per_validator)
    token = InMemoryClaimToken(minter=pool_address)
    store = EternalStorage()
    pool = StakingPool(address=pool_address, registry=registry, token=token, custody=custody, store=store)
    return LocalDeployment(pool=pool, registry=registry, token=token, custody=custody, store=store)
