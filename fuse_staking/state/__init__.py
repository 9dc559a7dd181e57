"""
In-memory collaborators and durable storage for the staking pool
"""

from .custody import InMemoryCustody
from .ledger import InMemoryClaimToken
from .registry import InMemoryRegistry
from .storage import EternalStorage, load_pool_state, pool_state_digest, save_pool_state

__all__ = [
    "InMemoryCustody",
    "InMemoryClaimToken",
    "InMemoryRegistry",
    "EternalStorage",
    "load_pool_state",
    "pool_state_digest",
    "save_pool_state",
]
