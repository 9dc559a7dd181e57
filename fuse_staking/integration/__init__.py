"""
Pool service and deployment wiring.
"""

from .config import PoolConfig, load_pool_config, pool_config_from_mapping
from .local import LocalDeployment, build_local_pool
from .pool import StakingPool

__all__ = [
    "PoolConfig",
    "load_pool_config",
    "pool_config_from_mapping",
    "LocalDeployment",
    "build_local_pool",
    "StakingPool",
]
