"""
Pooled-staking accounting engine
"""

from .integration import StakingPool, build_local_pool

__all__ = ["StakingPool", "build_local_pool"]
__version__ = "0.1.0"
