"""
dex/adapters/ - DEX-specific read adapters.

Adapters:
- uniswap_v2: constant-product factory/pair reader
"""

from dex.adapters.uniswap_v2 import (
    PoolReserves,
    UniswapV2Reader,
    reserves_to_rate,
)

__all__ = [
    "PoolReserves",
    "UniswapV2Reader",
    "reserves_to_rate",
]
