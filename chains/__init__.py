"""
chains/ - Blockchain interaction layer.

Modules:
- providers: JSON-RPC provider management with failover
- block: Block number probe
"""

from chains.providers import (
    RPCProvider,
    RPCResponse,
    RPCStats,
    ProviderRegistry,
    resolve_rpc_urls,
)
from chains.block import (
    BlockState,
    fetch_block_number,
)

__all__ = [
    # Providers
    "RPCProvider",
    "RPCResponse",
    "RPCStats",
    "ProviderRegistry",
    "resolve_rpc_urls",
    # Block
    "BlockState",
    "fetch_block_number",
]
