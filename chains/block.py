"""
chains/block.py - Block number probe.

The latest block number is the connectivity check run before every scan.
"""

from dataclasses import dataclass

from core.constants import ErrorCode
from core.exceptions import InfraError
from core.logging import get_logger
from core.time import now_ms
from chains.providers import RPCProvider

logger = get_logger(__name__)


@dataclass
class BlockState:
    """Latest block seen on a network."""
    network: str
    chain_id: int
    block_number: int
    timestamp_ms: int
    latency_ms: int


async def fetch_block_number(provider: RPCProvider) -> BlockState:
    """
    Fetch current block number from RPC.

    Raises:
        InfraError: If block fetch fails
    """
    try:
        block_number, latency_ms = await provider.get_block_number()
    except InfraError:
        raise
    except (TypeError, ValueError) as e:
        raise InfraError(
            f"Failed to fetch block number: {e}",
            code=ErrorCode.INFRA_RPC_ERROR,
            details={"chain_id": provider.chain_id, "network": provider.network},
        ) from e

    state = BlockState(
        network=provider.network,
        chain_id=provider.chain_id,
        block_number=block_number,
        timestamp_ms=now_ms(),
        latency_ms=latency_ms,
    )

    logger.debug(
        f"Fetched block {block_number} (network={provider.network}, latency={latency_ms}ms)"
    )

    return state
