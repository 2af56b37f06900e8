"""
dex/adapters/uniswap_v2.py - Constant-product (Uniswap V2 style) pool reader.

Covers every V2 fork that exposes the same factory/pair interface
(Uniswap V2, SushiSwap, QuickSwap).

Reads:
- factory.getPair(tokenA, tokenB) -> pair address (zero address if none)
- pair.getReserves() -> (reserve0, reserve1, blockTimestampLast)
- pair.token0() -> canonical first asset
"""

from dataclasses import dataclass
from decimal import Decimal

from core.constants import ErrorCode, ZERO_ADDRESS
from core.exceptions import PoolError
from core.logging import get_logger
from core.models import Token
from chains.providers import RPCProvider

logger = get_logger(__name__)


# =============================================================================
# ABI ENCODING
# =============================================================================

# keccak256("getPair(address,address)")[:4]
SELECTOR_GET_PAIR = "0xe6a43905"
# keccak256("getReserves()")[:4]
SELECTOR_GET_RESERVES = "0x0902f1ac"
# keccak256("token0()")[:4]
SELECTOR_TOKEN0 = "0x0dfe1681"

WORD_HEX = 64


def encode_address(address: str) -> str:
    """Left-pad an address to one 32-byte word (no 0x)."""
    return address.lower().replace("0x", "").zfill(WORD_HEX)


def encode_get_pair(token_a: str, token_b: str) -> str:
    """Encode factory.getPair(tokenA, tokenB)."""
    return f"{SELECTOR_GET_PAIR}{encode_address(token_a)}{encode_address(token_b)}"


def _strip(hex_result: str | None, min_words: int, what: str) -> str:
    if not hex_result or hex_result == "0x":
        raise PoolError(
            f"Empty {what} response",
            code=ErrorCode.POOL_DECODE_ERROR,
        )
    data = hex_result[2:] if hex_result.startswith("0x") else hex_result
    if len(data) < min_words * WORD_HEX:
        raise PoolError(
            f"{what} response too short: {len(data)} chars",
            code=ErrorCode.POOL_DECODE_ERROR,
            details={"data_length": len(data), "raw": hex_result[:100]},
        )
    return data


def decode_address(hex_result: str | None) -> str:
    """Decode a single address return value."""
    data = _strip(hex_result, 1, "address")
    return "0x" + data[WORD_HEX - 40:WORD_HEX]


def decode_reserves(hex_result: str | None) -> tuple[int, int]:
    """
    Decode getReserves() response.

    Returns:
        (reserve0, reserve1); blockTimestampLast is dropped
    """
    data = _strip(hex_result, 3, "getReserves")
    return int(data[0:WORD_HEX], 16), int(data[WORD_HEX:2 * WORD_HEX], 16)


def reserves_to_rate(
    reserve0: int,
    reserve1: int,
    token0: str,
    token_from: Token,
    token_to: Token,
) -> float:
    """
    Orient pool reserves into "token_to per 1 token_from".

    Reserves are scaled by token decimals before dividing.

    Raises:
        PoolError: If either oriented reserve is not positive
    """
    if token_from.same_address(token0):
        reserve_from, reserve_to = reserve0, reserve1
    else:
        reserve_from, reserve_to = reserve1, reserve0

    if reserve_from <= 0 or reserve_to <= 0:
        raise PoolError(
            "Pool has empty reserves",
            code=ErrorCode.POOL_EMPTY_RESERVES,
            details={"reserve0": reserve0, "reserve1": reserve1},
        )

    amount_from = Decimal(reserve_from) / Decimal(10**token_from.decimals)
    amount_to = Decimal(reserve_to) / Decimal(10**token_to.decimals)
    return float(amount_to / amount_from)


# =============================================================================
# READER
# =============================================================================

@dataclass
class PoolReserves:
    """Raw reserve snapshot of a pair contract."""
    pair_address: str
    token0: str
    reserve0: int
    reserve1: int


class UniswapV2Reader:
    """
    Venue read provider for constant-product pools on one network.

    Usage:
        reader = UniswapV2Reader(provider)
        pair = await reader.get_pair(factory, weth.address, usdc.address)
        reserves = await reader.read_pool(pair)
    """

    def __init__(self, provider: RPCProvider):
        self.provider = provider

    @property
    def network(self) -> str:
        return self.provider.network

    async def get_pair(self, factory: str, token_a: str, token_b: str) -> str | None:
        """Resolve the pair address, or None when the factory has no pool."""
        response = await self.provider.eth_call(
            to=factory,
            data=encode_get_pair(token_a, token_b),
        )
        pair_address = decode_address(response.result)
        if pair_address.lower() == ZERO_ADDRESS:
            return None
        return pair_address

    async def get_reserves(self, pair_address: str) -> tuple[int, int]:
        response = await self.provider.eth_call(to=pair_address, data=SELECTOR_GET_RESERVES)
        return decode_reserves(response.result)

    async def token0(self, pair_address: str) -> str:
        response = await self.provider.eth_call(to=pair_address, data=SELECTOR_TOKEN0)
        return decode_address(response.result)

    async def read_pool(self, pair_address: str) -> PoolReserves:
        """Read reserves and the canonical first asset of a pair."""
        reserve0, reserve1 = await self.get_reserves(pair_address)
        token0 = await self.token0(pair_address)
        return PoolReserves(
            pair_address=pair_address,
            token0=token0,
            reserve0=reserve0,
            reserve1=reserve1,
        )
