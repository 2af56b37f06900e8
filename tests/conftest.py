# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for ARBSCAN tests.
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional, Set, Tuple

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.constants import ErrorCode
from core.exceptions import InfraError
from core.models import Token, Venue
from dex.adapters.uniswap_v2 import PoolReserves


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# FAKES
# =============================================================================

class FakeProvider:
    """Answers the block-number probe."""

    def __init__(self, network: str = "mainnet", chain_id: int = 1, block_number: int = 19_000_000):
        self.network = network
        self.chain_id = chain_id
        self.block_number = block_number
        self.fail = False

    async def get_block_number(self) -> Tuple[int, int]:
        if self.fail:
            raise InfraError(f"All RPC endpoints failed for {self.network}")
        return self.block_number, 12


class FakeReader:
    """
    In-memory stand-in for UniswapV2Reader.

    Pools are keyed by (factory, {token addresses}); set_rate() creates a pool
    whose token0 is token_from, so rate == reserve1 / reserve0 in human units.
    """

    def __init__(self, network: str = "mainnet"):
        self.provider = FakeProvider(network)
        self._pairs: Dict[Tuple[str, frozenset], str] = {}
        self._pools: Dict[str, PoolReserves] = {}
        self.get_pair_calls = 0
        self.failing_factories: Set[str] = set()
        self.gate: Optional[asyncio.Event] = None
        self.hang = False

    @property
    def network(self) -> str:
        return self.provider.network

    def set_rate(self, venue: Venue, token_from: Token, token_to: Token, rate: float) -> str:
        pair_address = "0x" + f"{len(self._pools) + 1:040x}"
        reserve0 = 1000 * 10**token_from.decimals
        reserve1 = int(Decimal(str(rate)) * 1000 * 10**token_to.decimals)
        key = (venue.factory.lower(), frozenset({token_from.address_lower, token_to.address_lower}))
        self._pairs[key] = pair_address
        self._pools[pair_address] = PoolReserves(
            pair_address=pair_address,
            token0=token_from.address,
            reserve0=reserve0,
            reserve1=reserve1,
        )
        return pair_address

    async def get_pair(self, factory: str, token_a: str, token_b: str) -> Optional[str]:
        self.get_pair_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.hang:
            await asyncio.sleep(3600)
        if factory.lower() in self.failing_factories:
            raise InfraError(
                "All RPC endpoints failed",
                code=ErrorCode.INFRA_RPC_ERROR,
            )
        return self._pairs.get((factory.lower(), frozenset({token_a.lower(), token_b.lower()})))

    async def read_pool(self, pair_address: str) -> PoolReserves:
        return self._pools[pair_address]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def weth() -> Token:
    return Token("WETH", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 18)


@pytest.fixture
def usdc() -> Token:
    return Token("USDC", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6)


@pytest.fixture
def usdt() -> Token:
    return Token("USDT", "0xdAC17F958D2ee523a2206206994597C13D831ec7", 6)


@pytest.fixture
def dai() -> Token:
    return Token("DAI", "0x6B175474E89094C44Da98b954EedeAC495271d0F", 18)


@pytest.fixture
def uniswap() -> Venue:
    return Venue(
        key="uniswap",
        name="Uniswap V2",
        factory="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
        router="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
        network="mainnet",
    )


@pytest.fixture
def sushiswap() -> Venue:
    return Venue(
        key="sushiswap",
        name="SushiSwap",
        factory="0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac",
        router="0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F",
        network="mainnet",
    )


@pytest.fixture
def shibaswap() -> Venue:
    return Venue(
        key="shibaswap",
        name="ShibaSwap",
        factory="0x115934131916C8b277DD010Ee02de363c09d037c",
        router="0x03f7724180AA6b939894B5Ca4314783B0b36b329",
        network="mainnet",
    )


@pytest.fixture
def quickswap() -> Venue:
    return Venue(
        key="quickswap",
        name="QuickSwap",
        factory="0x5757371414417b8C6CAd45bAeF941aBc7d3Ab32",
        router="0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff",
        network="polygon",
    )


@pytest.fixture
def fake_reader() -> FakeReader:
    return FakeReader("mainnet")


@pytest.fixture
def reader_factory():
    """FakeReader constructor, for tests that need more than one network."""
    return FakeReader


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
