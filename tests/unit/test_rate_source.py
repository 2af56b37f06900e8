"""
tests/unit/test_rate_source.py - Cached rate reads.

Covers:
- fresh cache hits never touch the reader
- expiry costs exactly one refetch
- unavailable pools / failing RPC / timeouts degrade to None
- concurrent requests for one key share one read
- probe() raises on missing provider or failed block read
"""

import asyncio

import pytest

from core.constants import ErrorCode
from core.exceptions import InfraError
from core.models import ExchangeRate
from dex.rate_cache import RateCache, make_cache_key
from dex.rate_source import RateSource


@pytest.fixture
def source(fake_reader, clock):
    return RateSource({"mainnet": fake_reader}, cache=RateCache(ttl_seconds=10, clock=clock))


class TestCaching:
    """Cache idempotence and expiry."""

    @pytest.mark.asyncio
    async def test_second_call_hits_cache(self, source, fake_reader, weth, usdc, uniswap):
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)

        first = await source.get_rate(weth, usdc, uniswap)
        second = await source.get_rate(weth, usdc, uniswap)

        assert first == second == pytest.approx(2500.0)
        assert fake_reader.get_pair_calls == 1
        assert source.cache.hits == 1

    @pytest.mark.asyncio
    async def test_expiry_triggers_exactly_one_read(self, source, fake_reader, clock, weth, usdc, uniswap):
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)
        await source.get_rate(weth, usdc, uniswap)

        clock.advance(11)
        await source.get_rate(weth, usdc, uniswap)
        await source.get_rate(weth, usdc, uniswap)

        assert fake_reader.get_pair_calls == 2

    @pytest.mark.asyncio
    async def test_directions_cached_separately(self, source, fake_reader, weth, usdc, uniswap):
        """B->A is read from the pool, not inverted from A->B."""
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)

        forward = await source.get_rate(weth, usdc, uniswap)
        reverse = await source.get_rate(usdc, weth, uniswap)

        assert forward == pytest.approx(2500.0)
        assert reverse == pytest.approx(1 / 2500.0)
        assert fake_reader.get_pair_calls == 2
        assert make_cache_key(usdc, weth, uniswap) in source.cache

    @pytest.mark.asyncio
    async def test_unavailable_is_not_cached(self, source, fake_reader, weth, usdc, uniswap):
        assert await source.get_rate(weth, usdc, uniswap) is None
        assert await source.get_rate(weth, usdc, uniswap) is None

        assert fake_reader.get_pair_calls == 2
        assert len(source.cache) == 0


class TestUnavailable:
    """Failures degrade to None and never raise."""

    @pytest.mark.asyncio
    async def test_missing_pool(self, source, weth, dai, uniswap):
        assert await source.get_rate(weth, dai, uniswap) is None
        assert source.reads_unavailable == 1

    @pytest.mark.asyncio
    async def test_rpc_failure(self, source, fake_reader, weth, usdc, uniswap):
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)
        fake_reader.failing_factories.add(uniswap.factory.lower())

        assert await source.get_rate(weth, usdc, uniswap) is None

    @pytest.mark.asyncio
    async def test_no_reader_for_network(self, source, usdc, dai, quickswap):
        assert await source.get_rate(usdc, dai, quickswap) is None

    @pytest.mark.asyncio
    async def test_timeout(self, fake_reader, weth, usdc, uniswap):
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)
        fake_reader.hang = True
        source = RateSource({"mainnet": fake_reader}, read_timeout_seconds=0.05)

        assert await source.get_rate(weth, usdc, uniswap) is None
        assert source.reads_unavailable == 1

    @pytest.mark.asyncio
    async def test_partial_batch(self, source, fake_reader, weth, usdc, usdt, uniswap, sushiswap):
        """One failing venue does not affect the others."""
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)
        fake_reader.set_rate(sushiswap, weth, usdc, 2501.0)
        fake_reader.failing_factories.add(sushiswap.factory.lower())

        rates = await source.get_rates([
            (weth, usdc, uniswap),
            (weth, usdc, sushiswap),
            (weth, usdt, uniswap),
        ])

        assert rates[(weth, usdc, uniswap)] == pytest.approx(2500.0)
        assert rates[(weth, usdc, sushiswap)] is None
        assert rates[(weth, usdt, uniswap)] is None

    @pytest.mark.asyncio
    async def test_venue_read_yields_exchange_rate(self, source, fake_reader, weth, usdc, uniswap):
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)

        exchange_rate = await source._fetch(fake_reader, weth, usdc, uniswap)

        assert isinstance(exchange_rate, ExchangeRate)
        assert (exchange_rate.token_from, exchange_rate.token_to) == (weth, usdc)
        assert exchange_rate.venue == uniswap
        assert exchange_rate.rate == pytest.approx(2500.0)

    @pytest.mark.asyncio
    async def test_unexpected_read_error_is_unavailable(
        self, source, fake_reader, monkeypatch, weth, usdc, uniswap, sushiswap
    ):
        """A reader bug on one venue degrades that read only."""
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)
        fake_reader.set_rate(sushiswap, weth, usdc, 2501.0)
        get_pair = fake_reader.get_pair

        async def broken_on_sushiswap(factory, token_a, token_b):
            if factory.lower() == sushiswap.factory.lower():
                raise AttributeError("'list' object has no attribute 'get'")
            return await get_pair(factory, token_a, token_b)

        monkeypatch.setattr(fake_reader, "get_pair", broken_on_sushiswap)

        rates = await source.get_rates([(weth, usdc, uniswap), (weth, usdc, sushiswap)])

        assert rates[(weth, usdc, uniswap)] == pytest.approx(2500.0)
        assert rates[(weth, usdc, sushiswap)] is None
        assert source.reads_unavailable == 1
        assert make_cache_key(weth, usdc, sushiswap) not in source.cache


class TestConcurrency:
    """Single-flight reads and bounded parallelism."""

    @pytest.mark.asyncio
    async def test_concurrent_same_key_single_read(self, source, fake_reader, weth, usdc, uniswap):
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)
        fake_reader.gate = asyncio.Event()

        tasks = [asyncio.ensure_future(source.get_rate(weth, usdc, uniswap)) for _ in range(5)]
        await asyncio.sleep(0)
        fake_reader.gate.set()
        results = await asyncio.gather(*tasks)

        assert results == [pytest.approx(2500.0)] * 5
        assert fake_reader.get_pair_calls == 1

    @pytest.mark.asyncio
    async def test_get_rates_dedupes(self, source, fake_reader, weth, usdc, uniswap):
        fake_reader.set_rate(uniswap, weth, usdc, 2500.0)

        rates = await source.get_rates([(weth, usdc, uniswap)] * 3)

        assert len(rates) == 1
        assert fake_reader.get_pair_calls == 1

    def test_rejects_zero_concurrency(self, fake_reader):
        with pytest.raises(ValueError):
            RateSource({"mainnet": fake_reader}, max_concurrent_reads=0)


class TestProbe:
    """Connectivity probe."""

    @pytest.mark.asyncio
    async def test_probe_returns_block(self, source):
        block = await source.probe("mainnet")
        assert block.block_number == 19_000_000
        assert block.network == "mainnet"

    @pytest.mark.asyncio
    async def test_probe_unknown_network(self, source):
        with pytest.raises(InfraError) as exc_info:
            await source.probe("polygon")
        assert exc_info.value.code == ErrorCode.INFRA_NO_PROVIDER

    @pytest.mark.asyncio
    async def test_probe_failure_raises(self, source, fake_reader):
        fake_reader.provider.fail = True
        with pytest.raises(InfraError):
            await source.probe("mainnet")
