"""
dex/rate_source.py - Cached exchange-rate reads across venues.

RATE SOURCE CONTRACT:
- get_rate() returns "token_to per 1 token_from" or None (unavailable)
- A fresh cache hit never touches the network
- A miss costs exactly one venue read: getPair -> getReserves -> token0
- Missing pool, RPC fault, decode fault, timeout, any other read
  error -> None, logged once
- probe() is the only call that raises (InfraError); it gates a scan pass

CONCURRENCY:
- Reads for distinct keys run in parallel, bounded by a semaphore
- Concurrent requests for the same key share one in-flight read, so the
  cache is written once per fetch and no lock is held across network I/O
- Every read carries its own timeout
- Cancelling a caller cancels its pending reads
"""

import asyncio
from typing import Dict, Iterable, Optional, Tuple

from core.constants import (
    DEFAULT_MAX_CONCURRENT_READS,
    DEFAULT_READ_TIMEOUT_SECONDS,
    ErrorCode,
)
from core.exceptions import InfraError, PoolError
from core.logging import get_logger
from core.models import ExchangeRate, Token, Venue
from chains.block import BlockState, fetch_block_number
from dex.adapters.uniswap_v2 import UniswapV2Reader, reserves_to_rate
from dex.rate_cache import CacheKey, RateCache, make_cache_key

logger = get_logger(__name__)

RateRequest = Tuple[Token, Token, Venue]


class RateSource:
    """
    Leaf of the detection pipeline.

    Usage:
        source = RateSource({"mainnet": UniswapV2Reader(provider)})
        await source.probe("mainnet")
        rate = await source.get_rate(weth, usdc, uniswap)
    """

    def __init__(
        self,
        readers: Dict[str, UniswapV2Reader],
        cache: Optional[RateCache] = None,
        read_timeout_seconds: float = DEFAULT_READ_TIMEOUT_SECONDS,
        max_concurrent_reads: int = DEFAULT_MAX_CONCURRENT_READS,
    ):
        if max_concurrent_reads < 1:
            raise ValueError("max_concurrent_reads must be >= 1")
        self.readers = readers
        self.cache = cache if cache is not None else RateCache()
        self.read_timeout_seconds = read_timeout_seconds
        self._semaphore = asyncio.Semaphore(max_concurrent_reads)
        self._inflight: Dict[CacheKey, "asyncio.Task[Optional[float]]"] = {}

        self.reads_total = 0
        self.reads_unavailable = 0

    async def probe(self, network: str) -> BlockState:
        """
        Confirm the network is reachable.

        Raises:
            InfraError: No provider for the network, or the block read failed
        """
        reader = self.readers.get(network)
        if reader is None:
            raise InfraError(
                f"No provider for network: {network}",
                code=ErrorCode.INFRA_NO_PROVIDER,
                details={"network": network},
            )
        return await fetch_block_number(reader.provider)

    async def get_rate(
        self,
        token_from: Token,
        token_to: Token,
        venue: Venue,
    ) -> Optional[float]:
        """Rate for one direction on one venue, or None if unavailable."""
        key = make_cache_key(token_from, token_to, venue)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._read(key, token_from, token_to, venue))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))

        return await task

    async def get_rates(
        self,
        requests: Iterable[RateRequest],
    ) -> Dict[RateRequest, Optional[float]]:
        """
        Resolve many (token_from, token_to, venue) requests concurrently.

        Partial results are normal: unavailable requests map to None.
        """
        unique = list(dict.fromkeys(requests))
        results = await asyncio.gather(*(self.get_rate(*req) for req in unique))
        return dict(zip(unique, results))

    def _forget(self, key: CacheKey, task: "asyncio.Task[Optional[float]]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _read(
        self,
        key: CacheKey,
        token_from: Token,
        token_to: Token,
        venue: Venue,
    ) -> Optional[float]:
        label = f"{token_from.symbol}->{token_to.symbol} on {venue.name}"
        self.reads_total += 1

        reader = self.readers.get(venue.network)
        if reader is None:
            self.reads_unavailable += 1
            logger.info(
                f"No provider for network {venue.network}, {label} unavailable",
                extra={"context": {"venue": venue.key, "network": venue.network}},
            )
            return None

        async with self._semaphore:
            try:
                exchange_rate = await asyncio.wait_for(
                    self._fetch(reader, token_from, token_to, venue),
                    timeout=self.read_timeout_seconds,
                )
            except asyncio.TimeoutError:
                self.reads_unavailable += 1
                logger.info(
                    f"Rate read timed out: {label}",
                    extra={"context": {"code": ErrorCode.INFRA_TIMEOUT.value, "timeout_s": self.read_timeout_seconds}},
                )
                return None
            except PoolError as e:
                self.reads_unavailable += 1
                logger.debug(
                    f"Rate unavailable: {label}: {e}",
                    extra={"context": {"code": e.code.value, **e.details}},
                )
                return None
            except InfraError as e:
                self.reads_unavailable += 1
                logger.info(
                    f"Rate read failed: {label}: {e}",
                    extra={"context": {"code": e.code.value}},
                )
                return None
            except ValueError as e:
                self.reads_unavailable += 1
                logger.info(f"Rate read returned malformed data: {label}: {e}")
                return None
            except Exception as e:
                self.reads_unavailable += 1
                logger.warning(f"Unexpected rate read failure: {label}: {e}", exc_info=True)
                return None

        self.cache.set(key, exchange_rate.rate)
        return exchange_rate.rate

    async def _fetch(
        self,
        reader: UniswapV2Reader,
        token_from: Token,
        token_to: Token,
        venue: Venue,
    ) -> ExchangeRate:
        pair_address = await reader.get_pair(venue.factory, token_from.address, token_to.address)
        if pair_address is None:
            raise PoolError(
                f"No pair for {token_from.symbol}/{token_to.symbol}",
                code=ErrorCode.POOL_NOT_FOUND,
                details={"venue": venue.key, "factory": venue.factory},
            )

        pool = await reader.read_pool(pair_address)
        rate = reserves_to_rate(
            pool.reserve0,
            pool.reserve1,
            pool.token0,
            token_from,
            token_to,
        )
        return ExchangeRate(token_from, token_to, venue, rate)
