"""
strategy/scanner.py - Scan orchestrator.

SCAN PASS CONTRACT:
  IDLE -> RUNNING -> IDLE

  1. start_scan() while RUNNING: no-op, one "skipped" notice per call
  2. scan counter += 1
  3. connectivity probe; failure ends this pass with status FAILED
  4. pairwise detection (own failure boundary)
  5. triangular detection (own failure boundary; never masks step 4)
  6. hand records to the store; write failures are logged, not raised
  7. summary log; back to IDLE in all cases (finally)

The busy guard is an asyncio.Lock checked with locked() before acquiring.
Acquiring a free asyncio.Lock does not suspend, so check-and-acquire is
atomic on the event loop and safe under concurrent manual triggers.

cancel() cancels the in-flight pass. Cancellation reaches every pending
rate read; the pass reports CANCELLED.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

from core.constants import ScanState, ScanStatus
from core.exceptions import InfraError
from core.logging import get_logger
from core.models import DirectOpportunity, TriangularOpportunity, Venue
from core.time import now_ms, now_utc
from chains.providers import ProviderRegistry
from dex.adapters.uniswap_v2 import UniswapV2Reader
from dex.rate_cache import RateCache
from dex.rate_source import RateSource
from strategy.config import ScannerConfig
from strategy.direct import DirectDetector, TokenPair
from strategy.gas import GasCostModel
from strategy.triangular import TriangularDetector

logger = get_logger(__name__)


class OpportunitySink(Protocol):
    """Write side of the opportunity store."""

    def record_direct(self, opportunity: DirectOpportunity) -> int: ...

    def record_triangular(self, opportunity: TriangularOpportunity) -> int: ...


@dataclass
class ScanSummary:
    """Outcome of one scan pass."""
    scan_number: int
    status: ScanStatus
    started_at: datetime
    block_number: Optional[int] = None
    direct_total: int = 0
    direct_profitable: int = 0
    triangular_total: int = 0
    triangular_profitable: int = 0
    direct_error: Optional[str] = None
    triangular_error: Optional[str] = None
    error: Optional[str] = None
    duration_ms: int = 0
    direct: List[DirectOpportunity] = field(default_factory=list, repr=False)
    triangular: List[TriangularOpportunity] = field(default_factory=list, repr=False)

    @property
    def total_opportunities(self) -> int:
        return self.direct_total + self.triangular_total

    @property
    def total_profitable(self) -> int:
        return self.direct_profitable + self.triangular_profitable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan_number": self.scan_number,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "block_number": self.block_number,
            "direct_total": self.direct_total,
            "direct_profitable": self.direct_profitable,
            "triangular_total": self.triangular_total,
            "triangular_profitable": self.triangular_profitable,
            "direct_error": self.direct_error,
            "triangular_error": self.triangular_error,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


class ScanOrchestrator:
    """
    Drives scan passes. At most one pass runs at a time.

    Usage:
        orchestrator = ScanOrchestrator(rate_source, direct, triangular, pairs, venues, "mainnet", store)
        summary = await orchestrator.start_scan()
    """

    def __init__(
        self,
        rate_source: RateSource,
        direct_detector: DirectDetector,
        triangular_detector: TriangularDetector,
        token_pairs: Dict[str, Sequence[TokenPair]],
        venues: Sequence[Venue],
        probe_network: str,
        store: Optional[OpportunitySink] = None,
    ):
        self.rate_source = rate_source
        self.direct_detector = direct_detector
        self.triangular_detector = triangular_detector
        self.token_pairs = token_pairs
        self.venues = list(venues)
        self.probe_network = probe_network
        self.store = store

        self.scan_count = 0
        self._busy = asyncio.Lock()
        self._task: Optional["asyncio.Task[ScanSummary]"] = None
        self._cancel_requested = False

    @property
    def state(self) -> ScanState:
        return ScanState.RUNNING if self._busy.locked() else ScanState.IDLE

    async def start_scan(self) -> Optional[ScanSummary]:
        """
        Run one scan pass.

        Returns:
            ScanSummary, or None if a pass was already running
        """
        if self._busy.locked():
            logger.info(
                "Scan already in progress, skipping",
                extra={"context": {"running_scan": self.scan_count}},
            )
            return None

        async with self._busy:
            self.scan_count += 1
            scan_number = self.scan_count
            started_at = now_utc()
            start_ms = now_ms()

            self._task = asyncio.ensure_future(self._run_pass(scan_number, started_at))
            try:
                summary = await self._task
            except asyncio.CancelledError:
                if not self._cancel_requested:
                    raise
                logger.warning(f"Scan #{scan_number} cancelled")
                summary = ScanSummary(
                    scan_number=scan_number,
                    status=ScanStatus.CANCELLED,
                    started_at=started_at,
                    error="cancelled",
                )
            except Exception as e:
                logger.error(f"Scan #{scan_number} failed: {e}", exc_info=True)
                summary = ScanSummary(
                    scan_number=scan_number,
                    status=ScanStatus.FAILED,
                    started_at=started_at,
                    error=str(e) or type(e).__name__,
                )
            finally:
                self._task = None
                self._cancel_requested = False

            summary.duration_ms = now_ms() - start_ms
            return summary

    def cancel(self) -> bool:
        """Cancel the in-flight pass. Returns False when idle."""
        if self._task is None or self._task.done():
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True

    async def _run_pass(self, scan_number: int, started_at: datetime) -> ScanSummary:
        logger.info(f"Starting arbitrage scan #{scan_number}")

        try:
            block = await self.rate_source.probe(self.probe_network)
        except InfraError as e:
            logger.error(
                f"Connectivity probe failed, scan #{scan_number} aborted: {e}",
                extra={"context": {"network": self.probe_network, "code": e.code.value}},
            )
            return ScanSummary(
                scan_number=scan_number,
                status=ScanStatus.FAILED,
                started_at=started_at,
                error=str(e),
            )
        except Exception as e:
            logger.error(
                f"Connectivity probe raised unexpectedly, scan #{scan_number} aborted: {e}",
                extra={"context": {"network": self.probe_network}},
                exc_info=True,
            )
            return ScanSummary(
                scan_number=scan_number,
                status=ScanStatus.FAILED,
                started_at=started_at,
                error=str(e) or type(e).__name__,
            )

        logger.info(
            f"Connected to {self.probe_network}, latest block: {block.block_number}",
            extra={"context": {"latency_ms": block.latency_ms}},
        )
        summary = ScanSummary(
            scan_number=scan_number,
            status=ScanStatus.COMPLETED,
            started_at=started_at,
            block_number=block.block_number,
        )

        try:
            summary.direct = await self._detect_direct()
        except Exception as e:
            summary.direct_error = str(e)
            logger.error(f"Pairwise detection failed in scan #{scan_number}: {e}", exc_info=True)
        else:
            self._persist(summary.direct)
            summary.direct_total = len(summary.direct)
            summary.direct_profitable = sum(1 for op in summary.direct if op.is_profitable)
            logger.info(
                f"Pairwise scan completed: {summary.direct_total} opportunities, "
                f"{summary.direct_profitable} profitable"
            )

        try:
            summary.triangular = await self.triangular_detector.detect(self.venues)
        except Exception as e:
            summary.triangular_error = str(e)
            logger.warning(
                f"Triangular scan failed, continuing with pairwise results: {e}",
                exc_info=True,
            )
        else:
            self._persist(summary.triangular)
            summary.triangular_total = len(summary.triangular)
            summary.triangular_profitable = sum(1 for op in summary.triangular if op.is_profitable)
            logger.info(
                f"Triangular scan completed: {summary.triangular_total} opportunities, "
                f"{summary.triangular_profitable} profitable"
            )

        if summary.total_profitable > 0:
            logger.info(
                f"Scan #{scan_number} summary: {summary.total_profitable} profitable opportunities",
                extra={"context": summary.to_dict()},
            )
        else:
            logger.info(
                f"Scan #{scan_number} summary: no profitable opportunities at current gas prices",
                extra={"context": summary.to_dict()},
            )

        return summary

    async def _detect_direct(self) -> List[DirectOpportunity]:
        opportunities: List[DirectOpportunity] = []
        for network, pairs in self.token_pairs.items():
            venues = [v for v in self.venues if v.network == network]
            if len(venues) < 2 or not pairs:
                continue
            logger.info(f"Scanning {len(pairs)} token pairs across {len(venues)} venues on {network}")
            opportunities.extend(await self.direct_detector.detect(pairs, venues))
        return opportunities

    def _persist(self, opportunities: Sequence[Any]) -> None:
        """
        Log profitable records and hand every record to the store.

        Store writes are synchronous sqlite3 inserts made on the event loop.
        A pass writes at most a few dozen rows, so the loop is blocked only
        briefly, and no other pass can run concurrently anyway.
        """
        for opportunity in opportunities:
            if opportunity.is_profitable:
                self._log_profitable(opportunity)
            if self.store is None:
                continue
            try:
                if isinstance(opportunity, DirectOpportunity):
                    self.store.record_direct(opportunity)
                else:
                    self.store.record_triangular(opportunity)
            except Exception as e:
                logger.error(
                    f"Failed to store opportunity: {e}",
                    extra={"context": {"kind": type(opportunity).__name__}},
                )

    @staticmethod
    def _log_profitable(opportunity: Any) -> None:
        if isinstance(opportunity, DirectOpportunity):
            logger.info(
                f"Profitable arbitrage found: {opportunity.token_pair} - "
                f"{opportunity.venue_a}({opportunity.price_a:.4f}) vs "
                f"{opportunity.venue_b}({opportunity.price_b:.4f}) - "
                f"net profit {opportunity.net_profit:.2f}"
            )
        else:
            logger.info(
                f"Triangular arbitrage found on {opportunity.venue}: {opportunity.path}, "
                f"expected return {opportunity.expected_return:.4f}, "
                f"net profit {opportunity.net_profit:.2f}"
            )


def build_scanner(
    config: ScannerConfig,
    registry: ProviderRegistry,
    store: Optional[OpportunitySink] = None,
) -> ScanOrchestrator:
    """Wire providers, rate source, cost model and detectors from config."""
    readers: Dict[str, UniswapV2Reader] = {}
    for network, net_cfg in config.networks.items():
        provider = registry.register(
            network,
            net_cfg.chain_id,
            net_cfg.rpc_urls,
            timeout_seconds=config.rpc_timeout_seconds,
        )
        readers[network] = UniswapV2Reader(provider)

    rate_source = RateSource(
        readers,
        cache=RateCache(ttl_seconds=config.cache_ttl_seconds),
        read_timeout_seconds=config.read_timeout_seconds,
        max_concurrent_reads=config.max_concurrent_reads,
    )
    cost_model = GasCostModel(
        gas_limit=config.gas_limit,
        gas_price_gwei=config.gas_price_gwei,
        native_price_quote=config.native_price_quote,
    )
    direct = DirectDetector(
        rate_source,
        cost_model,
        trade_amount=config.trade_amount,
        min_profit_threshold=config.min_profit_threshold,
    )
    triangular = TriangularDetector(
        rate_source,
        cost_model,
        tokens=config.network_tokens(config.primary_network),
        trade_amount=config.trade_amount,
        min_profit_threshold=config.min_profit_threshold,
        primary_network=config.primary_network,
        candidate_limit=config.triangular_candidates,
    )

    return ScanOrchestrator(
        rate_source=rate_source,
        direct_detector=direct,
        triangular_detector=triangular,
        token_pairs={network: config.token_pairs(network) for network in config.pairs},
        venues=config.venue_list(),
        probe_network=config.primary_network,
        store=store,
    )
