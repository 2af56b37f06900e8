#!/usr/bin/env python3
"""
strategy/jobs/run_scan.py - CLI entrypoint for arbitrage scanning.

Features:
- Initial scan, then one scan per interval
- SIGINT/SIGTERM cancel the in-flight scan and shut down cleanly
- Report of stored opportunities, with optional dry-run simulation

Usage:
    python -m strategy.jobs.run_scan scan --once
    python -m strategy.jobs.run_scan scan --interval 15
    python -m strategy.jobs.run_scan report --limit 20 --profitable --simulate
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional
from uuid import uuid4

import click

from core.exceptions import ConfigError
from core.logging import get_logger, set_global_context, setup_logging
from chains.providers import ProviderRegistry
from storage.opportunity_store import OpportunityStore
from strategy.config import ScannerConfig, load_scanner_config
from strategy.scanner import ScanOrchestrator, build_scanner
from strategy.simulation import simulate_trade_execution

logger = get_logger("arbscan.scan")


async def run_scanner(
    orchestrator: ScanOrchestrator,
    interval_seconds: float,
    once: bool = False,
    stop_event: Optional[asyncio.Event] = None,
) -> int:
    """
    Scan loop. Returns the number of passes started.

    A set stop_event ends the loop; the in-flight scan is cancelled by the
    signal handler, not here.
    """
    stop_event = stop_event or asyncio.Event()
    passes = 0

    while not stop_event.is_set():
        summary = await orchestrator.start_scan()
        if summary is not None:
            passes += 1
        if once:
            break
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    return passes


async def _scan_main(config: ScannerConfig, interval: float, once: bool) -> int:
    registry = ProviderRegistry()
    store = OpportunityStore(Path(config.db_path))
    orchestrator = build_scanner(config, registry, store)
    stop_event = asyncio.Event()

    def handle_shutdown(signum: int) -> None:
        logger.info("Shutdown requested", extra={"context": {"signal": signum}})
        stop_event.set()
        orchestrator.cancel()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, handle_shutdown, signum)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    logger.info(
        f"Starting arbitrage scanner with {interval}s intervals",
        extra={"context": config.summary()},
    )

    try:
        return await run_scanner(orchestrator, interval, once=once, stop_event=stop_event)
    finally:
        await registry.close_all()
        store.close()
        logger.info("Scanner stopped", extra={"context": {"scans": orchestrator.scan_count}})


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Path to scanner.yaml")
@click.option("--log-level", "-l", default="INFO",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]))
@click.option("--json-logs/--no-json-logs", default=False)
@click.option("--log-file", type=click.Path(), default=None, help="Also write JSON logs here")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    log_level: str,
    json_logs: bool,
    log_file: Optional[str],
) -> None:
    """DEX arbitrage scanner."""
    setup_logging(
        level=getattr(logging, log_level),
        log_file=log_file,
        json_format=json_logs,
    )
    try:
        ctx.obj = load_scanner_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.option("--interval", "-i", type=float, default=None,
              help="Seconds between scans (default: from config)")
@click.option("--once", is_flag=True, help="Run a single scan and exit")
@click.pass_obj
def scan(config: ScannerConfig, interval: Optional[float], once: bool) -> None:
    """Scan venues for direct and triangular opportunities."""
    if not config.networks.get(config.primary_network) or not config.networks[config.primary_network].rpc_urls:
        raise click.ClickException(
            f"No RPC endpoint for {config.primary_network}; "
            f"set RPC_URL_{config.primary_network.upper()} in .env"
        )

    set_global_context(run_id=uuid4().hex[:12])
    interval = interval if interval is not None else config.scan_interval_seconds
    asyncio.run(_scan_main(config, interval, once))


@cli.command()
@click.option("--limit", "-n", default=20, show_default=True)
@click.option("--profitable", is_flag=True, help="Only profitable records")
@click.option("--simulate", is_flag=True, help="Dry-run each listed profitable record")
@click.pass_obj
def report(config: ScannerConfig, limit: int, profitable: bool, simulate: bool) -> None:
    """Print recent stored opportunities and summary stats."""
    store = OpportunityStore(Path(config.db_path))
    try:
        direct = store.recent_direct(limit=limit, only_profitable=profitable)
        triangular = store.recent_triangular(limit=limit, only_profitable=profitable)
        stats = store.stats()
    finally:
        store.close()

    click.echo(f"Direct opportunities ({len(direct)}):")
    for op in direct:
        flag = "*" if op.is_profitable else " "
        click.echo(
            f" {flag} {op.timestamp:%Y-%m-%d %H:%M:%S} {op.token_pair:<12} "
            f"{op.venue_a}={op.price_a:.6f} {op.venue_b}={op.price_b:.6f} "
            f"net={op.net_profit:.2f} ({op.profit_percentage:.3f}%)"
        )

    click.echo(f"Triangular opportunities ({len(triangular)}):")
    for op in triangular:
        flag = "*" if op.is_profitable else " "
        click.echo(
            f" {flag} {op.timestamp:%Y-%m-%d %H:%M:%S} {op.venue:<10} {op.path} "
            f"return={op.expected_return:.6f} net={op.net_profit:.2f}"
        )

    if simulate:
        click.echo("Simulations:")
        for op in [*direct, *triangular]:
            if op.is_profitable:
                sim = simulate_trade_execution(op)
                click.echo(f"   expected_output={sim.expected_output:.2f} gas={sim.estimated_gas}")

    click.echo("Stats:")
    for key, value in stats.items():
        click.echo(f"   {key}: {value}")


def main() -> None:
    cli()


if __name__ == "__main__":
    sys.exit(main())
