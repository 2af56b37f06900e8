"""
strategy/config.py - Scanner configuration.

Loaded once at process start from config/scanner.yaml, then environment
overrides (a .env file is honoured via python-dotenv).

ENV OVERRIDES:
  RPC_URL_<NETWORK>       endpoint tried first for that network (e.g. RPC_URL_MAINNET)
  MIN_PROFIT_THRESHOLD    float ratio
  GAS_PRICE_GWEI          float
  NATIVE_PRICE_QUOTE      float
  SCAN_INTERVAL_SECONDS   int
  ARB_DB_PATH             path
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from config import SCANNER_CONFIG, load_yaml
from core.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_GAS_LIMIT,
    DEFAULT_GAS_PRICE_GWEI,
    DEFAULT_MAX_CONCURRENT_READS,
    DEFAULT_MIN_PROFIT_THRESHOLD,
    DEFAULT_NATIVE_PRICE_QUOTE,
    DEFAULT_PRIMARY_NETWORK,
    DEFAULT_READ_TIMEOUT_SECONDS,
    DEFAULT_RPC_TIMEOUT_SECONDS,
    DEFAULT_SCAN_INTERVAL_SECONDS,
    DEFAULT_TRADE_AMOUNT,
    DEFAULT_TRIANGULAR_CANDIDATES,
)
from core.exceptions import ConfigError
from core.models import Token, Venue

DEFAULT_DB_PATH = "data/opportunities.db"


@dataclass
class NetworkConfig:
    """RPC access for one network."""
    chain_id: int
    rpc_urls: List[str] = field(default_factory=list)


@dataclass
class ScannerConfig:
    """Full scanner configuration."""

    # Profit model
    trade_amount: float = DEFAULT_TRADE_AMOUNT
    min_profit_threshold: float = DEFAULT_MIN_PROFIT_THRESHOLD

    # Cost model
    gas_price_gwei: float = DEFAULT_GAS_PRICE_GWEI
    gas_limit: int = DEFAULT_GAS_LIMIT
    native_price_quote: float = DEFAULT_NATIVE_PRICE_QUOTE

    # Reads
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    read_timeout_seconds: float = DEFAULT_READ_TIMEOUT_SECONDS
    max_concurrent_reads: int = DEFAULT_MAX_CONCURRENT_READS
    rpc_timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS

    # Scanning
    scan_interval_seconds: int = DEFAULT_SCAN_INTERVAL_SECONDS
    primary_network: str = DEFAULT_PRIMARY_NETWORK
    triangular_candidates: int = DEFAULT_TRIANGULAR_CANDIDATES

    # Universe
    networks: Dict[str, NetworkConfig] = field(default_factory=dict)
    venues: Dict[str, Dict[str, str]] = field(default_factory=dict)
    tokens: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)
    pairs: Dict[str, List[str]] = field(default_factory=dict)

    # Storage
    db_path: str = DEFAULT_DB_PATH

    def venue_list(self) -> List[Venue]:
        """Venues in config order."""
        return [
            Venue(
                key=key,
                name=cfg.get("name", key),
                factory=cfg["factory"],
                router=cfg.get("router", ""),
                network=cfg["network"],
            )
            for key, cfg in self.venues.items()
        ]

    def network_tokens(self, network: str) -> List[Token]:
        """Tokens of a network in table order."""
        return [
            Token(
                symbol=symbol,
                address=cfg["address"],
                decimals=int(cfg.get("decimals", 18)),
            )
            for symbol, cfg in self.tokens.get(network, {}).items()
        ]

    def token(self, network: str, symbol: str) -> Token:
        for token in self.network_tokens(network):
            if token.symbol == symbol:
                return token
        raise ConfigError(
            f"Unknown token {symbol} on {network}",
            details={"network": network, "symbol": symbol},
        )

    def token_pairs(self, network: str) -> List[Tuple[Token, Token]]:
        """Resolve "BASE/QUOTE" pair strings of a network."""
        resolved = []
        for pair in self.pairs.get(network, []):
            if "/" not in pair:
                raise ConfigError(f"Invalid pair format: {pair}", details={"network": network})
            base, quote = (part.strip() for part in pair.split("/", 1))
            resolved.append((self.token(network, base), self.token(network, quote)))
        return resolved

    def validate(self) -> None:
        if self.trade_amount <= 0:
            raise ConfigError("trade_amount must be positive")
        if self.min_profit_threshold < 0:
            raise ConfigError("min_profit_threshold must not be negative")
        if self.gas_limit <= 0 or self.gas_price_gwei < 0 or self.native_price_quote < 0:
            raise ConfigError("gas settings must be non-negative (gas_limit positive)")
        if self.cache_ttl_seconds < 0:
            raise ConfigError("cache_ttl_seconds must not be negative")
        if self.max_concurrent_reads < 1:
            raise ConfigError("max_concurrent_reads must be >= 1")
        if self.triangular_candidates < 0:
            raise ConfigError("triangular_candidates must not be negative")
        for key, cfg in self.venues.items():
            if "factory" not in cfg or "network" not in cfg:
                raise ConfigError(f"Venue {key} needs factory and network", details={"venue": key})
        for network in self.pairs:
            self.token_pairs(network)

    def summary(self) -> Dict[str, Any]:
        """Non-secret view of the configuration for startup logs."""
        return {
            "venue_count": len(self.venues),
            "rpc_configured": {
                network: bool(net.rpc_urls) for network, net in self.networks.items()
            },
            "scan_interval_seconds": self.scan_interval_seconds,
            "min_profit_threshold": self.min_profit_threshold,
            "primary_network": self.primary_network,
        }


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Top-level mapping by name; an empty key counts as an empty mapping."""
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(
            f"Config section '{name}' must be a mapping",
            details={"section": name, "type": type(value).__name__},
        )
    return value


def _parse_networks(data: Dict[str, Any]) -> Dict[str, NetworkConfig]:
    networks = {}
    for name, cfg in (data or {}).items():
        if "chain_id" not in cfg:
            raise ConfigError(f"Network {name} needs chain_id", details={"network": name})
        networks[name] = NetworkConfig(
            chain_id=int(cfg["chain_id"]),
            rpc_urls=list(cfg.get("rpc_urls") or []),
        )
    return networks


def _float_env(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def apply_env_overrides(config: ScannerConfig) -> ScannerConfig:
    """Apply environment overrides in place and return the config."""
    for network, net_cfg in config.networks.items():
        url = os.environ.get(f"RPC_URL_{network.upper()}")
        if url and url not in net_cfg.rpc_urls:
            net_cfg.rpc_urls.insert(0, url)

    threshold = _float_env("MIN_PROFIT_THRESHOLD")
    if threshold is not None:
        config.min_profit_threshold = threshold

    gas_price = _float_env("GAS_PRICE_GWEI")
    if gas_price is not None:
        config.gas_price_gwei = gas_price

    native_price = _float_env("NATIVE_PRICE_QUOTE")
    if native_price is not None:
        config.native_price_quote = native_price

    interval = _float_env("SCAN_INTERVAL_SECONDS")
    if interval is not None:
        config.scan_interval_seconds = int(interval)

    if os.environ.get("ARB_DB_PATH"):
        config.db_path = os.environ["ARB_DB_PATH"]

    return config


def load_scanner_config(
    config_path: Optional[Path] = None,
    use_env: bool = True,
) -> ScannerConfig:
    """
    Load scanner configuration from YAML.

    Args:
        config_path: Path to scanner.yaml (default: config/scanner.yaml)
        use_env: Apply .env / environment overrides

    Returns:
        Validated ScannerConfig
    """
    if config_path is None:
        config_path = SCANNER_CONFIG

    try:
        data = load_yaml(config_path)
    except FileNotFoundError as e:
        raise ConfigError(str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must hold a mapping: {config_path}")

    scan = _section(data, "scan")
    gas = _section(data, "gas")
    reads = _section(data, "reads")

    config = ScannerConfig(
        trade_amount=float(scan.get("trade_amount", DEFAULT_TRADE_AMOUNT)),
        min_profit_threshold=float(scan.get("min_profit_threshold", DEFAULT_MIN_PROFIT_THRESHOLD)),
        scan_interval_seconds=int(scan.get("interval_seconds", DEFAULT_SCAN_INTERVAL_SECONDS)),
        primary_network=scan.get("primary_network", DEFAULT_PRIMARY_NETWORK),
        triangular_candidates=int(scan.get("triangular_candidates", DEFAULT_TRIANGULAR_CANDIDATES)),
        gas_price_gwei=float(gas.get("price_gwei", DEFAULT_GAS_PRICE_GWEI)),
        gas_limit=int(gas.get("limit", DEFAULT_GAS_LIMIT)),
        native_price_quote=float(gas.get("native_price_quote", DEFAULT_NATIVE_PRICE_QUOTE)),
        cache_ttl_seconds=float(reads.get("cache_ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)),
        read_timeout_seconds=float(reads.get("timeout_seconds", DEFAULT_READ_TIMEOUT_SECONDS)),
        max_concurrent_reads=int(reads.get("max_concurrent", DEFAULT_MAX_CONCURRENT_READS)),
        rpc_timeout_seconds=float(reads.get("rpc_timeout_seconds", DEFAULT_RPC_TIMEOUT_SECONDS)),
        networks=_parse_networks(_section(data, "networks")),
        venues=_section(data, "venues"),
        tokens=_section(data, "tokens"),
        pairs=_section(data, "pairs"),
        db_path=_section(data, "storage").get("db_path", DEFAULT_DB_PATH),
    )

    if use_env:
        load_dotenv()
        apply_env_overrides(config)

    config.validate()
    return config
