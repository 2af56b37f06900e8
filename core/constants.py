# PATH: core/constants.py
"""
Constants for ARBSCAN.

Contains enums, defaults, and unit conversion constants.
"""

from decimal import Decimal
from enum import Enum
from typing import Final

# =============================================================================
# UNITS
# =============================================================================

WEI_PER_GWEI: Final[Decimal] = Decimal(10**9)
WEI_PER_ETHER: Final[Decimal] = Decimal(10**18)

ZERO_ADDRESS: Final[str] = "0x" + "0" * 40

# =============================================================================
# DEFAULTS
# =============================================================================

# Notional trade size, in units of the initiating token
DEFAULT_TRADE_AMOUNT = 1000.0

# Net profit must exceed trade_amount * threshold
DEFAULT_MIN_PROFIT_THRESHOLD = 0.01

# Gas assumptions for a single swap
DEFAULT_GAS_LIMIT = 300_000
DEFAULT_GAS_PRICE_GWEI = 20

# Native currency price in the profit currency (e.g. USD per ETH).
# Fixed assumption, drifts from reality under volatile markets.
DEFAULT_NATIVE_PRICE_QUOTE = 2000.0

# Rate cache
DEFAULT_CACHE_TTL_SECONDS = 10.0

# Rate reads
DEFAULT_READ_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_CONCURRENT_READS = 8
DEFAULT_RPC_TIMEOUT_SECONDS = 10

# Scanning
DEFAULT_SCAN_INTERVAL_SECONDS = 30
DEFAULT_PRIMARY_NETWORK = "mainnet"
DEFAULT_TRIANGULAR_CANDIDATES = 4

# Swaps in a triangular cycle
TRIANGULAR_LEGS = 3

# Trade simulation (dry-run only)
SIMULATION_GAS_ESTIMATE = 300_000
SIMULATION_SLIPPAGE = 0.005


class ErrorCode(str, Enum):
    """Error codes carried by ScannerError and subclasses."""
    # Infrastructure
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    INFRA_TIMEOUT = "INFRA_TIMEOUT"
    INFRA_NO_PROVIDER = "INFRA_NO_PROVIDER"

    # Pools
    POOL_NOT_FOUND = "POOL_NOT_FOUND"
    POOL_EMPTY_RESERVES = "POOL_EMPTY_RESERVES"
    POOL_DECODE_ERROR = "POOL_DECODE_ERROR"

    # Config / storage
    CONFIG_INVALID = "CONFIG_INVALID"
    STORE_WRITE_FAILED = "STORE_WRITE_FAILED"
    STORE_READ_FAILED = "STORE_READ_FAILED"

    UNKNOWN = "UNKNOWN"


class ScanState(str, Enum):
    """Scan orchestrator states."""
    IDLE = "IDLE"
    RUNNING = "RUNNING"


class ScanStatus(str, Enum):
    """Outcome of a single scan pass."""
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
