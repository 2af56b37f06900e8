"""
core - Core utilities and models for ARBSCAN.

This package contains:
- models.py: Data models (Token, Venue, ExchangeRate, opportunities)
- constants.py: Enums, defaults and unit constants
- exceptions.py: Typed exceptions with error codes
- time.py: Timestamps and TTL freshness
- logging.py: Structured JSON logging
"""

from core.constants import (
    ErrorCode,
    ScanState,
    ScanStatus,
)
from core.exceptions import (
    ConfigError,
    InfraError,
    PoolError,
    ScannerError,
    StoreError,
)
from core.models import (
    DirectOpportunity,
    ExchangeRate,
    Token,
    TriangularOpportunity,
    Venue,
    is_profitable,
)

__all__ = [
    # Constants
    "ErrorCode",
    "ScanState",
    "ScanStatus",
    # Exceptions
    "ConfigError",
    "InfraError",
    "PoolError",
    "ScannerError",
    "StoreError",
    # Models
    "DirectOpportunity",
    "ExchangeRate",
    "Token",
    "TriangularOpportunity",
    "Venue",
    "is_profitable",
]
