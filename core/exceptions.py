# PATH: core/exceptions.py
"""
Typed exceptions for ARBSCAN.

Infra vs pool distinction: infra errors mean the network is unhealthy,
pool errors mean the data for one token combination is missing.
"""

from typing import Optional

from core.constants import ErrorCode


class ScannerError(Exception):
    """Base exception for ARBSCAN."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class InfraError(ScannerError):
    """Infrastructure-related errors (RPC, timeouts, missing provider)."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INFRA_RPC_ERROR,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class PoolError(ScannerError):
    """Pool missing, empty, or returned undecodable data."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.POOL_NOT_FOUND,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class ConfigError(ScannerError):
    """Invalid scanner configuration."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.CONFIG_INVALID, details)


class StoreError(ScannerError):
    """Opportunity store read/write failed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.STORE_WRITE_FAILED,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)
