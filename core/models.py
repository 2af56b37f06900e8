# PATH: core/models.py
"""
Core data models for ARBSCAN.

PRICE CONTRACT
==============
A rate is ALWAYS "token_to per 1 token_from" on one venue, in human units
(reserves scaled by token decimals). Rates are strictly positive; a missing
rate is None, never 0.

OPPORTUNITY CONTRACT
====================
Shared by DirectOpportunity and TriangularOpportunity:
  net_profit    = potential_profit - gas_cost
  is_profitable = net_profit > trade_amount * min_profit_threshold

Records are immutable once created.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Any, Dict

from core.time import now_utc, parse_iso


def is_profitable(net_profit: float, trade_amount: float, min_profit_threshold: float) -> bool:
    """Classify an opportunity as actionable."""
    return net_profit > trade_amount * min_profit_threshold


@dataclass(frozen=True)
class Token:
    """ERC-20 token on a network."""
    symbol: str
    address: str
    decimals: int = 18

    @property
    def address_lower(self) -> str:
        return self.address.lower()

    def same_address(self, other: str) -> bool:
        return self.address_lower == other.lower()


@dataclass(frozen=True)
class Venue:
    """
    A constant-product DEX deployment on one network.

    `key` is the config identifier (e.g. "uniswap"), `name` the display name
    used in cache keys (e.g. "Uniswap V2").
    """
    key: str
    name: str
    factory: str
    router: str
    network: str


@dataclass(frozen=True)
class ExchangeRate:
    """One unit of token_from buys `rate` units of token_to on venue."""
    token_from: Token
    token_to: Token
    venue: Venue
    rate: float

    def __post_init__(self):
        if not self.rate > 0:
            raise ValueError(f"Exchange rate must be positive, got {self.rate}")


@dataclass(frozen=True)
class DirectOpportunity:
    """Same token pair priced differently on two venues."""
    token_pair: str
    venue_a: str
    venue_b: str
    price_a: float
    price_b: float
    price_difference: float
    trade_amount: float
    potential_profit: float
    gas_cost: float
    net_profit: float
    profit_percentage: float
    is_profitable: bool
    timestamp: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirectOpportunity":
        data = dict(data)
        if isinstance(data.get("timestamp"), str):
            data["timestamp"] = parse_iso(data["timestamp"])
        data["is_profitable"] = bool(data["is_profitable"])
        return cls(**data)


@dataclass(frozen=True)
class TriangularOpportunity:
    """Three-token cycle A -> B -> C -> A on a single venue."""
    token_a: str
    token_b: str
    token_c: str
    venue: str
    rate_ab: float
    rate_bc: float
    rate_ca: float
    expected_return: float
    trade_amount: float
    potential_profit: float
    gas_cost: float
    net_profit: float
    is_profitable: bool
    timestamp: datetime = field(default_factory=now_utc)

    @property
    def path(self) -> str:
        return f"{self.token_a} -> {self.token_b} -> {self.token_c} -> {self.token_a}"

    @property
    def profit_percentage(self) -> float:
        return self.net_profit / self.trade_amount * 100

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriangularOpportunity":
        data = dict(data)
        if isinstance(data.get("timestamp"), str):
            data["timestamp"] = parse_iso(data["timestamp"])
        data["is_profitable"] = bool(data["is_profitable"])
        return cls(**data)
