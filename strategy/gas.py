"""
strategy/gas.py - Gas cost model.

cost = gas_limit * gas_price (gwei -> wei -> native) * native_price_quote * multiplier

native_price_quote is a fixed configured conversion rate, not a live price;
under volatile markets the estimate drifts accordingly.
"""

from dataclasses import dataclass
from decimal import Decimal

from core.constants import (
    DEFAULT_GAS_LIMIT,
    DEFAULT_GAS_PRICE_GWEI,
    DEFAULT_NATIVE_PRICE_QUOTE,
    WEI_PER_ETHER,
    WEI_PER_GWEI,
)


@dataclass(frozen=True)
class GasCostModel:
    """Fixed-size gas expenditure estimate, in the profit currency."""
    gas_limit: int = DEFAULT_GAS_LIMIT
    gas_price_gwei: float = DEFAULT_GAS_PRICE_GWEI
    native_price_quote: float = DEFAULT_NATIVE_PRICE_QUOTE

    @property
    def gas_cost_native(self) -> Decimal:
        """Cost of one swap in native currency (e.g. ETH)."""
        gas_price_wei = Decimal(str(self.gas_price_gwei)) * WEI_PER_GWEI
        return Decimal(self.gas_limit) * gas_price_wei / WEI_PER_ETHER

    def estimate_gas_cost(self, multiplier: int = 1) -> float:
        """
        Estimate execution cost for `multiplier` on-chain swaps.

        With the defaults (300k gas, 20 gwei, 2000/native) one swap costs 12.0.
        """
        cost = self.gas_cost_native * Decimal(str(self.native_price_quote))
        return float(cost * multiplier)
