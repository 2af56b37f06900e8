"""
strategy/simulation.py - Dry-run trade estimate.

Nothing is signed or submitted. Gas and slippage are fixed assumptions.
"""

from dataclasses import dataclass, asdict
from typing import Union

from core.constants import SIMULATION_GAS_ESTIMATE, SIMULATION_SLIPPAGE
from core.logging import get_logger
from core.models import DirectOpportunity, TriangularOpportunity
from core.time import now_iso

logger = get_logger(__name__)

Opportunity = Union[DirectOpportunity, TriangularOpportunity]


@dataclass(frozen=True)
class TradeSimulation:
    success: bool
    estimated_gas: int
    estimated_slippage: float
    expected_output: float
    timestamp: str

    def to_dict(self) -> dict:
        return asdict(self)


def describe(opportunity: Opportunity) -> str:
    if isinstance(opportunity, DirectOpportunity):
        return f"{opportunity.token_pair} {opportunity.venue_a}/{opportunity.venue_b}"
    return f"{opportunity.path} on {opportunity.venue}"


def simulate_trade_execution(
    opportunity: Opportunity,
    estimated_gas: int = SIMULATION_GAS_ESTIMATE,
    estimated_slippage: float = SIMULATION_SLIPPAGE,
) -> TradeSimulation:
    """expected_output = trade_amount * (1 + profit_percentage / 100)"""
    logger.info(f"Simulating trade execution: {describe(opportunity)}")
    return TradeSimulation(
        success=True,
        estimated_gas=estimated_gas,
        estimated_slippage=estimated_slippage,
        expected_output=opportunity.trade_amount * (1 + opportunity.profit_percentage / 100),
        timestamp=now_iso(),
    )
