"""
strategy/triangular.py - Triangular (single-venue cycle) arbitrage detection.

Cycle: A -> B -> C -> A. The third leg is C->A, which closes the cycle.

  expected_return  = rate_ab * rate_bc * rate_ca
  potential_profit = (expected_return - 1) * trade_amount
  gas_cost         = three swaps

CANDIDATES:
Triplets are drawn from the first `candidate_limit` tokens of the primary
network's token table, as index-ascending combinations (i < j < k).
Growth is cubic in the candidate count, hence the cap.

Only venues on the primary network are scanned. A triplet/venue with any
missing leg is skipped entirely; no partial records.
"""

from dataclasses import dataclass
from itertools import combinations
from typing import List, Optional, Sequence, Tuple

from core.constants import (
    DEFAULT_MIN_PROFIT_THRESHOLD,
    DEFAULT_PRIMARY_NETWORK,
    DEFAULT_TRADE_AMOUNT,
    DEFAULT_TRIANGULAR_CANDIDATES,
    TRIANGULAR_LEGS,
)
from core.logging import get_logger
from core.models import Token, TriangularOpportunity, Venue, is_profitable
from dex.rate_source import RateRequest, RateSource
from strategy.gas import GasCostModel

logger = get_logger(__name__)

Triplet = Tuple[Token, Token, Token]


def compute_expected_return(rate_ab: float, rate_bc: float, rate_ca: float) -> float:
    """Multiplicative return of moving one unit of A around the cycle."""
    return rate_ab * rate_bc * rate_ca


def candidate_triplets(tokens: Sequence[Token], candidate_limit: int) -> List[Triplet]:
    """Index-ascending triplets over the first `candidate_limit` tokens."""
    return list(combinations(tokens[:candidate_limit], 3))


def cycle_legs(triplet: Triplet, venue: Venue) -> Tuple[RateRequest, RateRequest, RateRequest]:
    token_a, token_b, token_c = triplet
    return (
        (token_a, token_b, venue),
        (token_b, token_c, venue),
        (token_c, token_a, venue),
    )


@dataclass(frozen=True)
class TriangularProfit:
    expected_return: float
    potential_profit: float
    gas_cost: float
    net_profit: float
    is_profitable: bool


def calculate_triangular_profit(
    rate_ab: float,
    rate_bc: float,
    rate_ca: float,
    trade_amount: float,
    gas_cost: float,
    min_profit_threshold: float,
) -> TriangularProfit:
    expected_return = compute_expected_return(rate_ab, rate_bc, rate_ca)
    potential_profit = (expected_return - 1) * trade_amount
    net_profit = potential_profit - gas_cost
    return TriangularProfit(
        expected_return=expected_return,
        potential_profit=potential_profit,
        gas_cost=gas_cost,
        net_profit=net_profit,
        is_profitable=is_profitable(net_profit, trade_amount, min_profit_threshold),
    )


class TriangularDetector:
    """Evaluates three-token cycles on each primary-network venue."""

    def __init__(
        self,
        rate_source: RateSource,
        cost_model: GasCostModel,
        tokens: Sequence[Token],
        trade_amount: float = DEFAULT_TRADE_AMOUNT,
        min_profit_threshold: float = DEFAULT_MIN_PROFIT_THRESHOLD,
        primary_network: str = DEFAULT_PRIMARY_NETWORK,
        candidate_limit: int = DEFAULT_TRIANGULAR_CANDIDATES,
    ):
        self.rate_source = rate_source
        self.cost_model = cost_model
        self.tokens = list(tokens)
        self.trade_amount = trade_amount
        self.min_profit_threshold = min_profit_threshold
        self.primary_network = primary_network
        self.candidate_limit = candidate_limit

    @property
    def triplets(self) -> List[Triplet]:
        return candidate_triplets(self.tokens, self.candidate_limit)

    async def detect(self, venues: Sequence[Venue]) -> List[TriangularOpportunity]:
        """One TriangularOpportunity per (triplet, venue) with all three legs present."""
        primary = [v for v in venues if v.network == self.primary_network]
        triplets = self.triplets
        if not primary or not triplets:
            logger.debug(
                "Nothing to scan for triangular cycles",
                extra={"context": {"venues": len(primary), "triplets": len(triplets)}},
            )
            return []

        requests: List[RateRequest] = [
            leg
            for venue in primary
            for triplet in triplets
            for leg in cycle_legs(triplet, venue)
        ]
        rates = await self.rate_source.get_rates(requests)

        gas_cost = self.cost_model.estimate_gas_cost(TRIANGULAR_LEGS)
        opportunities: List[TriangularOpportunity] = []

        for venue in primary:
            for triplet in triplets:
                leg_rates = [rates.get(leg) for leg in cycle_legs(triplet, venue)]
                opportunity = self.evaluate(triplet, venue, *leg_rates, gas_cost=gas_cost)
                if opportunity is not None:
                    opportunities.append(opportunity)

        return opportunities

    def evaluate(
        self,
        triplet: Triplet,
        venue: Venue,
        rate_ab: Optional[float],
        rate_bc: Optional[float],
        rate_ca: Optional[float],
        gas_cost: Optional[float] = None,
    ) -> Optional[TriangularOpportunity]:
        if not rate_ab or not rate_bc or not rate_ca:
            return None
        if gas_cost is None:
            gas_cost = self.cost_model.estimate_gas_cost(TRIANGULAR_LEGS)

        profit = calculate_triangular_profit(
            rate_ab,
            rate_bc,
            rate_ca,
            self.trade_amount,
            gas_cost,
            self.min_profit_threshold,
        )
        token_a, token_b, token_c = triplet
        return TriangularOpportunity(
            token_a=token_a.symbol,
            token_b=token_b.symbol,
            token_c=token_c.symbol,
            venue=venue.key,
            rate_ab=rate_ab,
            rate_bc=rate_bc,
            rate_ca=rate_ca,
            expected_return=profit.expected_return,
            trade_amount=self.trade_amount,
            potential_profit=profit.potential_profit,
            gas_cost=profit.gas_cost,
            net_profit=profit.net_profit,
            is_profitable=profit.is_profitable,
        )
