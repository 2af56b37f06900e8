"""
strategy/direct.py - Pairwise (cross-venue) arbitrage detection.

For each token pair:
1. Read the rate on every venue of the pair's network (unavailable -> dropped)
2. Compare every unordered venue combination that produced a rate
3. Emit one DirectOpportunity per combination, profitable or not

PROFIT CONTRACT:
  price_difference = |price_a - price_b|
  potential_profit = price_difference / min(price_a, price_b) * trade_amount
  gas_cost         = one swap
  net_profit       = potential_profit - gas_cost
  profit_pct       = net_profit / trade_amount * 100

Profit is valued against the cheaper side, not the spread midpoint.
"""

from dataclasses import dataclass
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple

from core.constants import DEFAULT_MIN_PROFIT_THRESHOLD, DEFAULT_TRADE_AMOUNT
from core.logging import get_logger
from core.models import DirectOpportunity, Token, Venue, is_profitable
from dex.rate_source import RateRequest, RateSource
from strategy.gas import GasCostModel

logger = get_logger(__name__)

TokenPair = Tuple[Token, Token]


@dataclass(frozen=True)
class DirectProfit:
    """Profit breakdown for one venue comparison."""
    price_difference: float
    potential_profit: float
    gas_cost: float
    net_profit: float
    profit_percentage: float
    is_profitable: bool


def calculate_direct_profit(
    price_a: float,
    price_b: float,
    trade_amount: float,
    gas_cost: float,
    min_profit_threshold: float,
) -> DirectProfit:
    """Profit breakdown for buying on the cheaper venue and selling on the other."""
    if price_a <= 0 or price_b <= 0:
        raise ValueError(f"Prices must be positive, got {price_a} and {price_b}")

    price_difference = abs(price_a - price_b)
    potential_profit = (price_difference / min(price_a, price_b)) * trade_amount
    net_profit = potential_profit - gas_cost

    return DirectProfit(
        price_difference=price_difference,
        potential_profit=potential_profit,
        gas_cost=gas_cost,
        net_profit=net_profit,
        profit_percentage=net_profit / trade_amount * 100,
        is_profitable=is_profitable(net_profit, trade_amount, min_profit_threshold),
    )


def pair_label(pair: TokenPair) -> str:
    return f"{pair[0].symbol}/{pair[1].symbol}"


class DirectDetector:
    """Compares each token pair across all venues of its network."""

    def __init__(
        self,
        rate_source: RateSource,
        cost_model: GasCostModel,
        trade_amount: float = DEFAULT_TRADE_AMOUNT,
        min_profit_threshold: float = DEFAULT_MIN_PROFIT_THRESHOLD,
    ):
        self.rate_source = rate_source
        self.cost_model = cost_model
        self.trade_amount = trade_amount
        self.min_profit_threshold = min_profit_threshold

    async def detect(
        self,
        token_pairs: Sequence[TokenPair],
        venues: Sequence[Venue],
    ) -> List[DirectOpportunity]:
        """
        One DirectOpportunity per (pair, venue_a, venue_b) with both rates present.

        Venue order in `venues` decides which side is venue_a.
        """
        requests: List[RateRequest] = [
            (token_a, token_b, venue)
            for token_a, token_b in token_pairs
            for venue in venues
        ]
        rates = await self.rate_source.get_rates(requests)

        gas_cost = self.cost_model.estimate_gas_cost(1)
        opportunities: List[DirectOpportunity] = []

        for pair in token_pairs:
            prices: Dict[str, float] = {}
            for venue in venues:
                price = rates.get((pair[0], pair[1], venue))
                if price is not None and price > 0:
                    prices[venue.key] = price

            opportunities.extend(self.compare(pair_label(pair), prices, gas_cost))

        return opportunities

    def compare(
        self,
        label: str,
        prices: Dict[str, float],
        gas_cost: Optional[float] = None,
    ) -> List[DirectOpportunity]:
        """Evaluate every unordered venue combination for one pair."""
        if gas_cost is None:
            gas_cost = self.cost_model.estimate_gas_cost(1)

        opportunities = []
        for venue_a, venue_b in combinations(prices, 2):
            price_a = prices[venue_a]
            price_b = prices[venue_b]
            if not price_a or not price_b or price_a <= 0 or price_b <= 0:
                continue

            profit = calculate_direct_profit(
                price_a,
                price_b,
                self.trade_amount,
                gas_cost,
                self.min_profit_threshold,
            )
            opportunities.append(DirectOpportunity(
                token_pair=label,
                venue_a=venue_a,
                venue_b=venue_b,
                price_a=price_a,
                price_b=price_b,
                price_difference=profit.price_difference,
                trade_amount=self.trade_amount,
                potential_profit=profit.potential_profit,
                gas_cost=profit.gas_cost,
                net_profit=profit.net_profit,
                profit_percentage=profit.profit_percentage,
                is_profitable=profit.is_profitable,
            ))

        return opportunities
