"""
Pricing Data Structures
========================
Market snapshots supplied by the market-trend source and the decision
objects produced by the price optimizer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .enums import MarketPosition, PricingStrategy, Quality, TrendDirection


@dataclass(frozen=True)
class CompetitorPrice:
    price: float
    quality: Quality = Quality.STANDARD
    producer_name: str = ""


@dataclass(frozen=True)
class MarketTrend:
    """
    Market snapshot for one product.

    Attributes
    ----------
    product : str
        Product name the snapshot describes
    current_price : float
        Reference market price
    trend : TrendDirection
        Price direction over the recent window
    trend_percentage : float
        Size of the move in percent
    competitor_prices : tuple of CompetitorPrice
        Prices observed at competing producers
    seasonal_factor : float
        Market-wide seasonal multiplier
    confidence : float
        Source confidence in [0, 1]
    """
    product: str
    current_price: float
    trend: TrendDirection = TrendDirection.STABLE
    trend_percentage: float = 0.0
    competitor_prices: tuple = ()
    seasonal_factor: float = 1.0
    confidence: float = 1.0

    @property
    def competitor_average(self) -> Optional[float]:
        prices = [c.price for c in self.competitor_prices]
        if not prices:
            return None
        return sum(prices) / len(prices)


@dataclass(frozen=True)
class PricePoint:
    """One entry of a product's price/volume history"""
    price: float
    volume: float
    timestamp: datetime


@dataclass(frozen=True)
class ExpectedImpact:
    """Predicted changes, in percent, after moving to the optimized price"""
    revenue_change: float
    volume_change: float
    profit_change: float

    def to_dict(self) -> Dict[str, float]:
        return {
            'revenue_change': self.revenue_change,
            'volume_change': self.volume_change,
            'profit_change': self.profit_change,
        }


@dataclass
class PriceOptimization:
    product_id: str
    product_name: str
    current_price: float
    optimized_price: int
    expected_impact: ExpectedImpact
    confidence: float
    strategy: PricingStrategy
    reasoning: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'current_price': self.current_price,
            'optimized_price': self.optimized_price,
            'expected_impact': self.expected_impact.to_dict(),
            'confidence': self.confidence,
            'strategy': self.strategy.value,
            'reasoning': list(self.reasoning),
        }


@dataclass
class DynamicPricing:
    """
    Price after applying the time/demand/stock multipliers.

    ``multipliers`` always holds the five keys demand, competition,
    seasonal, time_of_day and stock; ``factors`` only lists the ones
    that moved the price.
    """
    base_price: float
    multipliers: Dict[str, float]
    final_price: int
    factors: List[str] = field(default_factory=list)

    @property
    def combined_multiplier(self) -> float:
        result = 1.0
        for value in self.multipliers.values():
            result *= value
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            'base_price': self.base_price,
            'multipliers': dict(self.multipliers),
            'final_price': self.final_price,
            'factors': list(self.factors),
        }


@dataclass
class PriceElasticity:
    product_id: str
    elasticity: float
    interpretation: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'elasticity': self.elasticity,
            'interpretation': self.interpretation,
            'recommendation': self.recommendation,
        }


@dataclass
class CompetitivePricing:
    product_id: str
    your_price: float
    average_market_price: float
    lowest_price: float
    highest_price: float
    position: MarketPosition
    recommended_adjustment: int
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'your_price': self.your_price,
            'average_market_price': self.average_market_price,
            'lowest_price': self.lowest_price,
            'highest_price': self.highest_price,
            'position': self.position.value,
            'recommended_adjustment': self.recommended_adjustment,
            'reasoning': self.reasoning,
        }


@dataclass
class OptimalPricePoint:
    optimal_price: int
    expected_volume: int
    expected_revenue: int
    expected_profit: int
    margin: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'optimal_price': self.optimal_price,
            'expected_volume': self.expected_volume,
            'expected_revenue': self.expected_revenue,
            'expected_profit': self.expected_profit,
            'margin': self.margin,
        }
