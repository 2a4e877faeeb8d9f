"""
Price Optimization Service
===========================
Pricing recommendations from cost, sales volume, price history and the
market snapshot.

Design Principles:
- Explainable: every branch taken is recorded in ``reasoning``/``factors``
- Robust: a missing market snapshot neutralizes market adjustments
  instead of blocking the computation
- Commutative: dynamic multipliers are combined as a plain product

Strategy selection (first match wins):
1. Quality Bio or Premium         -> premium     (45% target margin)
2. |elasticity| > 1.5             -> penetration (20%)
3. Current margin > 40%           -> skimming    (40%)
4. Otherwise                      -> competitive (30%)

All prices the optimizer sets are rounded half-up to the nearest 5
currency units.
"""

import asyncio
import math
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from . import statistics_toolkit as toolkit
from .data_sources import MarketTrendSource, PriceHistoryStore, SyntheticHistoryGenerator
from ..config import Config, DEFAULT_CONFIG
from ..models.enums import (
    DemandLevel,
    MarketPosition,
    PricingStrategy,
    Quality,
    TrendDirection,
)
from ..models.pricing import (
    CompetitivePricing,
    DynamicPricing,
    ExpectedImpact,
    MarketTrend,
    OptimalPricePoint,
    PriceElasticity,
    PriceOptimization,
    PricePoint,
)
from ..utils.constants import (
    DEMAND_LEVEL_MULTIPLIERS,
    STOCK_PRICING_CONFIG,
    STRATEGY_TARGET_MARGINS,
    TIME_OF_DAY_CONFIG,
)
from ..utils.logger import get_logger
from ..utils.validators import safe_number

logger = get_logger(__name__)


def _percent(multiplier: float) -> int:
    return toolkit.round_half_up((multiplier - 1) * 100)


class PriceOptimizer:
    """
    Pricing engine for marketplace products.

    Usage
    -----
    >>> optimizer = PriceOptimizer(market_source=SyntheticMarketTrendSource())
    >>> result = await optimizer.optimize_price(
    ...     "P-001", "Mangue", current_price=1000, cost=600,
    ...     category="fruits", quality="Bio", current_volume=120
    ... )
    >>> result.strategy
    <PricingStrategy.PREMIUM: 'premium'>
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        market_source: Optional[MarketTrendSource] = None,
        price_history: Optional[PriceHistoryStore] = None,
        history_generator: Optional[SyntheticHistoryGenerator] = None,
        now: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the optimizer.

        Args:
            config: Engine configuration (default: DEFAULT_CONFIG)
            market_source: Market-trend collaborator; None means no market data
            price_history: Price/volume buffers keyed by product
            history_generator: Fallback generator for products without history
            now: Returns the current datetime (seasonal month)
        """
        self.config = config or DEFAULT_CONFIG
        self.settings = self.config.pricing
        self.market_source = market_source
        self.price_history = price_history or PriceHistoryStore()
        self.history_generator = history_generator or SyntheticHistoryGenerator(self.config.seed)
        self._now = now or datetime.now

        if self.config.log_file:
            get_logger(__name__, log_file=self.config.log_file)

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def optimize_price(
        self,
        product_id: str,
        product_name: str,
        current_price: float,
        cost: float,
        category: Any,
        quality: Any,
        current_volume: float
    ) -> PriceOptimization:
        """
        Recommend a price and strategy for a product.

        Args:
            product_id: Product identifier (price history key)
            product_name: Name used to look up the market snapshot
            current_price: Price currently charged
            cost: Unit cost
            category: Product category (kept for callers; pricing is
                category-independent)
            quality: Standard, Premium or Bio
            current_volume: Units sold per period at the current price

        Returns:
            PriceOptimization with the optimized price, expected impact
            and the reasoning behind every decision
        """
        await self._simulate_latency(self.config.latency.optimize_price)

        current_price = safe_number(current_price)
        cost = safe_number(cost)
        current_volume = safe_number(current_volume)
        quality = Quality.parse(quality)

        market = await self._market_trend(product_name)
        elasticity = self.estimate_elasticity(product_id)
        position, gap = self.competitive_position(current_price, market)
        strategy = self.determine_strategy(current_price, cost, quality, elasticity)

        optimized_price = self.optimized_price(cost, strategy, elasticity, position, market)
        impact = self.predict_impact(
            current_price, optimized_price, elasticity, current_volume, cost
        )
        reasoning = self._reasoning(strategy, quality, elasticity, market, position, gap)

        confidence = toolkit.confidence(
            [self.settings.model_accuracy],
            self.settings.market_data_quality if market else self.settings.missing_market_data_quality,
            len(self.get_price_history(product_id))
        )

        logger.info(
            f"Price optimization for {product_id}: {current_price:g} -> "
            f"{optimized_price} ({strategy.value}, elasticity={elasticity:.2f})"
        )

        return PriceOptimization(
            product_id=product_id,
            product_name=product_name,
            current_price=current_price,
            optimized_price=optimized_price,
            expected_impact=impact,
            confidence=confidence,
            strategy=strategy,
            reasoning=reasoning,
        )

    async def calculate_dynamic_price(
        self,
        base_price: float,
        product_id: str,
        time_of_day: float,
        demand_level: Any,
        stock_level: float,
        optimal_stock: float,
        product_name: str = "generic"
    ) -> DynamicPricing:
        """
        Apply demand, market, seasonal, time-of-day and stock multipliers.

        The multipliers are independent and combined as a product. Only
        multipliers that move the price are listed in ``factors``.
        """
        await self._simulate_latency(self.config.latency.dynamic_price)

        base_price = safe_number(base_price)
        factors: List[str] = []

        level = DemandLevel.parse(demand_level)
        demand_multiplier = DEMAND_LEVEL_MULTIPLIERS[level]
        if demand_multiplier != 1.0:
            label = "High demand" if demand_multiplier > 1 else "Low demand"
            factors.append(f"{label}: {_percent(demand_multiplier):+d}%")

        market = await self._market_trend(product_name)
        competition_multiplier = self.market_multiplier(market)
        if competition_multiplier != 1.0:
            label = "Rising market" if competition_multiplier > 1 else "Falling market"
            factors.append(f"{label}: {_percent(competition_multiplier):+d}%")

        seasonal = self.seasonal_multiplier(self._now().month)
        if abs(seasonal - 1) > self.settings.seasonal_factor_threshold:
            label = "Peak season" if seasonal > 1 else "Low season"
            factors.append(f"{label}: {_percent(seasonal):+d}%")

        time_multiplier, time_label = self.time_of_day_multiplier(time_of_day)
        if time_label:
            factors.append(time_label)

        stock_multiplier, stock_label = self.stock_multiplier(stock_level, optimal_stock)
        if stock_label:
            factors.append(stock_label)

        multipliers = {
            'demand': demand_multiplier,
            'competition': competition_multiplier,
            'seasonal': seasonal,
            'time_of_day': time_multiplier,
            'stock': stock_multiplier,
        }
        combined = float(np.prod(list(multipliers.values())))
        final_price = toolkit.round_to_step(base_price * combined, self.settings.price_step)

        logger.debug(
            f"Dynamic price for {product_id}: {base_price:g} x {combined:.3f} -> {final_price}"
        )

        return DynamicPricing(
            base_price=base_price,
            multipliers=multipliers,
            final_price=final_price,
            factors=factors,
        )

    async def analyze_price_elasticity(
        self,
        product_id: str,
        current_price: float,
        average_volume: float
    ) -> PriceElasticity:
        """
        Estimate elasticity from consecutive price/volume changes.

        Steps where the price moved less than 1% are ignored. With fewer
        than 10 history points the moderate default of -1.2 is returned.
        """
        await self._simulate_latency(self.config.latency.elasticity)

        history = self.get_price_history(product_id)

        if len(history) < self.settings.min_history_for_analysis:
            return PriceElasticity(
                product_id=product_id,
                elasticity=self.settings.default_elasticity,
                interpretation="Moderate elasticity (limited data)",
                recommendation="Collect more sales data for a precise analysis",
            )

        ratios = []
        for previous, current in zip(history, history[1:]):
            if previous.price == 0:
                continue
            price_change = (current.price - previous.price) / previous.price
            if abs(price_change) <= self.settings.min_price_change:
                continue
            volume_change = (
                (current.volume - previous.volume) / previous.volume
                if previous.volume != 0 else math.inf
            )
            ratios.append(volume_change / price_change)

        elasticity = self.settings.default_elasticity
        if ratios:
            finite = [r for r in ratios if math.isfinite(r)]
            # Non-finite steps still count in the denominator
            elasticity = sum(finite) / len(ratios)

        magnitude = abs(elasticity)
        if magnitude < self.settings.inelastic_threshold:
            interpretation = "Inelastic demand: customers are not very price sensitive"
            recommendation = "Prices can rise without losing many customers"
        elif magnitude < self.settings.elastic_threshold:
            interpretation = "Moderately elastic demand: price and volume are balanced"
            recommendation = "Adjust prices carefully while watching volumes"
        else:
            interpretation = "Highly elastic demand: customers are very price sensitive"
            recommendation = "Avoid price increases; consider reductions to grow volume"

        return PriceElasticity(
            product_id=product_id,
            elasticity=round(elasticity, 2),
            interpretation=interpretation,
            recommendation=recommendation,
        )

    async def get_competitive_pricing(
        self,
        product_id: str,
        product_name: str,
        current_price: float
    ) -> CompetitivePricing:
        """
        Position a price against competitors and propose a partial move
        toward the market average.

        The move closes 50% of the gap when the market trend supports it
        (below and rising, above and falling) and 30% otherwise.
        """
        await self._simulate_latency(self.config.latency.competitive_pricing)

        current_price = safe_number(current_price)
        market = await self._market_trend(product_name)
        prices = [c.price for c in market.competitor_prices] if market else []

        if not prices:
            spread = self.settings.missing_market_spread
            return CompetitivePricing(
                product_id=product_id,
                your_price=current_price,
                average_market_price=current_price,
                lowest_price=current_price * (1 - spread),
                highest_price=current_price * (1 + spread),
                position=MarketPosition.AT,
                recommended_adjustment=0,
                reasoning="Insufficient market data",
            )

        average = sum(prices) / len(prices)
        position = self._position(current_price, average)

        if position == MarketPosition.BELOW and market.trend == TrendDirection.UP:
            adjustment = toolkit.round_half_up((average - current_price) * self.settings.trend_convergence)
            reasoning = "Rising market: prices can move up toward the market"
        elif position == MarketPosition.ABOVE and market.trend == TrendDirection.DOWN:
            adjustment = -toolkit.round_half_up((current_price - average) * self.settings.trend_convergence)
            reasoning = "Falling market: lower prices to stay competitive"
        elif position == MarketPosition.ABOVE:
            adjustment = -toolkit.round_half_up((current_price - average) * self.settings.default_convergence)
            reasoning = "Prices are above the market: risk of losing customers"
        elif position == MarketPosition.BELOW:
            adjustment = toolkit.round_half_up((average - current_price) * self.settings.default_convergence)
            reasoning = "Prices are below the market: room to improve margins"
        else:
            adjustment = 0
            reasoning = "Prices are aligned with the market"

        return CompetitivePricing(
            product_id=product_id,
            your_price=current_price,
            average_market_price=toolkit.round_half_up(average),
            lowest_price=toolkit.round_half_up(min(prices)),
            highest_price=toolkit.round_half_up(max(prices)),
            position=position,
            recommended_adjustment=adjustment,
            reasoning=reasoning,
        )

    async def find_optimal_price_point(
        self,
        product_id: str,
        cost: float,
        target_profit: float,
        min_volume: float,
        max_volume: float
    ) -> OptimalPricePoint:
        """
        Scan prices from 1.2x to 3x cost for the most profitable one.

        Volume at each candidate comes from the elasticity model around a
        reference price of 2x cost and the midpoint volume. Candidates
        whose profit is below ``target_profit`` are skipped; if none
        qualifies the default of 1.5x cost is kept. Volume, revenue, profit
        and margin are reported at the step-rounded price actually charged.
        """
        await self._simulate_latency(self.config.latency.optimal_price_point)

        cost = safe_number(cost)
        if cost <= 0:
            logger.warning(f"Cannot search a price for {product_id} with cost {cost:g}")
            return OptimalPricePoint(0, 0, 0, 0, 0.0)

        target_profit = safe_number(target_profit)
        base_volume = (safe_number(min_volume) + safe_number(max_volume)) / 2
        reference_price = cost * self.settings.search_reference_markup
        elasticity = self.estimate_elasticity(product_id)

        best_price = cost * self.settings.search_default_markup
        best_profit = 0.0

        for price in self._price_candidates(cost):
            volume = self.estimate_volume_at_price(price, reference_price, base_volume, elasticity)
            profit = (price - cost) * volume

            if profit > best_profit and profit >= target_profit:
                best_profit = profit
                best_price = price

        optimal_price = toolkit.round_to_step(best_price, self.settings.price_step)
        expected_volume = toolkit.round_half_up(self.estimate_volume_at_price(
            optimal_price, reference_price, base_volume, elasticity
        ))
        margin = (optimal_price - cost) / optimal_price * 100 if optimal_price else 0.0

        return OptimalPricePoint(
            optimal_price=optimal_price,
            expected_volume=expected_volume,
            expected_revenue=optimal_price * expected_volume,
            expected_profit=toolkit.round_half_up((optimal_price - cost) * expected_volume),
            margin=float(round(margin, 1)),
        )

    # =========================================================================
    # PRICE HISTORY
    # =========================================================================

    def get_price_history(self, product_id: str) -> Tuple[PricePoint, ...]:
        """Recorded price history, or a synthetic one the first time a product is seen."""
        history = self.price_history.get(product_id)
        if history is None:
            self.price_history.replace(product_id, self.history_generator.price_history(
                product_id, end=self._now().date()
            ))
            history = self.price_history.get(product_id)
        return history

    def record_price_point(
        self,
        product_id: str,
        price: float,
        volume: float,
        timestamp: Optional[datetime] = None
    ) -> None:
        point = PricePoint(
            price=safe_number(price),
            volume=safe_number(volume),
            timestamp=timestamp or self._now(),
        )
        if self.price_history.get(product_id) is None:
            self.price_history.replace(product_id, (point,))
        else:
            self.price_history.record(product_id, point)

    # =========================================================================
    # PRICING RULES
    # =========================================================================

    def estimate_elasticity(self, product_id: str) -> float:
        """
        Elasticity from the correlation of the last 10 (price, volume)
        pairs, scaled by -1.5. Fewer than 5 points: the -1.2 default.
        """
        history = self.get_price_history(product_id)
        if len(history) < self.settings.min_history_for_elasticity:
            return self.settings.default_elasticity

        recent = history[-self.settings.elasticity_window:]
        prices = [p.price for p in recent]
        volumes = [p.volume for p in recent]
        return toolkit.correlation(prices, volumes) * self.settings.elasticity_scale

    def competitive_position(
        self,
        current_price: float,
        market: Optional[MarketTrend]
    ) -> Tuple[MarketPosition, float]:
        """
        Position against the competitor average (or the market price when
        no competitor is listed). No snapshot counts as at market.

        Returns:
            (position, gap) where gap = current_price - market average
        """
        if market is None:
            return MarketPosition.AT, 0.0

        average = market.competitor_average
        if average is None:
            average = market.current_price
        if not average:
            return MarketPosition.AT, 0.0

        return self._position(current_price, average), current_price - average

    def determine_strategy(
        self,
        current_price: float,
        cost: float,
        quality: Quality,
        elasticity: float
    ) -> PricingStrategy:
        if quality in (Quality.BIO, Quality.PREMIUM):
            return PricingStrategy.PREMIUM

        if abs(elasticity) > self.settings.elastic_threshold:
            return PricingStrategy.PENETRATION

        margin = (current_price - cost) / current_price * 100 if current_price else 0.0
        if margin > self.settings.skimming_margin_pct:
            return PricingStrategy.SKIMMING

        return PricingStrategy.COMPETITIVE

    def optimized_price(
        self,
        cost: float,
        strategy: PricingStrategy,
        elasticity: float,
        position: MarketPosition,
        market: Optional[MarketTrend]
    ) -> int:
        target_margin = STRATEGY_TARGET_MARGINS[strategy]
        price = cost / (1 - target_margin)

        price *= self.market_multiplier(market)

        if position == MarketPosition.ABOVE and abs(elasticity) > self.settings.elastic_threshold:
            price *= self.settings.premium_elastic_discount

        return toolkit.round_to_step(price, self.settings.price_step)

    @staticmethod
    def predict_impact(
        current_price: float,
        optimized_price: float,
        elasticity: float,
        current_volume: float,
        cost: float
    ) -> ExpectedImpact:
        """
        Revenue, volume and profit changes in percent.

        volume change = elasticity x relative price change. Changes
        against a zero baseline are reported as 0.
        """
        if current_price == 0:
            return ExpectedImpact(0.0, 0.0, 0.0)

        price_change = (optimized_price - current_price) / current_price
        volume_change = elasticity * price_change
        new_volume = current_volume * (1 + volume_change)

        current_revenue = current_price * current_volume
        new_revenue = optimized_price * new_volume
        revenue_change = (
            (new_revenue - current_revenue) / current_revenue * 100 if current_revenue else 0.0
        )

        current_profit = (current_price - cost) * current_volume
        new_profit = (optimized_price - cost) * new_volume
        profit_change = (
            (new_profit - current_profit) / abs(current_profit) * 100 if current_profit else 0.0
        )

        return ExpectedImpact(
            revenue_change=toolkit.round_half_up(revenue_change * 10) / 10,
            volume_change=toolkit.round_half_up(volume_change * 1000) / 10,
            profit_change=toolkit.round_half_up(profit_change * 10) / 10,
        )

    @staticmethod
    def estimate_volume_at_price(
        new_price: float,
        reference_price: float,
        reference_volume: float,
        elasticity: float
    ) -> float:
        """Linear elasticity model, floored at zero volume."""
        if reference_price == 0:
            return max(0.0, reference_volume)
        price_change = (new_price - reference_price) / reference_price
        return max(0.0, reference_volume * (1 + elasticity * price_change))

    def market_multiplier(self, market: Optional[MarketTrend]) -> float:
        if market is None:
            return 1.0
        adjustment = self.settings.market_trend_adjustment
        if market.trend == TrendDirection.UP:
            return 1 + adjustment
        if market.trend == TrendDirection.DOWN:
            return 1 - adjustment
        return 1.0

    def seasonal_multiplier(self, month: int) -> float:
        """Sinusoidal month curve, up to +/-10%."""
        return 1 + self.settings.seasonal_amplitude * math.sin(((month - 1) / 12) * 2 * math.pi)

    @staticmethod
    def time_of_day_multiplier(hour: float) -> Tuple[float, Optional[str]]:
        hour = safe_number(hour, default=12.0)
        morning = TIME_OF_DAY_CONFIG["morning_peak"]
        evening = TIME_OF_DAY_CONFIG["evening_peak"]
        off_peak = TIME_OF_DAY_CONFIG["off_peak"]

        if morning["start"] <= hour <= morning["end"]:
            m = morning["multiplier"]
            return m, f"Morning peak hours: {_percent(m):+d}%"
        if evening["start"] <= hour <= evening["end"]:
            m = evening["multiplier"]
            return m, f"Evening peak hours: {_percent(m):+d}%"
        if hour >= off_peak["from"] or hour <= off_peak["until"]:
            m = off_peak["multiplier"]
            return m, f"Off-peak hours: {_percent(m):+d}%"
        return 1.0, None

    @staticmethod
    def stock_multiplier(stock_level: float, optimal_stock: float) -> Tuple[float, Optional[str]]:
        optimal_stock = safe_number(optimal_stock)
        if optimal_stock <= 0:
            return 1.0, None

        ratio = safe_number(stock_level) / optimal_stock
        if ratio > STOCK_PRICING_CONFIG["overstock_ratio"]:
            m = STOCK_PRICING_CONFIG["overstock_multiplier"]
            return m, f"Overstock: {_percent(m):+d}%"
        if ratio < STOCK_PRICING_CONFIG["understock_ratio"]:
            m = STOCK_PRICING_CONFIG["understock_multiplier"]
            return m, f"Low stock: {_percent(m):+d}%"
        return 1.0, None

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _market_trend(self, product_name: str) -> Optional[MarketTrend]:
        if self.market_source is None:
            return None
        market = await self.market_source.get_market_trend(product_name)
        if market is None:
            logger.debug(f"No market snapshot for {product_name!r}")
        return market

    def _position(self, price: float, average: float) -> MarketPosition:
        band = self.settings.market_band
        if price < average * (1 - band):
            return MarketPosition.BELOW
        if price > average * (1 + band):
            return MarketPosition.ABOVE
        return MarketPosition.AT

    def _price_candidates(self, cost: float) -> np.ndarray:
        steps = int(round(
            (self.settings.search_max_markup - self.settings.search_min_markup)
            / self.settings.search_step_markup
        ))
        markups = np.linspace(
            self.settings.search_min_markup, self.settings.search_max_markup, steps + 1
        )
        return markups * cost

    def _reasoning(
        self,
        strategy: PricingStrategy,
        quality: Quality,
        elasticity: float,
        market: Optional[MarketTrend],
        position: MarketPosition,
        gap: float
    ) -> List[str]:
        reasons = [f"{strategy.value.capitalize()} strategy recommended"]

        if quality in (Quality.BIO, Quality.PREMIUM):
            reasons.append(f"{quality.value} product: premium positioning justified")

        magnitude = abs(elasticity)
        if magnitude < self.settings.inelastic_threshold:
            reasons.append(f"Inelastic demand (elasticity {elasticity:.2f})")
        elif magnitude <= self.settings.elastic_threshold:
            reasons.append(f"Moderately elastic demand (elasticity {elasticity:.2f})")
        else:
            reasons.append(f"Highly elastic demand (elasticity {elasticity:.2f}): protect volume")

        if market is None:
            reasons.append("No market data: market adjustments not applied")
        elif market.trend == TrendDirection.UP:
            reasons.append("Rising market: room for an increase")
        elif market.trend == TrendDirection.DOWN:
            reasons.append("Falling market: caution recommended")

        if position == MarketPosition.ABOVE:
            reasons.append(f"Price currently above the market average by {gap:.0f}")
        elif position == MarketPosition.BELOW:
            reasons.append(f"Price currently below the market average by {abs(gap):.0f}")

        return reasons

    @staticmethod
    async def _simulate_latency(seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
