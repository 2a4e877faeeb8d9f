"""
Tests for the Price Optimizer
==============================
Strategy selection, step rounding, dynamic multipliers, elasticity,
competitive positioning and the optimal price search.
"""

from datetime import datetime, timedelta

import pytest

from agri_analytics.config import Config, PricingConfig
from agri_analytics.models import (
    CompetitorPrice,
    MarketPosition,
    MarketTrend,
    PricePoint,
    PricingStrategy,
    Quality,
    TrendDirection,
)
from agri_analytics.services import PriceHistoryStore, PriceOptimizer, StaticMarketTrendSource

JANUARY = datetime(2026, 1, 15, 12, 0)


def price_points(prices, volumes, start=datetime(2026, 4, 1)):
    return [
        PricePoint(price, volume, start + timedelta(days=i))
        for i, (price, volume) in enumerate(zip(prices, volumes))
    ]


def market(price=1000.0, trend=TrendDirection.STABLE, competitors=(1000.0,)):
    return MarketTrend(
        product="mangue",
        current_price=price,
        trend=trend,
        competitor_prices=tuple(CompetitorPrice(p) for p in competitors),
    )


def build_optimizer(config, snapshot=None, points=None, now=None):
    history = PriceHistoryStore()
    # Three points: too few for an elasticity estimate, so -1.2 is used
    history.replace("P1", points or price_points([1000, 1000, 1000], [100, 100, 100]))
    source = StaticMarketTrendSource({"mangue": snapshot} if snapshot else {})
    return PriceOptimizer(
        config=config,
        market_source=source,
        price_history=history,
        now=now or (lambda: datetime(2026, 5, 15, 10, 0)),
    )


# =============================================================================
# optimize_price
# =============================================================================

@pytest.mark.asyncio
async def test_bio_product_gets_premium_strategy(config):
    optimizer = build_optimizer(config, snapshot=market())

    result = await optimizer.optimize_price(
        "P1", "Mangue", current_price=1200, cost=550,
        category="fruits", quality="Bio", current_volume=100
    )

    assert result.strategy == PricingStrategy.PREMIUM
    # 550 / (1 - 0.45)
    assert result.optimized_price == 1000
    assert result.expected_impact.volume_change == pytest.approx(20.0)
    assert result.expected_impact.revenue_change == pytest.approx(0.0)
    assert result.expected_impact.profit_change == pytest.approx(-16.9)
    assert any("Bio" in reason for reason in result.reasoning)


@pytest.mark.asyncio
async def test_high_margin_standard_product_is_skimmed(config):
    stable = build_optimizer(config, snapshot=market())
    rising = build_optimizer(config, snapshot=market(trend=TrendDirection.UP))

    flat = await stable.optimize_price("P1", "Mangue", 1000, 500, "fruits", "Standard", 100)
    up = await rising.optimize_price("P1", "Mangue", 1000, 500, "fruits", "Standard", 100)

    assert flat.strategy == PricingStrategy.SKIMMING
    # 500 / 0.6 = 833.33
    assert flat.optimized_price == 835
    assert up.optimized_price == 875


@pytest.mark.asyncio
async def test_low_margin_product_is_competitive(config):
    optimizer = build_optimizer(config, snapshot=market())
    result = await optimizer.optimize_price("P1", "Mangue", 1000, 800, "fruits", "Standard", 100)

    assert result.strategy == PricingStrategy.COMPETITIVE
    # 800 / 0.7 = 1142.86
    assert result.optimized_price == 1145


@pytest.mark.asyncio
@pytest.mark.parametrize("cost", [1, 37, 333, 555.5, 1234])
async def test_optimized_prices_are_multiples_of_five(config, cost):
    optimizer = build_optimizer(config, snapshot=market(trend=TrendDirection.DOWN))
    result = await optimizer.optimize_price("P1", "Mangue", 1000, cost, "fruits", "Premium", 50)
    assert result.optimized_price % 5 == 0


@pytest.mark.asyncio
async def test_missing_market_data_is_neutral(config):
    optimizer = build_optimizer(config)
    result = await optimizer.optimize_price("P1", "Inconnu", 1000, 800, "fruits", "Standard", 100)

    assert result.optimized_price == 1145
    assert "No market data: market adjustments not applied" in result.reasoning
    # 0.8 x 0.5 + 0.6 x 0.3 + 3 points
    assert result.confidence == pytest.approx(0.4 + 0.18 + 0.006)


@pytest.mark.asyncio
async def test_zero_price_and_volume_report_no_impact(config):
    optimizer = build_optimizer(config, snapshot=market())
    result = await optimizer.optimize_price("P1", "Mangue", 0, 500, "fruits", "Standard", 0)

    impact = result.expected_impact
    assert (impact.revenue_change, impact.volume_change, impact.profit_change) == (0.0, 0.0, 0.0)


def test_market_trend_adjustment_is_configurable():
    config = Config(pricing=PricingConfig(market_trend_adjustment=0.10)).without_latency()
    optimizer = build_optimizer(config)

    assert optimizer.market_multiplier(market(trend=TrendDirection.UP)) == pytest.approx(1.10)
    assert optimizer.market_multiplier(market(trend=TrendDirection.DOWN)) == pytest.approx(0.90)
    assert optimizer.market_multiplier(market()) == 1.0
    assert optimizer.market_multiplier(None) == 1.0
    # 500 / 0.6 x 1.10 = 916.67
    assert optimizer.optimized_price(
        500, PricingStrategy.SKIMMING, -1.2, MarketPosition.AT, market(trend=TrendDirection.UP)
    ) == 915


def test_strategy_order(config):
    optimizer = build_optimizer(config)

    assert optimizer.determine_strategy(1000, 900, Quality.BIO, -2.0) == PricingStrategy.PREMIUM
    assert optimizer.determine_strategy(1000, 900, Quality.STANDARD, -2.0) == PricingStrategy.PENETRATION
    assert optimizer.determine_strategy(1000, 500, Quality.STANDARD, -1.2) == PricingStrategy.SKIMMING
    assert optimizer.determine_strategy(1000, 900, Quality.STANDARD, -1.2) == PricingStrategy.COMPETITIVE


def test_elastic_product_above_market_is_discounted(config):
    optimizer = build_optimizer(config)
    plain = optimizer.optimized_price(800, PricingStrategy.PENETRATION, -2.0, MarketPosition.AT, None)
    discounted = optimizer.optimized_price(800, PricingStrategy.PENETRATION, -2.0, MarketPosition.ABOVE, None)

    assert plain == 1000
    assert discounted == 950


def test_competitive_position_band(config):
    optimizer = build_optimizer(config)
    snapshot = market(competitors=(900, 1000, 1100))

    assert optimizer.competitive_position(1040, snapshot)[0] == MarketPosition.AT
    assert optimizer.competitive_position(1060, snapshot) == (MarketPosition.ABOVE, pytest.approx(60))
    assert optimizer.competitive_position(940, snapshot)[0] == MarketPosition.BELOW
    assert optimizer.competitive_position(2000, None) == (MarketPosition.AT, 0.0)
    assert optimizer.competitive_position(1200, market(competitors=()))[0] == MarketPosition.ABOVE


def test_elasticity_from_price_history(config):
    prices = [1000, 1100, 900, 1050, 950, 1000]
    volumes = [100, 90, 110, 95, 105, 100]
    optimizer = build_optimizer(config, points=price_points(prices, volumes))

    # Perfect negative correlation, scaled by -1.5
    assert optimizer.estimate_elasticity("P1") == pytest.approx(1.5)


# =============================================================================
# calculate_dynamic_price
# =============================================================================

@pytest.mark.asyncio
async def test_late_night_price_is_lower(config):
    optimizer = build_optimizer(config, snapshot=market(), now=lambda: JANUARY)

    midday = await optimizer.calculate_dynamic_price(1000, "P1", 12, "medium", 50, 50, "mangue")
    late = await optimizer.calculate_dynamic_price(1000, "P1", 23, "medium", 50, 50, "mangue")

    assert midday.final_price == 1000
    assert midday.factors == []
    assert late.final_price == 850
    assert late.final_price < midday.final_price
    assert late.factors == ["Off-peak hours: -15%"]
    assert late.multipliers["time_of_day"] == 0.85


@pytest.mark.asyncio
async def test_dynamic_price_combines_multipliers(config):
    optimizer = build_optimizer(
        config, snapshot=market(trend=TrendDirection.UP), now=lambda: JANUARY
    )

    result = await optimizer.calculate_dynamic_price(1000, "P1", 18, "high", 10, 50, "mangue")

    # 1.15 x 1.05 x 1.08 x 1.10 = 1.4345
    assert result.final_price == 1435
    assert set(result.multipliers) == {"demand", "competition", "seasonal", "time_of_day", "stock"}
    assert result.combined_multiplier == pytest.approx(1.15 * 1.05 * 1.08 * 1.10)
    assert "High demand: +15%" in result.factors
    assert "Rising market: +5%" in result.factors
    assert "Evening peak hours: +8%" in result.factors
    assert "Low stock: +10%" in result.factors


@pytest.mark.asyncio
async def test_dynamic_price_seasonality_and_overstock(config):
    optimizer = build_optimizer(config, now=lambda: datetime(2026, 4, 1, 12, 0))

    result = await optimizer.calculate_dynamic_price(1000, "P1", 14, "low", 200, 50)

    # April: 1 + 0.1 x sin(3/12 x 2pi) = 1.1
    assert result.multipliers["seasonal"] == pytest.approx(1.1)
    assert "Peak season: +10%" in result.factors
    assert "Overstock: -10%" in result.factors
    assert result.final_price % 5 == 0


@pytest.mark.asyncio
async def test_dynamic_price_without_optimal_stock_ignores_stock(config):
    optimizer = build_optimizer(config, now=lambda: JANUARY)
    result = await optimizer.calculate_dynamic_price(1000, "P1", 12, "medium", 500, 0)

    assert result.multipliers["stock"] == 1.0
    assert result.final_price == 1000


@pytest.mark.parametrize("hour, expected", [
    (5, 0.85), (6, 1.05), (10, 1.05), (14, 1.0), (17, 1.08),
    (20, 1.08), (21, 1.0), (22, 0.85), (23, 0.85), (0, 0.85),
])
def test_time_of_day_windows(hour, expected):
    assert PriceOptimizer.time_of_day_multiplier(hour)[0] == expected


# =============================================================================
# analyze_price_elasticity
# =============================================================================

@pytest.mark.asyncio
async def test_elasticity_with_limited_data(config):
    optimizer = build_optimizer(config)
    result = await optimizer.analyze_price_elasticity("P1", 1000, 100)

    assert result.elasticity == -1.2
    assert result.interpretation == "Moderate elasticity (limited data)"


@pytest.mark.asyncio
async def test_highly_elastic_history(config):
    prices = [100 * 1.1 ** k for k in range(12)]
    volumes = [100 * 0.8 ** k for k in range(12)]
    optimizer = build_optimizer(config, points=price_points(prices, volumes))

    result = await optimizer.analyze_price_elasticity("P1", 100, 100)

    assert result.elasticity == pytest.approx(-2.0)
    assert result.interpretation.startswith("Highly elastic")


@pytest.mark.asyncio
async def test_inelastic_history(config):
    prices = [100 * 1.1 ** k for k in range(12)]
    volumes = [100 * 0.97 ** k for k in range(12)]
    optimizer = build_optimizer(config, points=price_points(prices, volumes))

    result = await optimizer.analyze_price_elasticity("P1", 100, 100)

    assert result.elasticity == pytest.approx(-0.3)
    assert result.interpretation.startswith("Inelastic")


@pytest.mark.asyncio
async def test_small_price_moves_are_ignored(config):
    optimizer = build_optimizer(
        config, points=price_points([1000] * 12, [100, 120] * 6)
    )
    result = await optimizer.analyze_price_elasticity("P1", 1000, 100)

    assert result.elasticity == -1.2
    assert result.interpretation.startswith("Moderately elastic")


# =============================================================================
# get_competitive_pricing
# =============================================================================

@pytest.mark.asyncio
async def test_competitive_pricing_without_market_data(config):
    optimizer = build_optimizer(config)
    result = await optimizer.get_competitive_pricing("P1", "Inconnu", 1000)

    assert result.position == MarketPosition.AT
    assert result.recommended_adjustment == 0
    assert result.lowest_price == pytest.approx(800)
    assert result.highest_price == pytest.approx(1200)
    assert result.reasoning == "Insufficient market data"


@pytest.mark.asyncio
@pytest.mark.parametrize("price, trend, position, adjustment", [
    (800, TrendDirection.UP, MarketPosition.BELOW, 100),
    (800, TrendDirection.STABLE, MarketPosition.BELOW, 60),
    (1200, TrendDirection.DOWN, MarketPosition.ABOVE, -100),
    (1200, TrendDirection.STABLE, MarketPosition.ABOVE, -60),
    (1000, TrendDirection.UP, MarketPosition.AT, 0),
])
async def test_competitive_pricing(config, price, trend, position, adjustment):
    optimizer = build_optimizer(config, snapshot=market(trend=trend, competitors=(900, 1000, 1100)))
    result = await optimizer.get_competitive_pricing("P1", "Mangue", price)

    assert result.position == position
    assert result.recommended_adjustment == adjustment
    assert result.average_market_price == 1000
    assert (result.lowest_price, result.highest_price) == (900, 1100)


# =============================================================================
# find_optimal_price_point
# =============================================================================

@pytest.mark.asyncio
async def test_optimal_price_point(config):
    optimizer = build_optimizer(config)
    result = await optimizer.find_optimal_price_point("P1", 100, 0, 50, 150)

    # volume(p) = 100 x (1 - 1.2 x (p - 200) / 200); profit peaks near 233
    assert result.optimal_price == 230
    assert result.expected_volume == 82
    assert result.expected_profit == 10660
    assert result.margin == pytest.approx(56.5)


@pytest.mark.asyncio
async def test_unreachable_target_keeps_default_price(config):
    optimizer = build_optimizer(config)
    result = await optimizer.find_optimal_price_point("P1", 100, 1_000_000, 50, 150)

    assert result.optimal_price == 150
    # Reported at the default price: volume 100 x (1 + 1.2 x 0.25)
    assert result.expected_volume == 130
    assert result.expected_profit == 6500


@pytest.mark.asyncio
async def test_optimal_price_point_figures_use_rounded_price(config):
    optimizer = build_optimizer(config)
    result = await optimizer.find_optimal_price_point("P1", 333, 0, 50, 150)

    assert result.optimal_price == 765
    assert result.expected_volume == 82
    assert result.expected_revenue == 765 * 82
    assert result.expected_profit == (765 - 333) * 82
    assert result.margin == 56.5
    assert type(result.margin) is float


@pytest.mark.asyncio
async def test_optimal_price_point_without_cost(config):
    optimizer = build_optimizer(config)
    result = await optimizer.find_optimal_price_point("P1", 0, 0, 50, 150)

    assert result.to_dict() == {
        "optimal_price": 0,
        "expected_volume": 0,
        "expected_revenue": 0,
        "expected_profit": 0,
        "margin": 0.0,
    }


# =============================================================================
# Price history
# =============================================================================

def test_unknown_product_gets_synthetic_price_history(config):
    optimizer = PriceOptimizer(config=config, now=lambda: JANUARY)

    history = optimizer.get_price_history("P-NEW")
    assert len(history) == 31
    assert optimizer.get_price_history("P-NEW") is history


def test_record_price_point(config):
    optimizer = PriceOptimizer(config=config, now=lambda: JANUARY)

    optimizer.record_price_point("P-NEW", 1000, 40)
    optimizer.record_price_point("P-NEW", 1100, 35, timestamp=JANUARY + timedelta(days=1))

    history = optimizer.get_price_history("P-NEW")
    assert [p.price for p in history] == [1000, 1100]
