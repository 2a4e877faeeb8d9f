"""
Tests for the data sources: history stores, synthetic fallback series
and market-trend sources.
"""

from datetime import date, datetime

import pytest

from agri_analytics.models import (
    Category,
    CompetitorPrice,
    HistoricalObservation,
    MarketTrend,
    PricePoint,
    TrendDirection,
)
from agri_analytics.services import (
    InMemoryHistoryStore,
    PriceHistoryStore,
    StaticMarketTrendSource,
    SyntheticHistoryGenerator,
    SyntheticMarketTrendSource,
)


def test_history_store_keeps_timestamp_order():
    store = InMemoryHistoryStore()
    store.record(HistoricalObservation("P1", 5, datetime(2026, 5, 3)))
    store.record(HistoricalObservation("P1", 7, datetime(2026, 5, 1)))
    store.record(HistoricalObservation("P1", 9, datetime(2026, 5, 4)))

    history = store.get_history("P1")
    assert [obs.quantity for obs in history] == [7, 5, 9]
    assert store.get_history("unknown") is None
    assert store.product_ids() == ["P1"]


def test_history_store_replaces_history_wholesale():
    store = InMemoryHistoryStore([HistoricalObservation("P1", 5, datetime(2026, 5, 1))])
    snapshot = store.get_history("P1")

    store.record(HistoricalObservation("P1", 6, datetime(2026, 5, 2)))

    assert len(snapshot) == 1
    assert len(store.get_history("P1")) == 2


def test_price_history_store():
    prices = PriceHistoryStore()
    assert prices.get("P1") is None

    prices.replace("P1", [PricePoint(1000, 50, datetime(2026, 5, 2))])
    prices.record("P1", PricePoint(900, 60, datetime(2026, 5, 1)))

    assert [p.price for p in prices.get("P1")] == [900, 1000]

    prices.clear()
    assert prices.get("P1") is None


def test_synthetic_sales_history_shape():
    generator = SyntheticHistoryGenerator(seed=42)
    history = generator.sales_history("P1", Category.FRUITS, end=date(2026, 5, 15))

    assert len(history) == 90
    assert history[-1].timestamp == datetime(2026, 5, 15)
    assert history[0].timestamp == datetime(2026, 2, 15)
    assert all(obs.quantity >= 0 for obs in history)
    assert all(obs.product_id == "P1" for obs in history)


def test_synthetic_sales_history_is_deterministic():
    end = date(2026, 5, 15)
    first = SyntheticHistoryGenerator(seed=42).sales_history("P1", Category.FRUITS, end=end)
    second = SyntheticHistoryGenerator(seed=42).sales_history("P1", Category.FRUITS, end=end)
    other_seed = SyntheticHistoryGenerator(seed=7).sales_history("P1", Category.FRUITS, end=end)

    assert first == second
    assert [o.unit_price for o in first] != [o.unit_price for o in other_seed]


def test_synthetic_price_history():
    points = SyntheticHistoryGenerator(seed=42).price_history("P1", end=date(2026, 5, 15))

    assert len(points) == 31
    assert all(700 <= p.price <= 1400 for p in points)
    assert all(p.volume > 0 for p in points)


@pytest.mark.asyncio
async def test_static_market_source_is_case_insensitive():
    trend = MarketTrend(product="mangue", current_price=600, trend=TrendDirection.UP)
    source = StaticMarketTrendSource({"Mangue": trend})

    assert await source.get_market_trend("MANGUE") is trend
    assert await source.get_market_trend("cacao") is None

    cacao = MarketTrend(product="cacao", current_price=1200, trend=TrendDirection.DOWN)
    source.set_trend("Cacao", cacao)
    assert await source.get_market_trend("cacao") is cacao


@pytest.mark.asyncio
async def test_synthetic_market_source_caches_for_five_minutes(clock, fixed_now):
    source = SyntheticMarketTrendSource(seed=42, now=fixed_now, clock=clock)

    first = await source.get_market_trend("Cacao")
    assert await source.get_market_trend("cacao") is first

    clock.advance(301)
    refreshed = await source.get_market_trend("cacao")
    assert refreshed is not first
    assert refreshed == first


@pytest.mark.asyncio
async def test_synthetic_market_snapshot_shape(fixed_now):
    source = SyntheticMarketTrendSource(seed=42, now=fixed_now)
    trend = await source.get_market_trend("manioc")

    assert 270 <= trend.current_price <= 330
    assert len(trend.competitor_prices) == 3
    assert all(isinstance(c, CompetitorPrice) for c in trend.competitor_prices)
    assert 0.7 <= trend.confidence <= 1.0


@pytest.mark.asyncio
async def test_predict_price_trend(fixed_now):
    source = SyntheticMarketTrendSource(seed=42, now=fixed_now)
    projection = await source.predict_price_trend("cacao", days_ahead=7)

    assert set(projection) == {"predicted_price", "confidence", "factors"}
    assert projection["confidence"] >= 0.3
    assert len(projection["factors"]) == 3

    far = await source.predict_price_trend("cacao", days_ahead=60)
    trend = await source.get_market_trend("cacao")
    assert far["predicted_price"] == round(trend.current_price)
