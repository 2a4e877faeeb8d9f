"""
Data Sources
=============
Collaborators that feed the analytics engines.

- Historical sales: ``HistoricalDataSource`` protocol and an in-memory store
- Price history: per-product price/volume buffers
- Market trends: ``MarketTrendSource`` protocol, a mapping-backed source
  and a seeded synthetic source
- ``SyntheticHistoryGenerator``: deterministic fallback series used only
  when a product has no recorded history

All stores replace a product's history wholesale on every write, so a
concurrent reader sees either the old or the new tuple, never a mix.
"""

import asyncio
import math
import zlib
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

import numpy as np

from .cache import TTLCache
from .statistics_toolkit import round_half_up
from ..models.enums import Category, Quality, TrendDirection
from ..models.inventory import HistoricalObservation
from ..models.pricing import CompetitorPrice, MarketTrend, PricePoint
from ..utils.constants import (
    SYNTHETIC_HISTORY_CONFIG,
    SYNTHETIC_MARKET_CONFIG,
    SYNTHETIC_PRICE_HISTORY_CONFIG,
    seasonal_multiplier,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# HISTORICAL SALES
# =============================================================================

class HistoricalDataSource(Protocol):
    """Supplies a product's sales ordered by timestamp, or None if unknown"""

    def get_history(self, product_id: str) -> Optional[Sequence[HistoricalObservation]]:
        ...


class InMemoryHistoryStore:
    """
    Append-only sales history held in memory.

    Usage
    -----
    >>> store = InMemoryHistoryStore()
    >>> store.record(HistoricalObservation("P1", 12, datetime(2026, 5, 1), 800))
    >>> len(store.get_history("P1"))
    1
    """

    def __init__(self, observations: Iterable[HistoricalObservation] = ()):
        self._histories: Dict[str, Tuple[HistoricalObservation, ...]] = {}
        for observation in observations:
            self.record(observation)

    def get_history(self, product_id: str) -> Optional[Tuple[HistoricalObservation, ...]]:
        return self._histories.get(product_id)

    def record(self, observation: HistoricalObservation) -> None:
        """Append one observation, keeping the history ordered by timestamp."""
        history = self._histories.get(observation.product_id, ())
        if history and observation.timestamp < history[-1].timestamp:
            updated = tuple(sorted(history + (observation,), key=lambda o: o.timestamp))
        else:
            updated = history + (observation,)
        self._histories[observation.product_id] = updated

    def product_ids(self) -> List[str]:
        return sorted(self._histories)

    def clear(self) -> None:
        self._histories.clear()


class PriceHistoryStore:
    """In-memory price/volume buffers keyed by product"""

    def __init__(self):
        self._histories: Dict[str, Tuple[PricePoint, ...]] = {}

    def get(self, product_id: str) -> Optional[Tuple[PricePoint, ...]]:
        return self._histories.get(product_id)

    def replace(self, product_id: str, points: Iterable[PricePoint]) -> None:
        self._histories[product_id] = tuple(sorted(points, key=lambda p: p.timestamp))

    def record(self, product_id: str, point: PricePoint) -> None:
        self.replace(product_id, self._histories.get(product_id, ()) + (point,))

    def clear(self) -> None:
        self._histories.clear()


# =============================================================================
# SYNTHETIC FALLBACK
# =============================================================================

class SyntheticHistoryGenerator:
    """
    Deterministic fallback series for products without recorded data.

    Every series is drawn from its own ``numpy`` generator seeded with
    ``(seed, crc32(product_id))``, so the same product always gets the
    same history for a given end date.

    Sales model (per day):
        quantity = base x category_season(month) x weekday x noise x trend
    where weekends are dampened to 70%, noise is uniform in [0.8, 1.2]
    and the trend grows linearly from 0% to +20% over the window.
    """

    def __init__(self, seed: int = 42):
        self.seed = seed

    def _rng(self, *parts: str) -> np.random.Generator:
        key = [self.seed] + [zlib.crc32(part.encode("utf-8")) for part in parts]
        return np.random.default_rng(key)

    def sales_history(
        self,
        product_id: str,
        category: Category = Category.OTHER,
        end: Optional[date] = None,
        days: Optional[int] = None
    ) -> List[HistoricalObservation]:
        """Generate ``days`` daily observations ending on ``end``."""
        cfg = SYNTHETIC_HISTORY_CONFIG
        days = days or cfg["days"]
        end = end or date.today()
        rng = self._rng("sales", product_id, category.value)

        base_quantity = rng.uniform(*cfg["base_quantity_range"])
        observations = []

        for k in range(days):
            day = end - timedelta(days=days - 1 - k)

            seasonal_effect = seasonal_multiplier(category, day.month)
            weekday_effect = cfg["weekend_factor"] if day.weekday() >= 5 else 1.0
            noise = rng.uniform(*cfg["noise_range"])
            trend_effect = 1 + (k / max(1, days - 1)) * cfg["trend_growth"]

            quantity = round_half_up(
                base_quantity * seasonal_effect * weekday_effect * noise * trend_effect
            )

            observations.append(HistoricalObservation(
                product_id=product_id,
                quantity=float(max(0, quantity)),
                timestamp=datetime.combine(day, time()),
                unit_price=round(float(rng.uniform(*cfg["unit_price_range"])), 2),
            ))

        return observations

    def price_history(
        self,
        product_id: str,
        end: Optional[date] = None
    ) -> List[PricePoint]:
        """Generate daily price/volume points around a seeded base price."""
        cfg = SYNTHETIC_PRICE_HISTORY_CONFIG
        end = end or date.today()
        rng = self._rng("prices", product_id)

        base_price = rng.uniform(*cfg["base_price_range"])
        base_volume = rng.uniform(*cfg["base_volume_range"])
        days = cfg["days"]

        points = []
        for k in range(days):
            day = end - timedelta(days=days - 1 - k)
            points.append(PricePoint(
                price=float(round_half_up(base_price * rng.uniform(*cfg["price_variation"]))),
                volume=float(round_half_up(base_volume * rng.uniform(*cfg["volume_variation"]))),
                timestamp=datetime.combine(day, time()),
            ))
        return points


# =============================================================================
# MARKET TRENDS
# =============================================================================

class MarketTrendSource(Protocol):
    """Supplies a market snapshot per product name; None when unavailable"""

    async def get_market_trend(self, product_name: str) -> Optional[MarketTrend]:
        ...


class StaticMarketTrendSource:
    """Market snapshots from a mapping keyed by product name (case-insensitive)"""

    def __init__(self, trends: Optional[Mapping[str, MarketTrend]] = None):
        self._trends: Dict[str, MarketTrend] = {
            name.lower(): trend for name, trend in (trends or {}).items()
        }

    async def get_market_trend(self, product_name: str) -> Optional[MarketTrend]:
        return self._trends.get((product_name or "").lower())

    def set_trend(self, product_name: str, trend: MarketTrend) -> None:
        self._trends[product_name.lower()] = trend


class SyntheticMarketTrendSource:
    """
    Seeded market snapshots for demos and offline use.

    Snapshots are cached for five minutes per product, like a remote
    market feed would be.
    """

    def __init__(
        self,
        seed: int = 42,
        now: Optional[Callable[[], datetime]] = None,
        clock: Optional[Callable[[], float]] = None,
        latency_seconds: float = 0.0
    ):
        self.seed = seed
        self._now = now or datetime.now
        self._latency = latency_seconds
        self._cache: TTLCache[MarketTrend] = TTLCache(
            SYNTHETIC_MARKET_CONFIG["cache_ttl_seconds"], clock=clock
        )

    async def get_market_trend(self, product_name: str) -> Optional[MarketTrend]:
        key = (product_name or "").strip().lower()
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if self._latency:
            await asyncio.sleep(self._latency)

        trend = self._generate(key)
        self._cache.set(key, trend)
        return trend

    def _generate(self, key: str) -> MarketTrend:
        cfg = SYNTHETIC_MARKET_CONFIG
        rng = np.random.default_rng([self.seed, zlib.crc32(key.encode("utf-8"))])

        base_price = cfg["base_prices"].get(key, cfg["default_base_price"])
        variation = (rng.random() - 0.5) * cfg["price_variation"]
        current_price = base_price * (1 + variation)

        if rng.random() > 0.5:
            direction = TrendDirection.UP
        elif rng.random() > 0.5:
            direction = TrendDirection.DOWN
        else:
            direction = TrendDirection.STABLE
        spread = 2 if direction == TrendDirection.STABLE else 10
        trend_percentage = round(float(rng.random()) * spread, 1)

        competitors = tuple(
            CompetitorPrice(
                price=current_price * ratio,
                quality=Quality.parse(quality),
                producer_name=name,
            )
            for name, ratio, quality in cfg["competitors"]
        )

        month_index = self._now().month - 1
        seasonal_factor = 0.9 + math.sin(month_index / 12 * 2 * math.pi) * 0.1

        return MarketTrend(
            product=key,
            current_price=float(round_half_up(current_price)),
            trend=direction,
            trend_percentage=trend_percentage,
            competitor_prices=competitors,
            seasonal_factor=round(seasonal_factor, 2),
            confidence=0.7 + float(rng.random()) * 0.3,
        )

    async def predict_price_trend(self, product_name: str, days_ahead: int = 7) -> Dict[str, object]:
        """
        Project the market price ``days_ahead`` days out.

        The current trend is applied with a linear decay that reaches zero
        after 30 days.
        """
        trend = await self.get_market_trend(product_name)
        sign = {TrendDirection.UP: 1, TrendDirection.DOWN: -1}.get(trend.trend, 0)
        decay = max(0.0, 1 - days_ahead / 30)
        price_change = sign * (trend.trend_percentage / 100) * decay

        return {
            "predicted_price": round_half_up(trend.current_price * (1 + price_change)),
            "confidence": max(0.3, trend.confidence * decay),
            "factors": [
                f"Current trend: {trend.trend.value} {trend.trend_percentage}%",
                f"Seasonality: {round_half_up((trend.seasonal_factor - 1) * 100)}%",
                f"Projection over {days_ahead} days",
            ],
        }

    def clear_cache(self) -> None:
        self._cache.clear()
