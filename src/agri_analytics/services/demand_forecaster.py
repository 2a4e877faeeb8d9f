"""
Demand Forecasting Service
===========================
Predicts stock needs, reorder policy and daily demand for marketplace
products from their sales history.

Design Principles:
- Explainable: every prediction carries human-readable factors
- Robust: degenerate histories fall back to documented neutral values
- No black-box ML: classic inventory formulas on top of the statistics
  toolkit

Key Algorithms:
1. Demand pattern: mean, population standard deviation and consistency
   (1 - coefficient of variation) of daily quantities
2. Reorder point: demand during lead time + safety stock, where
   safety stock = ceil(z x sigma x sqrt(lead time)) at z = 1.65 (~95%)
3. Economic Order Quantity: sqrt(2 x annual demand x ordering cost /
   holding cost), holding cost = unit cost x 25% per year
4. Daily forecast: month/weekday seasonal index and a horizon-scaled trend,
   with a 95% band whose width grows with sqrt(days / 7)

Assumptions:
- Histories are daily sales, one observation per day
- When a product has no history at all, a seeded synthetic series of 90
  days is used instead (see SyntheticHistoryGenerator)
"""

import asyncio
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from . import statistics_toolkit as toolkit
from .cache import PredictionCache, TTLCache
from .data_sources import HistoricalDataSource, SyntheticHistoryGenerator
from ..config import Config, DEFAULT_CONFIG
from ..models.enums import Category, Severity, Urgency
from ..models.inventory import (
    AnomalyReport,
    DemandForecast,
    DemandPattern,
    HistoricalObservation,
    InventoryPrediction,
    StockOptimization,
)
from ..utils.constants import lead_time_days, seasonal_multiplier
from ..utils.logger import LogContext, get_logger
from ..utils.validators import safe_number, validate_history

logger = get_logger(__name__)


class DemandForecaster:
    """
    Demand forecasting and reorder-policy engine.

    This class provides:
    - Stock-need predictions with urgency and confidence
    - Stock-level optimization across a catalogue
    - Multi-day demand forecasts with confidence bands
    - Demand anomaly detection

    Predictions are cached per ``(product_id, current_stock)`` for one hour.

    Usage
    -----
    >>> forecaster = DemandForecaster(history_source=store)
    >>> prediction = await forecaster.predict_stock_needs(
    ...     "P-001", "Mangue Kent", current_stock=50,
    ...     average_price=800, category="fruits"
    ... )
    >>> prediction.urgency
    <Urgency.LOW: 'low'>
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        history_source: Optional[HistoricalDataSource] = None,
        cache: Optional[PredictionCache] = None,
        history_generator: Optional[SyntheticHistoryGenerator] = None,
        now: Optional[Callable[[], datetime]] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the forecaster.

        Parameters
        ----------
        config : Config, optional
            Engine configuration. Default: DEFAULT_CONFIG
        history_source : HistoricalDataSource, optional
            Where sales histories come from. Without one, every product
            uses the synthetic fallback.
        cache : PredictionCache, optional
            Prediction cache. Default: in-memory TTLCache (1 hour)
        history_generator : SyntheticHistoryGenerator, optional
            Fallback series generator. Default: seeded from config.seed
        now : callable, optional
            Returns the current datetime (calendar month, forecast dates)
        clock : callable, optional
            Monotonic seconds for the default cache
        """
        self.config = config or DEFAULT_CONFIG
        self.settings = self.config.forecast
        self.history_source = history_source
        self.cache = cache if cache is not None else TTLCache(
            self.settings.cache_ttl_seconds, clock=clock
        )
        self.history_generator = history_generator or SyntheticHistoryGenerator(self.config.seed)
        self._now = now or datetime.now
        self._synthetic: Dict[Tuple[str, Category], Tuple[HistoricalObservation, ...]] = {}

        if self.config.log_file:
            get_logger(__name__, log_file=self.config.log_file)

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def predict_stock_needs(
        self,
        product_id: str,
        product_name: str,
        current_stock: float,
        average_price: float,
        category: Any
    ) -> InventoryPrediction:
        """
        Predict stock needs for a product.

        Parameters
        ----------
        product_id : str
            Product identifier
        product_name : str
            Display name, copied to the result
        current_stock : float
            Units currently on hand
        average_price : float
            Unit cost used for the holding cost in EOQ
        category : str or Category
            Product category; unknown labels use flat seasonality and the
            default lead time

        Returns
        -------
        InventoryPrediction
            Cached result when one for the same (product_id, current_stock)
            is younger than the cache TTL
        """
        current_stock = safe_number(current_stock)
        cache_key = (product_id, current_stock)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Prediction cache hit for {cache_key!r}")
            return cached

        await self._simulate_latency(self.config.latency.predict_stock)

        category_enum = Category.parse(category)
        history = self.get_history(product_id, category_enum)
        quantities = [obs.quantity for obs in history]

        pattern = self.analyze_demand_pattern(history)
        seasonal_factor = seasonal_multiplier(category_enum, self._now().month)
        trend_factor = self.trend_factor(quantities)

        predicted_daily = max(
            0.0, pattern.average_daily_demand * seasonal_factor * (1 + trend_factor)
        )
        lead_time = lead_time_days(category_enum)
        safety = self.safety_stock(pattern.standard_deviation, lead_time)

        predicted_demand = toolkit.round_half_up(
            predicted_daily * self.settings.prediction_horizon_days
        )
        reorder_point = self.reorder_point(predicted_daily, lead_time, safety)
        reorder_quantity = self.economic_order_quantity(
            predicted_daily * self.settings.days_per_year,
            safe_number(average_price)
        )
        days_until_stockout = self.days_until_stockout(current_stock, predicted_daily)
        urgency = self.determine_urgency(current_stock, reorder_point, days_until_stockout)

        factors = self._prediction_factors(
            seasonal_factor, trend_factor, pattern, len(history), category, category_enum
        )
        confidence = toolkit.confidence(
            [pattern.consistency],
            min(1.0, len(history) / self.settings.min_reliable_sample),
            len(history)
        )

        prediction = InventoryPrediction(
            product_id=product_id,
            product_name=product_name,
            current_stock=current_stock,
            predicted_demand=predicted_demand,
            reorder_point=reorder_point,
            reorder_quantity=reorder_quantity,
            days_until_stockout=days_until_stockout,
            confidence=confidence,
            urgency=urgency,
            factors=tuple(factors),
        )

        self.cache.set(cache_key, prediction)
        logger.info(
            f"Stock prediction for {product_id}: urgency={urgency.value}, "
            f"reorder_point={reorder_point}, eoq={reorder_quantity}, "
            f"stockout_in={days_until_stockout}d"
        )
        return prediction

    async def optimize_stock_levels(
        self,
        items: Iterable[Mapping[str, Any]]
    ) -> List[StockOptimization]:
        """
        Compare each item's stock with its optimal level.

        Parameters
        ----------
        items : iterable of mappings
            Each with product_id, product_name, current_stock, price and
            category

        Returns
        -------
        List[StockOptimization]
            One entry per item, in input order. The optimal level is the
            reorder point plus half an EOQ; overstock is valued at 10% of
            its price (holding cost avoided).
        """
        optimizations = []

        with LogContext(logger, "Optimizing stock levels"):
            for item in items:
                price = safe_number(item.get("price"))
                current_stock = safe_number(item.get("current_stock"))

                prediction = await self.predict_stock_needs(
                    item.get("product_id"),
                    item.get("product_name", ""),
                    current_stock,
                    price,
                    item.get("category"),
                )

                optimal_stock = prediction.reorder_point + toolkit.round_half_up(
                    prediction.reorder_quantity * self.settings.optimal_stock_eoq_share
                )
                overstock = max(0.0, current_stock - optimal_stock)
                potential_savings = overstock * price * self.settings.holding_savings_rate

                if current_stock < prediction.reorder_point:
                    recommendation = f"Order {prediction.reorder_quantity} units now"
                elif overstock > 0:
                    recommendation = (
                        f"Overstock of {overstock:g} units - consider a promotion"
                    )
                else:
                    recommendation = "Stock level is optimal"

                optimizations.append(StockOptimization(
                    product_id=prediction.product_id,
                    current_stock=current_stock,
                    optimal_stock=optimal_stock,
                    overstock=overstock,
                    potential_savings=potential_savings,
                    recommendation=recommendation,
                ))

        return optimizations

    async def forecast_demand(
        self,
        product_id: str,
        days_ahead: int = 30,
        category: Any = None
    ) -> List[DemandForecast]:
        """
        Forecast daily demand for the next ``days_ahead`` days.

        Each day combines a month-of-year sinusoid (+/-20%) with a weekend
        dampening (75%) and the recent trend scaled by the horizon. The
        95% band is +/- 1.96 x sigma x sqrt(day / 7); confidence decays
        linearly with the horizon (floor 0.3) and is scaled by the demand
        consistency.
        """
        await self._simulate_latency(self.config.latency.forecast_demand)

        days_ahead = int(safe_number(days_ahead))
        if days_ahead <= 0:
            return []

        history = self.get_history(product_id, Category.parse(category))
        pattern = self.analyze_demand_pattern(history)
        recent = [obs.quantity for obs in history][-self.settings.trend_window:]
        daily_change = self.trend_factor(recent)

        today = self._now().date()
        z = self.settings.band_z_score
        forecasts = []

        for day in range(1, days_ahead + 1):
            target = today + timedelta(days=day)

            seasonal_index = self.seasonal_index(target)
            trend_component = daily_change * (day / self.settings.trend_window)
            predicted = max(
                0.0, pattern.average_daily_demand * seasonal_index * (1 + trend_component)
            )

            uncertainty = pattern.standard_deviation * math.sqrt(day / 7)
            lower_bound = max(0.0, predicted - z * uncertainty)
            upper_bound = predicted + z * uncertainty

            confidence_decay = max(
                self.settings.min_forecast_confidence,
                1 - (day / days_ahead) * self.settings.forecast_confidence_decay
            )

            forecasts.append(DemandForecast(
                date=target,
                predicted_demand=toolkit.round_half_up(predicted),
                lower_bound=toolkit.round_half_up(lower_bound),
                upper_bound=toolkit.round_half_up(upper_bound),
                confidence=confidence_decay * pattern.consistency,
            ))

        logger.info(f"Forecast {days_ahead} days of demand for {product_id}")
        return forecasts

    async def detect_anomalies(
        self,
        product_id: str,
        current_demand: float,
        category: Any = None
    ) -> AnomalyReport:
        """
        Check whether an observed demand falls outside mean +/- 2 sigma.

        Severity is HIGH beyond 3 sigma and MEDIUM beyond 2 sigma; the
        message tells a spike from a drop.
        """
        await self._simulate_latency(self.config.latency.detect_anomalies)

        history = self.get_history(product_id, Category.parse(category))
        pattern = self.analyze_demand_pattern(history)
        mean = pattern.average_daily_demand
        sigma = pattern.standard_deviation
        current_demand = safe_number(current_demand, default=mean)

        expected_min = mean - self.settings.anomaly_sigma * sigma
        expected_max = mean + self.settings.anomaly_sigma * sigma
        is_anomaly = current_demand < expected_min or current_demand > expected_max

        severity = Severity.LOW
        message = "Demand within expected range"

        if is_anomaly:
            deviation = abs(current_demand - mean) / sigma if sigma > 0 else math.inf
            is_spike = current_demand > expected_max

            if deviation > self.settings.high_severity_sigma:
                severity = Severity.HIGH
                message = (
                    "Exceptionally high demand detected" if is_spike
                    else "Unusual drop in demand detected"
                )
            elif deviation > self.settings.anomaly_sigma:
                severity = Severity.MEDIUM
                message = (
                    "Significant increase in demand" if is_spike
                    else "Significant decrease in demand"
                )

            logger.warning(
                f"Demand anomaly for {product_id}: {current_demand:g} vs "
                f"expected {expected_min:.1f}-{expected_max:.1f} ({severity.value})"
            )

        return AnomalyReport(
            product_id=product_id,
            current_demand=current_demand,
            is_anomaly=is_anomaly,
            severity=severity,
            message=message,
            expected_min=toolkit.round_half_up(max(0.0, expected_min)),
            expected_max=toolkit.round_half_up(expected_max),
        )

    # =========================================================================
    # HISTORY
    # =========================================================================

    def get_history(
        self,
        product_id: str,
        category: Category = Category.OTHER
    ) -> List[HistoricalObservation]:
        """
        Validated sales history for a product.

        Uses the history source when it knows the product; otherwise a
        synthetic series, generated once per (product, category).
        """
        raw = self.history_source.get_history(product_id) if self.history_source else None

        if raw is not None:
            history, validation = validate_history(raw, product_id)
            validation.log(f"history of {product_id}")
            return history

        key = (product_id, category)
        if key not in self._synthetic:
            logger.debug(f"No recorded history for {product_id}; using synthetic fallback")
            self._synthetic[key] = tuple(self.history_generator.sales_history(
                product_id, category, end=self._now().date()
            ))
        return list(self._synthetic[key])

    def record_sale(self, observation: HistoricalObservation) -> None:
        """Forward a new sale to the history source, if it accepts writes."""
        record = getattr(self.history_source, "record", None)
        if record is None:
            logger.warning("History source does not accept new sales")
            return
        record(observation)

    # =========================================================================
    # INVENTORY FORMULAS
    # =========================================================================

    def analyze_demand_pattern(self, history: List[HistoricalObservation]) -> DemandPattern:
        """
        Mean, population standard deviation and consistency of quantities.

        Consistency is 1 - sigma / mean clamped to [0, 1] (0 when the mean
        is 0). An empty history gives the configured neutral pattern.
        """
        if not history:
            return DemandPattern(
                average_daily_demand=self.settings.empty_history_demand,
                standard_deviation=self.settings.empty_history_std,
                consistency=self.settings.empty_history_consistency,
            )

        quantities = np.array([obs.quantity for obs in history], dtype=float)
        mean = float(quantities.mean())
        std = float(quantities.std())

        coefficient_of_variation = std / mean if mean != 0 else 1.0
        consistency = max(0.0, min(1.0, 1 - coefficient_of_variation))

        return DemandPattern(mean, std, consistency)

    def trend_factor(self, quantities: List[float]) -> float:
        """Signed trend strength; 0 with fewer than 7 observations."""
        if len(quantities) < self.settings.min_points_for_trend:
            return 0.0
        return toolkit.trend(quantities).signed_strength

    @staticmethod
    def seasonal_index(target) -> float:
        """Month-of-year sinusoid (+/-20%) with weekend dampening (75%)."""
        month_factor = 1 + 0.2 * math.sin(((target.month - 1) / 12) * 2 * math.pi)
        weekday_factor = 0.75 if target.weekday() >= 5 else 1.0
        return month_factor * weekday_factor

    def safety_stock(self, standard_deviation: float, lead_time: float) -> int:
        return int(math.ceil(
            self.settings.service_level_z * standard_deviation * math.sqrt(max(0.0, lead_time))
        ))

    @staticmethod
    def reorder_point(daily_demand: float, lead_time: float, safety_stock: float) -> int:
        return toolkit.round_half_up(daily_demand * lead_time + safety_stock)

    def economic_order_quantity(self, annual_demand: float, unit_cost: float) -> int:
        """
        Economic Order Quantity, never below the minimum order quantity.

        A non-positive unit cost has no holding cost to balance and
        returns the minimum order quantity.
        """
        holding_cost = unit_cost * self.settings.holding_cost_rate
        if holding_cost <= 0:
            return self.settings.min_order_quantity

        annual_demand = max(0.0, annual_demand)
        eoq = math.sqrt((2 * annual_demand * self.settings.ordering_cost) / holding_cost)
        return max(self.settings.min_order_quantity, toolkit.round_half_up(eoq))

    @staticmethod
    def days_until_stockout(current_stock: float, daily_demand: float) -> int:
        if current_stock <= 0:
            return 0
        return int(math.floor(current_stock / max(1.0, daily_demand)))

    @staticmethod
    def determine_urgency(
        current_stock: float,
        reorder_point: float,
        days_until_stockout: int
    ) -> Urgency:
        if current_stock <= 0 or days_until_stockout <= 2:
            return Urgency.CRITICAL
        if current_stock < reorder_point * 0.5:
            return Urgency.HIGH
        if current_stock < reorder_point:
            return Urgency.MEDIUM
        return Urgency.LOW

    def _prediction_factors(
        self,
        seasonal_factor: float,
        trend_factor: float,
        pattern: DemandPattern,
        sample_size: int,
        raw_category: Any,
        category: Category
    ) -> List[str]:
        factors = []

        if abs(seasonal_factor - 1) > self.settings.seasonal_factor_threshold:
            change = toolkit.round_half_up((seasonal_factor - 1) * 100)
            factors.append(
                f"Peak season: +{change}%" if seasonal_factor > 1
                else f"Low season: {change}%"
            )

        if abs(trend_factor) > self.settings.trend_factor_threshold:
            change = toolkit.round_half_up(trend_factor * 100)
            factors.append(
                f"Rising trend: +{change}%" if trend_factor > 0
                else f"Falling trend: {change}%"
            )

        if pattern.consistency > self.settings.stable_consistency:
            factors.append("Stable, predictable demand")
        elif pattern.consistency < self.settings.volatile_consistency:
            factors.append("Volatile, unpredictable demand")

        if sample_size < self.settings.min_reliable_sample:
            factors.append("Limited historical data")

        if category == Category.OTHER:
            logger.warning(f"Unknown category {raw_category!r}; using flat seasonality")
            factors.append(
                f"No seasonal profile for category {raw_category!r}: "
                f"flat seasonality and {lead_time_days(category)}-day lead time assumed"
            )

        return factors

    # =========================================================================
    # CACHE
    # =========================================================================

    def clear_cache(self) -> None:
        """Drop every cached prediction."""
        self.cache.clear()
        logger.debug("Prediction cache cleared")

    def evict(self, product_id: str, current_stock: float) -> None:
        self.cache.evict((product_id, safe_number(current_stock)))

    @staticmethod
    async def _simulate_latency(seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)


def forecasts_to_frame(forecasts: List[DemandForecast]) -> pd.DataFrame:
    """
    Combine forecasts into a DataFrame.

    Returns
    -------
    pd.DataFrame
        Columns: date, predicted_demand, lower_bound, upper_bound, confidence
    """
    columns = ['date', 'predicted_demand', 'lower_bound', 'upper_bound', 'confidence']
    if len(forecasts) == 0:
        return pd.DataFrame(columns=columns)

    frame = pd.DataFrame([
        {
            'date': f.date,
            'predicted_demand': f.predicted_demand,
            'lower_bound': f.lower_bound,
            'upper_bound': f.upper_bound,
            'confidence': f.confidence,
        }
        for f in forecasts
    ])
    frame['date'] = pd.to_datetime(frame['date'])
    return frame[columns]
