"""
AgriPulse Analytics - Configuration Module
===========================================

Centralized configuration for the forecasting and pricing engines.

The tuned business values below (service-level z-score, holding rate,
ordering cost, elasticity fallback) are assumptions carried over from the
marketplace's pricing desk. They are exposed as fields so deployments can
override them without touching the algorithms.
"""

from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass
class ForecastConfig:
    """Configuration for demand forecasting and reorder policy"""
    # Prediction cache
    cache_ttl_seconds: float = 60 * 60

    # Reorder policy
    service_level_z: float = 1.65       # ~95% probability of no stockout
    ordering_cost: float = 5000.0       # fixed cost per order
    holding_cost_rate: float = 0.25     # annual share of unit cost
    min_order_quantity: int = 10
    days_per_year: int = 365
    prediction_horizon_days: int = 7

    # Forecast bands
    band_z_score: float = 1.96
    min_forecast_confidence: float = 0.3
    forecast_confidence_decay: float = 0.5
    trend_window: int = 30
    min_points_for_trend: int = 7

    # Demand pattern fallback when a product has no history at all
    empty_history_demand: float = 10.0
    empty_history_std: float = 5.0
    empty_history_consistency: float = 0.5

    # Confidence and factor thresholds
    min_reliable_sample: int = 30
    seasonal_factor_threshold: float = 0.10
    trend_factor_threshold: float = 0.05
    stable_consistency: float = 0.7
    volatile_consistency: float = 0.4

    # Anomaly detection (in standard deviations)
    anomaly_sigma: float = 2.0
    high_severity_sigma: float = 3.0

    # Stock optimization
    optimal_stock_eoq_share: float = 0.5
    holding_savings_rate: float = 0.10


@dataclass
class PricingConfig:
    """Configuration for price optimization"""
    price_step: int = 5
    default_elasticity: float = -1.2
    elasticity_scale: float = -1.5
    min_history_for_elasticity: int = 5
    min_history_for_analysis: int = 10
    elasticity_window: int = 10
    elastic_threshold: float = 1.5
    inelastic_threshold: float = 0.5
    skimming_margin_pct: float = 40.0
    market_band: float = 0.05
    market_trend_adjustment: float = 0.05
    premium_elastic_discount: float = 0.95
    min_price_change: float = 0.01

    # Competitive convergence toward the market average
    trend_convergence: float = 0.5
    default_convergence: float = 0.3
    missing_market_spread: float = 0.2

    # Dynamic pricing
    seasonal_amplitude: float = 0.10
    seasonal_factor_threshold: float = 0.05

    # Optimal price search (multiples of cost)
    search_min_markup: float = 1.2
    search_max_markup: float = 3.0
    search_step_markup: float = 0.1
    search_reference_markup: float = 2.0
    search_default_markup: float = 1.5

    # Confidence inputs
    model_accuracy: float = 0.8
    market_data_quality: float = 0.9
    missing_market_data_quality: float = 0.6


@dataclass
class LatencyConfig:
    """Artificial delays (seconds) that emulate remote model calls"""
    predict_stock: float = 0.3
    forecast_demand: float = 0.4
    detect_anomalies: float = 0.2
    optimize_price: float = 0.4
    dynamic_price: float = 0.2
    elasticity: float = 0.3
    competitive_pricing: float = 0.25
    optimal_price_point: float = 0.35


@dataclass
class Config:
    """
    Master configuration for the analytics core

    Usage:
        config = Config(seed=7)
        config.forecast.cache_ttl_seconds = 600
    """
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    latency: LatencyConfig = field(default_factory=LatencyConfig)

    # Seed for synthetic fallback histories
    seed: int = 42

    # Optional log file for the engines' loggers
    log_file: Optional[str] = None

    def __post_init__(self):
        """Reject settings the engines cannot work with"""
        if self.forecast.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.pricing.price_step <= 0:
            raise ValueError("price_step must be positive")
        if self.forecast.holding_cost_rate <= 0:
            raise ValueError("holding_cost_rate must be positive")

    def without_latency(self) -> 'Config':
        """Return a copy with every artificial delay set to zero."""
        return replace(self, latency=LatencyConfig(**{
            name: 0.0 for name in LatencyConfig.__dataclass_fields__
        }))


# Default configuration instance
DEFAULT_CONFIG = Config()
