"""
Services Package
=================
Analytics engines of the AgriPulse marketplace.

Modules:
- statistics_toolkit: Pure numeric primitives (trend, smoothing, outliers)
- cache: Time-bounded prediction cache
- data_sources: Sales, price and market-trend collaborators
- demand_forecaster: Stock needs, reorder policy and demand forecasts
- price_optimizer: Strategy pricing, dynamic pricing and elasticity
"""

from .statistics_toolkit import StatisticsToolkit
from .cache import PredictionCache, TTLCache
from .data_sources import (
    HistoricalDataSource,
    InMemoryHistoryStore,
    MarketTrendSource,
    PriceHistoryStore,
    StaticMarketTrendSource,
    SyntheticHistoryGenerator,
    SyntheticMarketTrendSource,
)
from .demand_forecaster import DemandForecaster, forecasts_to_frame
from .price_optimizer import PriceOptimizer

__all__ = [
    'StatisticsToolkit',
    'PredictionCache',
    'TTLCache',
    'HistoricalDataSource',
    'InMemoryHistoryStore',
    'MarketTrendSource',
    'PriceHistoryStore',
    'StaticMarketTrendSource',
    'SyntheticHistoryGenerator',
    'SyntheticMarketTrendSource',
    'DemandForecaster',
    'forecasts_to_frame',
    'PriceOptimizer',
]
