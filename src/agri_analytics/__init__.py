"""
AgriPulse Analytics - Forecasting and Pricing Core
===================================================

Analytics core of an agricultural marketplace: demand forecasting,
reorder policy and pricing recommendations for producers.

Modules:
- config: Configuration management
- models: Result and input data structures
- services: Statistics toolkit, demand forecaster, price optimizer
- utils: Logging, validation and lookup tables

Usage:
    from agri_analytics import DemandForecaster, PriceOptimizer

    forecaster = DemandForecaster()
    prediction = await forecaster.predict_stock_needs(
        "P-001", "Mangue Kent", current_stock=50,
        average_price=800, category="fruits"
    )
"""

__version__ = "1.0.0"
__author__ = "AgriPulse Analytics Team"

from .config import Config, DEFAULT_CONFIG
from .services import (
    DemandForecaster,
    PriceOptimizer,
    StatisticsToolkit,
    SyntheticMarketTrendSource,
    TTLCache,
)

__all__ = [
    'Config',
    'DEFAULT_CONFIG',
    'DemandForecaster',
    'PriceOptimizer',
    'StatisticsToolkit',
    'SyntheticMarketTrendSource',
    'TTLCache',
]
