"""
Models Package
==============
Data structures exchanged between the analytics engines and their callers.
"""

from .enums import (
    Category,
    DemandLevel,
    MarketPosition,
    PricingStrategy,
    Quality,
    Severity,
    TrendDirection,
    Urgency,
)
from .inventory import (
    AnomalyReport,
    DemandForecast,
    DemandPattern,
    HistoricalObservation,
    InventoryPrediction,
    StockOptimization,
    TrendResult,
)
from .pricing import (
    CompetitivePricing,
    CompetitorPrice,
    DynamicPricing,
    ExpectedImpact,
    MarketTrend,
    OptimalPricePoint,
    PriceElasticity,
    PriceOptimization,
    PricePoint,
)

__all__ = [
    'Category',
    'DemandLevel',
    'MarketPosition',
    'PricingStrategy',
    'Quality',
    'Severity',
    'TrendDirection',
    'Urgency',
    'AnomalyReport',
    'DemandForecast',
    'DemandPattern',
    'HistoricalObservation',
    'InventoryPrediction',
    'StockOptimization',
    'TrendResult',
    'CompetitivePricing',
    'CompetitorPrice',
    'DynamicPricing',
    'ExpectedImpact',
    'MarketTrend',
    'OptimalPricePoint',
    'PriceElasticity',
    'PriceOptimization',
    'PricePoint',
]
