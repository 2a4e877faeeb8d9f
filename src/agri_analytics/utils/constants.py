"""
System-Wide Constants and Lookup Tables
=========================================
Centralized location for the category tables, pricing buckets and
thresholds used by the forecasting and pricing engines.

Design Principles:
- All magic numbers should be defined here or in config.py
- Category tables are total: lookups go through functions with a default
- Tuned business values are kept as-is (see DESIGN.md)
"""

from typing import Dict, Tuple

from ..models.enums import Category, PricingStrategy, DemandLevel

# =============================================================================
# CATEGORY TABLES
# =============================================================================
# Monthly demand multipliers, index 0 = January.

FLAT_SEASONAL_CURVE: Tuple[float, ...] = (1.0,) * 12

CATEGORY_SEASONAL_CURVES: Dict[Category, Tuple[float, ...]] = {
    Category.FRUITS: (0.8, 0.9, 1.1, 1.2, 1.3, 1.2, 1.1, 1.0, 0.9, 0.8, 0.9, 1.0),
    Category.LEGUMES: (1.0, 1.1, 1.2, 1.1, 1.0, 0.9, 0.8, 0.9, 1.0, 1.1, 1.2, 1.1),
    Category.CEREALES: (1.0, 1.0, 0.9, 0.8, 0.9, 1.0, 1.1, 1.2, 1.3, 1.2, 1.1, 1.0),
}

# Days needed to replenish stock
DEFAULT_LEAD_TIME_DAYS = 3

CATEGORY_LEAD_TIMES: Dict[Category, int] = {
    Category.FRUITS: 2,
    Category.LEGUMES: 3,
    Category.CEREALES: 5,
    Category.VOLAILLE: 4,
    Category.POISSONS: 1,
}


def seasonal_curve(category: Category) -> Tuple[float, ...]:
    """Monthly multiplier curve for a category (flat for anything else)."""
    return CATEGORY_SEASONAL_CURVES.get(category, FLAT_SEASONAL_CURVE)


def seasonal_multiplier(category: Category, month: int) -> float:
    """Demand multiplier for a category in a calendar month (1-12)."""
    return seasonal_curve(category)[(month - 1) % 12]


def lead_time_days(category: Category) -> int:
    """Replenishment lead time in days for a category."""
    return CATEGORY_LEAD_TIMES.get(category, DEFAULT_LEAD_TIME_DAYS)


# =============================================================================
# SYNTHETIC HISTORY
# =============================================================================
# Shape of the fallback series used when a product has no recorded sales.

SYNTHETIC_HISTORY_CONFIG = {
    "days": 90,
    "base_quantity_range": (3.0, 6.0),   # units/day before effects
    "weekend_factor": 0.7,
    "noise_range": (0.8, 1.2),
    "trend_growth": 0.2,                 # +20% from first to last day
    "unit_price_range": (500.0, 1000.0),
}

SYNTHETIC_PRICE_HISTORY_CONFIG = {
    "days": 31,
    "base_price_range": (800.0, 1200.0),
    "base_volume_range": (50.0, 100.0),
    "price_variation": (0.9, 1.1),
    "volume_variation": (0.8, 1.2),
}

SYNTHETIC_MARKET_CONFIG = {
    "base_prices": {
        "cacao": 1200.0,
        "cafe": 2800.0,
        "café": 2800.0,
        "ananas": 800.0,
        "mangue": 600.0,
        "manioc": 300.0,
    },
    "default_base_price": 1000.0,
    "price_variation": 0.2,              # +/-10% around the base price
    # (producer, relative price, quality)
    "competitors": [
        ("Cooperative Yopougon", 0.95, "Standard"),
        ("Plantation Bouake", 1.10, "Premium"),
        ("Agriculteurs Unis", 0.90, "Standard"),
    ],
    "cache_ttl_seconds": 5 * 60,
}

# =============================================================================
# PRICING TABLES
# =============================================================================

STRATEGY_TARGET_MARGINS: Dict[PricingStrategy, float] = {
    PricingStrategy.PREMIUM: 0.45,
    PricingStrategy.SKIMMING: 0.40,
    PricingStrategy.PENETRATION: 0.20,
    PricingStrategy.COMPETITIVE: 0.30,
}

DEMAND_LEVEL_MULTIPLIERS: Dict[DemandLevel, float] = {
    DemandLevel.HIGH: 1.15,
    DemandLevel.MEDIUM: 1.0,
    DemandLevel.LOW: 0.90,
}

# Hour windows are inclusive; off-peak wraps around midnight
TIME_OF_DAY_CONFIG = {
    "morning_peak": {"start": 6, "end": 10, "multiplier": 1.05},
    "evening_peak": {"start": 17, "end": 20, "multiplier": 1.08},
    "off_peak": {"from": 22, "until": 5, "multiplier": 0.85},
}

# Stock ratio (current / optimal) thresholds for dynamic pricing
STOCK_PRICING_CONFIG = {
    "overstock_ratio": 1.5,
    "overstock_multiplier": 0.90,
    "understock_ratio": 0.3,
    "understock_multiplier": 1.10,
}

# =============================================================================
# LOGGING
# =============================================================================

LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    "date_format": "%Y-%m-%d %H:%M:%S",
}
