"""
Enumerations shared by the forecasting and pricing engines.

Parsing helpers are total: unknown inputs map to a documented default
instead of raising, so a bad label never blocks a business workflow.
"""

from enum import Enum
from typing import Optional, Union


class Category(Enum):
    """Product categories with dedicated seasonal curves and lead times"""
    FRUITS = "fruits"
    LEGUMES = "legumes"
    CEREALES = "cereales"
    VOLAILLE = "volaille"
    POISSONS = "poissons"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[Union[str, "Category"]]) -> "Category":
        """Map a free-form label to a category; unknown labels become OTHER."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.OTHER
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class Urgency(Enum):
    """Restocking urgency"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TrendDirection(Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"

    @classmethod
    def parse(cls, value: Optional[Union[str, "TrendDirection"]]) -> "TrendDirection":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.STABLE


class Severity(Enum):
    """Anomaly severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PricingStrategy(Enum):
    PREMIUM = "premium"
    COMPETITIVE = "competitive"
    PENETRATION = "penetration"
    SKIMMING = "skimming"


class Quality(Enum):
    """Product quality grades used by the marketplace"""
    STANDARD = "Standard"
    PREMIUM = "Premium"
    BIO = "Bio"

    @classmethod
    def parse(cls, value: Optional[Union[str, "Quality"]]) -> "Quality":
        if isinstance(value, cls):
            return value
        label = str(value or "").strip().lower()
        for quality in cls:
            if quality.value.lower() == label:
                return quality
        return cls.STANDARD


class DemandLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Optional[Union[str, "DemandLevel"]]) -> "DemandLevel":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MEDIUM


class MarketPosition(Enum):
    """Where a price sits relative to the market average"""
    BELOW = "below"
    AT = "at"
    ABOVE = "above"
