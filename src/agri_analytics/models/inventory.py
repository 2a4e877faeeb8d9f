"""
Inventory Data Structures
==========================
Historical observations and the decision objects produced by the
demand forecaster.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Tuple

from .enums import Severity, TrendDirection, Urgency


@dataclass(frozen=True)
class HistoricalObservation:
    """
    A single recorded sale. Immutable once recorded.

    Attributes
    ----------
    product_id : str
        Product the sale belongs to
    quantity : float
        Units sold (>= 0)
    timestamp : datetime
        When the sale happened
    unit_price : float
        Price per unit at the time of sale
    """
    product_id: str
    quantity: float
    timestamp: datetime
    unit_price: float = 0.0


@dataclass(frozen=True)
class TrendResult:
    """Direction and scale-free strength of a least-squares trend"""
    direction: TrendDirection
    strength: float

    @property
    def signed_strength(self) -> float:
        """Strength with a positive sign only for upward trends."""
        return self.strength if self.direction == TrendDirection.UP else -self.strength


@dataclass(frozen=True)
class DemandPattern:
    """Summary statistics of a product's daily demand"""
    average_daily_demand: float
    standard_deviation: float
    consistency: float


@dataclass(frozen=True)
class InventoryPrediction:
    """
    Stock needs for one product. Immutable, so a cached prediction can be
    handed to any number of callers.

    Attributes
    ----------
    predicted_demand : int
        Expected demand over the next 7 days
    reorder_point : int
        Stock level that should trigger a new order
    reorder_quantity : int
        Economic order quantity
    days_until_stockout : int
        Days the current stock lasts at the predicted rate
    confidence : float
        Confidence score in [0, 1]
    urgency : Urgency
        Restocking urgency
    factors : Tuple[str, ...]
        Human-readable contributors, most significant first
    """
    product_id: str
    product_name: str
    current_stock: float
    predicted_demand: int
    reorder_point: int
    reorder_quantity: int
    days_until_stockout: int
    confidence: float
    urgency: Urgency
    factors: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'current_stock': self.current_stock,
            'predicted_demand': self.predicted_demand,
            'reorder_point': self.reorder_point,
            'reorder_quantity': self.reorder_quantity,
            'days_until_stockout': self.days_until_stockout,
            'confidence': self.confidence,
            'urgency': self.urgency.value,
            'factors': list(self.factors),
        }


@dataclass
class StockOptimization:
    """Optimal stock level and overstock assessment for one product"""
    product_id: str
    current_stock: float
    optimal_stock: int
    overstock: float
    potential_savings: float
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'current_stock': self.current_stock,
            'optimal_stock': self.optimal_stock,
            'overstock': self.overstock,
            'potential_savings': self.potential_savings,
            'recommendation': self.recommendation,
        }


@dataclass
class DemandForecast:
    """Point forecast with a 95% band for a single future day"""
    date: date
    predicted_demand: int
    lower_bound: int
    upper_bound: int
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date.isoformat(),
            'predicted_demand': self.predicted_demand,
            'lower_bound': self.lower_bound,
            'upper_bound': self.upper_bound,
            'confidence': self.confidence,
        }


@dataclass
class AnomalyReport:
    """Outcome of comparing an observed demand to its expected range"""
    product_id: str
    current_demand: float
    is_anomaly: bool
    severity: Severity
    message: str
    expected_min: int
    expected_max: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'current_demand': self.current_demand,
            'is_anomaly': self.is_anomaly,
            'severity': self.severity.value,
            'message': self.message,
            'expected_range': {'min': self.expected_min, 'max': self.expected_max},
        }
