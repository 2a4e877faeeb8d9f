"""
Input Validation Utilities
===========================
Numeric coercion and history checks for the analytics engines.

Design Principles:
- Never raise for malformed numbers: drop or replace them
- Never silently fail: every correction is logged
- Return structured validation results
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .logger import get_logger
from ..models.inventory import HistoricalObservation

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """
    Structured result of a validation operation.

    Attributes
    ----------
    is_valid : bool
        False when at least one record had to be dropped
    errors : List[str]
        Records that could not be used
    warnings : List[str]
        Corrections that were applied
    info : Dict[str, Any]
        Additional validation metadata
    """
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    info: Dict[str, Any] = field(default_factory=dict)

    def add_error(self, message: str) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(message)

    def log(self, context: str) -> None:
        for message in self.errors:
            logger.warning(f"{context}: {message}")
        for message in self.warnings:
            logger.debug(f"{context}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info
        }


def safe_number(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to a finite float, or return ``default``."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def clean_series(values: Optional[Iterable[Any]]) -> np.ndarray:
    """
    Convert a sequence to a float array, dropping non-finite entries.

    None, NaN, infinities and non-numeric values are removed so that the
    statistical primitives only ever see real numbers.
    """
    if values is None:
        return np.array([], dtype=float)

    cleaned = [safe_number(v, default=math.nan) for v in values]
    array = np.asarray(cleaned, dtype=float)
    return array[np.isfinite(array)]


def clean_pairs(
    first: Sequence[Any],
    second: Sequence[Any]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Coerce two equal-length sequences, dropping positions where either
    value is not a finite number. Callers check lengths beforehand.
    """
    a = np.asarray([safe_number(v, default=math.nan) for v in first], dtype=float)
    b = np.asarray([safe_number(v, default=math.nan) for v in second], dtype=float)
    mask = np.isfinite(a) & np.isfinite(b)
    return a[mask], b[mask]


def validate_history(
    observations: Optional[Sequence[HistoricalObservation]],
    product_id: Optional[str] = None
) -> Tuple[List[HistoricalObservation], ValidationResult]:
    """
    Check a sales history before it is used for forecasting.

    Parameters
    ----------
    observations : sequence of HistoricalObservation
        Raw history from the data source
    product_id : str, optional
        Expected product identifier; foreign records are dropped

    Returns
    -------
    Tuple[List[HistoricalObservation], ValidationResult]
        Usable observations ordered by timestamp, and what was corrected
    """
    result = ValidationResult()
    usable: List[HistoricalObservation] = []

    for index, obs in enumerate(observations or ()):
        quantity = safe_number(obs.quantity, default=math.nan)
        if not math.isfinite(quantity):
            result.add_error(f"record {index}: non-numeric quantity {obs.quantity!r}")
            continue
        if quantity < 0:
            result.add_error(f"record {index}: negative quantity {quantity}")
            continue
        if product_id is not None and obs.product_id != product_id:
            result.add_error(f"record {index}: belongs to product {obs.product_id!r}")
            continue
        usable.append(obs)

    timestamps = [obs.timestamp for obs in usable]
    if timestamps != sorted(timestamps):
        result.add_warning("history was not ordered by timestamp; sorted")
        usable.sort(key=lambda obs: obs.timestamp)

    result.info["records_in"] = len(observations or ())
    result.info["records_used"] = len(usable)
    return usable, result
