"""
Utils Package
=============
Utility functions for the analytics core.

Modules:
- logger: Centralized logging configuration
- validators: Numeric coercion and history validation
- constants: Category tables and pricing lookup tables
"""

from .logger import get_logger, LogContext
from .validators import ValidationResult, clean_series, safe_number, validate_history
from .constants import lead_time_days, seasonal_multiplier

__all__ = [
    'get_logger',
    'LogContext',
    'ValidationResult',
    'clean_series',
    'safe_number',
    'validate_history',
    'lead_time_days',
    'seasonal_multiplier',
]
