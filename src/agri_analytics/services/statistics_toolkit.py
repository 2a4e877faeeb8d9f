"""
Statistics Toolkit
===================
Pure numeric primitives shared by the demand forecaster and the price
optimizer.

Design Principles:
- Stateless: every function depends only on its arguments
- Never raise for degenerate input (empty, short, constant or mismatched
  series); each function documents the neutral value it returns instead
- Non-finite entries (None, NaN, inf) are ignored. Series-valued
  primitives (normalize, moving_average, exponential_smoothing) return one
  value per finite input, so their output can be shorter than the input;
  detect_outliers is the exception and keeps one flag per input position

Primitives:
1. normalize              - min-max scaling to [0, 1]
2. moving_average         - trailing window mean, partial at the start
3. trend                  - least-squares slope scaled by the mean
4. seasonality_index      - phase average over complete cycles
5. confidence             - weighted blend of accuracy, quality and size
6. detect_outliers        - Tukey fences (1.5 x IQR)
7. exponential_smoothing  - EWMA seeded with the first observation
8. correlation            - Pearson coefficient
9. weighted_average       - weighted mean
"""

import math
from typing import Any, List, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from ..models.enums import TrendDirection
from ..models.inventory import TrendResult
from ..utils.validators import clean_pairs, clean_series, safe_number

STABLE_TREND_THRESHOLD = 0.05
TUKEY_FENCE = 1.5
MIN_POINTS_FOR_OUTLIERS = 4


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from minus infinity."""
    return int(math.floor(value + 0.5))


def round_to_step(value: float, step: int = 5) -> int:
    """Round a price to the nearest multiple of ``step``."""
    return round_half_up(value / step) * step


def normalize(values: Sequence[Any]) -> List[float]:
    """
    Min-max scale ``values`` to [0, 1].

    A constant series has no variation to scale and maps to 0.5 everywhere.
    Non-finite entries are dropped, so the result has one value per finite
    input.
    """
    data = clean_series(values)
    if data.size == 0:
        return []

    low, high = data.min(), data.max()
    if high == low:
        return [0.5] * data.size

    return ((data - low) / (high - low)).tolist()


def moving_average(values: Sequence[Any], window: int) -> List[float]:
    """
    Trailing moving average.

    Index ``i`` averages the last ``min(window, i + 1)`` values, so the
    first points use a partial window and nothing looks ahead. Windows run
    over the finite inputs only; the result is shortened accordingly.
    """
    data = clean_series(values)
    if data.size == 0:
        return []

    window = max(1, int(window))
    return pd.Series(data).rolling(window=window, min_periods=1).mean().tolist()


def trend(values: Sequence[Any]) -> TrendResult:
    """
    Ordinary least-squares trend of value against index.

    The slope is divided by the mean so the strength is scale-free.
    |slope| below 0.05 counts as stable.

    Returns
    -------
    TrendResult
        ``(STABLE, 0.0)`` with fewer than two points
    """
    data = clean_series(values)
    n = data.size
    if n < 2:
        return TrendResult(TrendDirection.STABLE, 0.0)

    x = np.arange(n, dtype=float)
    sum_x = x.sum()
    sum_y = data.sum()
    sum_xy = (x * data).sum()
    sum_x2 = (x * x).sum()

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    mean_y = sum_y / n
    normalized_slope = slope / mean_y if mean_y != 0 else 0.0

    if abs(normalized_slope) < STABLE_TREND_THRESHOLD:
        direction = TrendDirection.STABLE
    elif normalized_slope > 0:
        direction = TrendDirection.UP
    else:
        direction = TrendDirection.DOWN

    return TrendResult(direction, float(abs(normalized_slope)))


def seasonality_index(values: Sequence[Any], period: int = 7) -> float:
    """
    Seasonal index of the most recent observation.

    Averages each phase of ``period`` across all complete cycles and
    divides the current phase's average by the mean of the phase pattern.
    Needs at least two full periods; otherwise returns the neutral 1.0.
    """
    data = clean_series(values)
    period = int(period)
    if period < 1 or data.size < period * 2:
        return 1.0

    cycles = data.size // period
    pattern = data[:cycles * period].reshape(cycles, period).mean(axis=0)
    pattern_average = pattern.mean()
    current_phase = (data.size - 1) % period

    if pattern_average == 0:
        return 1.0
    return float(pattern[current_phase] / pattern_average)


def confidence(
    historical_accuracy: Sequence[Any],
    data_quality: float,
    sample_size: float
) -> float:
    """
    Blend accuracy, data quality and sample size into a score in [0, 1].

    Weights: 50% mean historical accuracy (0.5 when unknown), 30% data
    quality, 20% sample size saturating at 100 observations.
    """
    accuracy = clean_series(historical_accuracy)
    average_accuracy = float(accuracy.mean()) if accuracy.size > 0 else 0.5

    quality = safe_number(data_quality)
    size_confidence = min(1.0, safe_number(sample_size) / 100)

    score = average_accuracy * 0.5 + quality * 0.3 + size_confidence * 0.2
    return max(0.0, min(1.0, score))


def detect_outliers(values: Sequence[Any]) -> List[bool]:
    """
    Flag values outside the Tukey fences ``[q1 - 1.5 IQR, q3 + 1.5 IQR]``.

    Quartiles are the sorted values at positions floor(0.25 n) and
    floor(0.75 n). Fewer than four points flags nothing. The result has
    one entry per input; non-numeric entries are never flagged.
    """
    if values is None:
        return []
    numbers = np.asarray([safe_number(v, default=math.nan) for v in values], dtype=float)
    finite = numbers[np.isfinite(numbers)]
    if finite.size < MIN_POINTS_FOR_OUTLIERS:
        return [False] * len(numbers)

    ordered = np.sort(finite)
    q1 = ordered[int(math.floor(finite.size * 0.25))]
    q3 = ordered[int(math.floor(finite.size * 0.75))]
    iqr = q3 - q1

    lower = q1 - TUKEY_FENCE * iqr
    upper = q3 + TUKEY_FENCE * iqr

    flags = np.isfinite(numbers) & ((numbers < lower) | (numbers > upper))
    return flags.tolist()


def exponential_smoothing(values: Sequence[Any], alpha: float = 0.3) -> List[float]:
    """
    Exponentially weighted moving average.

    ``s[0] = x[0]`` and ``s[i] = alpha * x[i] + (1 - alpha) * s[i-1]``.
    ``alpha`` is clamped to [0, 1]. Non-finite entries are dropped before
    smoothing, so the result has one value per finite input.
    """
    data = clean_series(values)
    if data.size == 0:
        return []

    alpha = min(1.0, max(0.0, safe_number(alpha, default=0.3)))
    if alpha == 0:
        return [float(data[0])] * data.size

    return pd.Series(data).ewm(alpha=alpha, adjust=False).mean().tolist()


def correlation(series_a: Sequence[Any], series_b: Sequence[Any]) -> float:
    """
    Pearson correlation of two equal-length series.

    Returns 0 when the lengths differ, the series are empty, or either
    series has no variance.
    """
    if series_a is None or series_b is None:
        return 0.0
    if len(series_a) != len(series_b) or len(series_a) == 0:
        return 0.0

    a, b = clean_pairs(series_a, series_b)
    if a.size < 2 or np.ptp(a) == 0 or np.ptp(b) == 0:
        return 0.0

    coefficient = stats.pearsonr(a, b)[0]
    return float(coefficient) if math.isfinite(coefficient) else 0.0


def weighted_average(values: Sequence[Any], weights: Sequence[Any]) -> float:
    """Weighted mean; 0 for mismatched or empty inputs or zero total weight."""
    if values is None or weights is None:
        return 0.0
    if len(values) != len(weights) or len(values) == 0:
        return 0.0

    v, w = clean_pairs(values, weights)
    total_weight = w.sum()
    if v.size == 0 or total_weight == 0:
        return 0.0
    return float((v * w).sum() / total_weight)


class StatisticsToolkit:
    """
    The primitives above bundled as an object, for callers that inject
    their statistics dependency.

    Usage
    -----
    >>> toolkit = StatisticsToolkit()
    >>> toolkit.trend([10, 12, 15, 18]).direction
    <TrendDirection.UP: 'up'>
    """

    normalize = staticmethod(normalize)
    moving_average = staticmethod(moving_average)
    trend = staticmethod(trend)
    seasonality_index = staticmethod(seasonality_index)
    confidence = staticmethod(confidence)
    detect_outliers = staticmethod(detect_outliers)
    exponential_smoothing = staticmethod(exponential_smoothing)
    correlation = staticmethod(correlation)
    weighted_average = staticmethod(weighted_average)
    round_half_up = staticmethod(round_half_up)
    round_to_step = staticmethod(round_to_step)
