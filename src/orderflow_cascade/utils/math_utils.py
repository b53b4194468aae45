"""
Mathematical Utilities Module

Small, Numba-compiled numeric helpers shared by the feature extractor and the
wavelet detector. Every helper has an explicit division-by-zero policy: the
result is a defined value (usually 0.0), never NaN or an exception.

Features:
- Safe division
- Rank-weighted order book pressure
- Herfindahl concentration and VWAP over price levels
- Rolling z-score with an explicit "not yet measurable" flag
"""

import math
from typing import Sequence, Tuple

import numpy as np
from numba import jit

# Relative std below which a window counts as constant
_ZERO_VARIANCE_RTOL = 1e-9


@jit(nopython=True, cache=True)
def _fast_safe_divide(numerator: float, denominator: float, default: float) -> float:
    """Fast safe division with Numba"""
    if denominator == 0.0:
        return default
    return numerator / denominator


@jit(nopython=True, cache=True)
def _fast_rank_weighted_pressure(quantities: np.ndarray, levels: int) -> float:
    """
    Fast rank-weighted pressure

    Formula: Σ qty[rank] × 1/(rank + 1) over the first `levels` ranks
    """
    pressure = 0.0
    n = min(levels, len(quantities))
    for rank in range(n):
        pressure += quantities[rank] / (rank + 1.0)
    return pressure


@jit(nopython=True, cache=True)
def _fast_herfindahl(quantities: np.ndarray) -> float:
    """Fast Herfindahl index of volume shares"""
    total = np.sum(quantities)
    if len(quantities) == 0 or total == 0.0:
        return 0.0

    herfindahl = 0.0
    for i in range(len(quantities)):
        share = quantities[i] / total
        herfindahl += share * share
    return herfindahl


@jit(nopython=True, cache=True)
def _fast_vwap(prices: np.ndarray, quantities: np.ndarray) -> float:
    """Fast volume-weighted average price"""
    total_value = 0.0
    total_volume = 0.0
    for i in range(len(prices)):
        total_value += prices[i] * quantities[i]
        total_volume += quantities[i]
    if total_volume == 0.0:
        return 0.0
    return total_value / total_volume


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safe division that returns `default` when the denominator is exactly zero

    Args:
        numerator: Numerator value
        denominator: Denominator value
        default: Value returned for a zero denominator

    Returns:
        numerator / denominator, or default
    """
    return float(_fast_safe_divide(float(numerator), float(denominator), float(default)))


def rank_weighted_pressure(quantities: np.ndarray, levels: int = 5) -> float:
    """
    Rank-weighted pressure of one book side

    Args:
        quantities: Level quantities ordered best-first
        levels: Number of ranks to include (default: 5)

    Returns:
        Σ qty / (rank + 1) over the top `levels` ranks
    """
    if len(quantities) == 0:
        return 0.0
    return float(_fast_rank_weighted_pressure(np.asarray(quantities, dtype=np.float64), levels))


def herfindahl_index(quantities: np.ndarray) -> float:
    """Herfindahl concentration (sum of squared volume shares), 0 for an empty or zero side"""
    if len(quantities) == 0:
        return 0.0
    return float(_fast_herfindahl(np.asarray(quantities, dtype=np.float64)))


def volume_weighted_price(prices: np.ndarray, quantities: np.ndarray) -> float:
    """Σ(price × qty) / Σqty, 0 when there is no volume"""
    if len(prices) == 0:
        return 0.0
    return float(_fast_vwap(
        np.asarray(prices, dtype=np.float64),
        np.asarray(quantities, dtype=np.float64),
    ))


def imbalance(first: float, second: float) -> float:
    """(first - second) / (first + second), 0 when both are zero"""
    return safe_divide(first - second, first + second)


def rolling_zscore(values: Sequence[float], lookback: int) -> Tuple[float, bool]:
    """
    Z-score of the last value against the last `lookback` values

    The population standard deviation is used and the last value is part of
    its own reference window.

    Args:
        values: Time-ordered values, newest last
        lookback: Reference window length

    Returns:
        (z_score, available) where available is False during cold start
        (fewer than `lookback` values) or when the window has zero variance
        (down to floating point noise relative to the mean).
        z_score is 0.0 whenever available is False.
    """
    if len(values) < lookback or lookback < 2:
        return 0.0, False

    window = np.asarray(values[-lookback:], dtype=np.float64)
    mean = float(np.mean(window))
    std = float(np.std(window))

    if not math.isfinite(std) or std <= _ZERO_VARIANCE_RTOL * abs(mean):
        return 0.0, False

    return (float(window[-1]) - mean) / std, True


__all__ = [
    "safe_divide",
    "rank_weighted_pressure",
    "herfindahl_index",
    "volume_weighted_price",
    "imbalance",
    "rolling_zscore",
]
