"""
Utilities Module

Numeric helpers with explicit division-by-zero policies.
"""

from .math_utils import (
    safe_divide,
    rank_weighted_pressure,
    herfindahl_index,
    volume_weighted_price,
    imbalance,
    rolling_zscore,
)

__all__ = [
    "safe_divide",
    "rank_weighted_pressure",
    "herfindahl_index",
    "volume_weighted_price",
    "imbalance",
    "rolling_zscore",
]
