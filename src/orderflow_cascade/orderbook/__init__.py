"""
Order Book Module

Per-tick feature extraction from order book snapshots.

Features:
- FeatureExtractor: snapshot -> FeatureVector (pressure, OFI, spread, momentum, depth, microstructure)
- FeatureHistory: bounded, time-ordered ring buffer of vectors
- JSON persistence of the history for offline analysis
"""

from .extractor import FeatureExtractor, assess_data_quality, parse_levels, select_top_levels
from .history import FeatureHistory
from .persistence import load_history, persist_history

__all__ = [
    "FeatureExtractor",
    "FeatureHistory",
    "parse_levels",
    "select_top_levels",
    "assess_data_quality",
    "persist_history",
    "load_history",
]
