"""
Regime Module

Rule-based classification of order book features into DISTRIBUTION,
ACCUMULATION or STOP_HUNT regimes.
"""

from .classifier import PRIORITY, REGIME_PROFILES, MarketInputs, RegimeClassifier, RegimeProfile, read_inputs

__all__ = [
    "RegimeClassifier",
    "RegimeProfile",
    "REGIME_PROFILES",
    "PRIORITY",
    "MarketInputs",
    "read_inputs",
]
