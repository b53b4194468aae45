"""
Wavelet Module

Predictive cascade detection on the Order Flow Imbalance series.

Features:
- Complex Morlet CWT (direct Numba kernel or scipy FFT)
- High-frequency energy z-score anomalies
- PredictiveSignal confirmation tracking
"""

from .confirmation import ConfirmationTracker
from .cwt import CWT_METHODS, generate_scales, high_frequency_energy, morlet_cwt, per_scale_energy
from .detector import WaveletCascadeDetector, confidence_for_z, estimate_lead_time

__all__ = [
    "WaveletCascadeDetector",
    "ConfirmationTracker",
    "CWT_METHODS",
    "generate_scales",
    "morlet_cwt",
    "high_frequency_energy",
    "per_scale_energy",
    "confidence_for_z",
    "estimate_lead_time",
]
