"""
Pipeline Module

Per-symbol wiring of feature extraction, regime classification and wavelet
cascade detection, plus a multi-symbol router.
"""

from .monitor import MultiSymbolMonitor
from .pipeline import PipelineResult, PipelineStats, SymbolPipeline
from .worker import CoalescingWorker

__all__ = [
    "SymbolPipeline",
    "PipelineResult",
    "PipelineStats",
    "MultiSymbolMonitor",
    "CoalescingWorker",
]
