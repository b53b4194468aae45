"""
Orderflow Cascade - Order Book Microstructure Analysis for Crypto Markets

Per-symbol real-time analysis of order book snapshots.

Key Features:
- Order book features (pressure, OFI, spread, momentum, depth, microstructure)
- Bounded, time-ordered feature history with pandas export
- Predictive cascade detection (complex Morlet CWT energy anomalies on OFI)
- Rule-based regime classification (DISTRIBUTION / ACCUMULATION / STOP_HUNT)
- Per-symbol pipelines with optional offloaded wavelet analysis
- High-performance computation with Numba
- Dataclass configuration from dicts, YAML or environment variables

Usage:
 from orderflow_cascade import SymbolPipeline, PipelineConfig, OrderBookSnapshot

 pipeline = SymbolPipeline("BTCUSDT", PipelineConfig.from_env())
 result = pipeline.process(OrderBookSnapshot(
     timestamp=1718000000.0,
     symbol="BTCUSDT",
     bids=[(43250.0, 1.5), (43249.0, 2.0)],
     asks=[(43251.0, 1.8), (43252.0, 1.2)],
 ))

 # Individual components
 from orderflow_cascade.orderbook import FeatureExtractor
 from orderflow_cascade.wavelet import WaveletCascadeDetector
 from orderflow_cascade.regime import RegimeClassifier
"""

__version__ = "1.0.0"
__author__ = "ML-Framework Team"
__email__ = "dev@ml-framework.dev"
__license__ = "MIT"

import logging
import os

from .config import FeatureConfig, PipelineConfig, RegimeConfig, WaveletConfig, load_config
from .exceptions import CascadeError, ConfigurationError, DataError
from .models import (
    ConfidenceTier,
    EnergyScore,
    FeatureVector,
    OrderBookLevel,
    OrderBookSnapshot,
    PredictiveSignal,
    Regime,
    RegimeClassification,
    SignalStatus,
    StrategyHint,
)
from .orderbook import FeatureExtractor, FeatureHistory, load_history, persist_history
from .wavelet import WaveletCascadeDetector
from .regime import RegimeClassifier
from .pipeline import MultiSymbolMonitor, PipelineResult, PipelineStats, SymbolPipeline

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__email__",
    "__license__",

    # Configuration
    "FeatureConfig",
    "WaveletConfig",
    "RegimeConfig",
    "PipelineConfig",
    "load_config",

    # Errors
    "CascadeError",
    "ConfigurationError",
    "DataError",

    # Data model
    "OrderBookLevel",
    "OrderBookSnapshot",
    "FeatureVector",
    "EnergyScore",
    "PredictiveSignal",
    "RegimeClassification",
    "Regime",
    "StrategyHint",
    "ConfidenceTier",
    "SignalStatus",

    # Components
    "FeatureExtractor",
    "FeatureHistory",
    "persist_history",
    "load_history",
    "WaveletCascadeDetector",
    "RegimeClassifier",

    # Pipelines
    "SymbolPipeline",
    "PipelineResult",
    "PipelineStats",
    "MultiSymbolMonitor",
]

# Configure default logging
logging.basicConfig(
    level=logging.DEBUG if os.getenv("ORDERFLOW_CASCADE_DEBUG") else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)
logger.info(f"Orderflow Cascade v{__version__} initialized")
