"""
Per-symbol pipeline

Wires FeatureExtractor -> (RegimeClassifier, WaveletCascadeDetector) for one
symbol. Extraction and classification run inline; the wavelet analysis runs
inline too, or on a CoalescingWorker when offload_wavelet is set. Predictive
signals are always delivered on the `signals` queue; inline runs also return
them in the PipelineResult.

Usage:
    pipeline = SymbolPipeline("BTCUSDT", PipelineConfig.from_env())
    result = pipeline.process(snapshot)
    if result.classification is not None:
        print(result.classification.regime)
    pipeline.close()
"""

import logging
import queue
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import PipelineConfig
from ..models import FeatureVector, PredictiveSignal, RegimeClassification
from ..orderbook import FeatureExtractor
from ..regime import RegimeClassifier
from ..wavelet import WaveletCascadeDetector
from .worker import CoalescingWorker


@dataclass
class PipelineResult:
    """Outcome of one snapshot"""
    features: Optional[FeatureVector]
    classification: Optional[RegimeClassification] = None
    signal: Optional[PredictiveSignal] = None
    analysis_deferred: bool = False

    @property
    def dropped(self) -> bool:
        """True when the snapshot was discarded (out-of-order timestamp)"""
        return self.features is None


@dataclass
class PipelineStats:
    """Aggregate of the component stats of one pipeline"""
    symbol: str
    snapshots: int = 0
    dropped: int = 0
    extractor: Dict[str, Any] = field(default_factory=dict)
    detector: Dict[str, Any] = field(default_factory=dict)
    classifier: Dict[str, Any] = field(default_factory=dict)
    worker: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "snapshots": self.snapshots,
            "dropped": self.dropped,
            "extractor": self.extractor,
            "detector": self.detector,
            "classifier": self.classifier,
            "worker": self.worker,
        }


class SymbolPipeline:
    """Independent analysis pipeline of one symbol"""

    def __init__(self, symbol: str, config: Optional[PipelineConfig] = None):
        self.symbol = symbol
        self.config = config or PipelineConfig()
        self.logger = logging.getLogger(__name__)

        self.extractor = FeatureExtractor(symbol, self.config.features)
        self.detector = WaveletCascadeDetector(symbol, self.config.wavelet)
        self.classifier = RegimeClassifier(symbol, self.config.regime)

        self.signals: "queue.Queue[PredictiveSignal]" = queue.Queue()
        self.worker: Optional[CoalescingWorker] = None
        if self.config.offload_wavelet:
            self.worker = CoalescingWorker(f"wavelet-{symbol}", on_result=self.signals.put)

        self._snapshots = 0
        self._dropped = 0
        self._closed = False

        self.logger.info(f"SymbolPipeline ready for {symbol} (wavelet offload: {self.worker is not None})")

    def process(self, snapshot: Any) -> PipelineResult:
        """
        Run one order book snapshot through the pipeline

        Args:
            snapshot: OrderBookSnapshot or mapping with the same keys

        Returns:
            PipelineResult; features is None when the tick was dropped
        """
        if self._closed:
            raise RuntimeError(f"Pipeline for {self.symbol} is closed")

        self._snapshots += 1
        vector = self.extractor.extract(snapshot)
        if vector is None:
            self._dropped += 1
            return PipelineResult(features=None)

        result = PipelineResult(features=vector)
        result.classification = self.classifier.classify(vector)

        job = self.detector.record(vector)
        if job is not None:
            if self.worker is not None:
                self.worker.submit(self.detector.analyze, *job)
                result.analysis_deferred = True
            else:
                result.signal = self.detector.analyze(*job)
                if result.signal is not None:
                    self.signals.put(result.signal)

        return result

    def confirm_prediction(self, predictive_timestamp: float, observed_timestamp: float) -> Optional[PredictiveSignal]:
        return self.detector.confirm_prediction(predictive_timestamp, observed_timestamp)

    def drain_signals(self) -> List[PredictiveSignal]:
        """Take every signal currently waiting on the output queue"""
        drained = []
        while True:
            try:
                drained.append(self.signals.get_nowait())
            except queue.Empty:
                return drained

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until offloaded analysis has caught up (always True inline)"""
        if self.worker is None:
            return True
        return self.worker.wait_idle(timeout)

    def get_stats(self) -> PipelineStats:
        return PipelineStats(
            symbol=self.symbol,
            snapshots=self._snapshots,
            dropped=self._dropped,
            extractor=self.extractor.get_stats(),
            detector=self.detector.get_stats(),
            classifier=self.classifier.get_stats(),
            worker=self.worker.get_stats() if self.worker is not None else None,
        )

    def close(self, wait: bool = True) -> None:
        """Stop the worker and cancel confirmation timers"""
        if self._closed:
            return
        self._closed = True
        if self.worker is not None:
            self.worker.close(wait=wait)
        self.detector.shutdown()
        self.logger.info(f"SymbolPipeline closed for {self.symbol}")

    def __enter__(self) -> "SymbolPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "SymbolPipeline",
    "PipelineResult",
    "PipelineStats",
]
