"""
Multi-symbol monitor

Routes snapshots to one independent SymbolPipeline per symbol, created on
first use. Pipelines share configuration values but no mutable state.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from ..config import PipelineConfig
from .pipeline import PipelineResult, SymbolPipeline

logger = logging.getLogger(__name__)


class MultiSymbolMonitor:
    """Registry of per-symbol pipelines"""

    def __init__(self, config: Optional[PipelineConfig] = None, symbols: Optional[List[str]] = None):
        self.config = config or PipelineConfig()
        self._pipelines: Dict[str, SymbolPipeline] = {}
        self._lock = threading.Lock()
        self.unroutable = 0

        for symbol in symbols or []:
            self.pipeline(symbol)

    @property
    def symbols(self) -> List[str]:
        with self._lock:
            return sorted(self._pipelines)

    def pipeline(self, symbol: str) -> SymbolPipeline:
        """Pipeline of `symbol`, created on first request"""
        with self._lock:
            pipeline = self._pipelines.get(symbol)
            if pipeline is None:
                pipeline = SymbolPipeline(symbol, self.config)
                self._pipelines[symbol] = pipeline
                logger.info(f"Monitoring {symbol} ({len(self._pipelines)} symbols)")
            return pipeline

    def process(self, snapshot: Any) -> Optional[PipelineResult]:
        """
        Route a snapshot to its symbol's pipeline

        Returns:
            The pipeline result, or None when the snapshot carries no symbol
        """
        if isinstance(snapshot, Mapping):
            symbol = snapshot.get("symbol")
        else:
            symbol = getattr(snapshot, "symbol", None)

        if not symbol or not isinstance(symbol, str):
            self.unroutable += 1
            logger.warning(f"Dropping snapshot without symbol: {symbol!r}")
            return None

        return self.pipeline(symbol).process(snapshot)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            pipelines = dict(self._pipelines)
        return {
            "symbols": sorted(pipelines),
            "unroutable": self.unroutable,
            "pipelines": {symbol: p.get_stats().to_dict() for symbol, p in sorted(pipelines.items())},
        }

    def close(self) -> None:
        with self._lock:
            pipelines = list(self._pipelines.values())
        for pipeline in pipelines:
            pipeline.close()

    def __enter__(self) -> "MultiSymbolMonitor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["MultiSymbolMonitor"]
