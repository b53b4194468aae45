"""
Per-instance statistics

Every pipeline component owns its own stats object; nothing here is a
process-wide singleton, so multi-symbol deployments stay isolated. snapshot()
returns a plain dict (counts, rates, uptime) for observability collaborators.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def _rate(part: float, total: float) -> float:
    return (part / total) * 100.0 if total > 0 else 0.0


@dataclass
class ExtractorStats:
    features_calculated: int = 0
    data_errors: int = 0
    timing_anomalies: int = 0
    cold_starts: int = 0
    average_latency_ms: float = 0.0
    last_feature_time: Optional[float] = None
    started_at: float = field(default_factory=time.monotonic)

    def record_latency(self, latency_ms: float) -> None:
        n = self.features_calculated
        if n <= 0:
            return
        self.average_latency_ms = (self.average_latency_ms * (n - 1) + latency_ms) / n

    def snapshot(self) -> Dict[str, Any]:
        uptime = time.monotonic() - self.started_at
        return {
            "features_calculated": self.features_calculated,
            "data_errors": self.data_errors,
            "timing_anomalies": self.timing_anomalies,
            "cold_starts": self.cold_starts,
            "average_latency_ms": self.average_latency_ms,
            "last_feature_time": self.last_feature_time,
            "error_rate": _rate(self.data_errors, self.features_calculated),
            "uptime_seconds": uptime,
        }


@dataclass
class DetectorStats:
    ticks_ingested: int = 0
    timing_anomalies: int = 0
    warmup_ticks: int = 0
    skipped_ticks: int = 0
    analyses: int = 0
    analysis_errors: int = 0
    predictive_signals: int = 0
    confirmed_predictions: int = 0
    false_positives: int = 0
    unmatched_confirmations: int = 0
    average_lead_time: float = 0.0
    average_analysis_ms: float = 0.0
    last_analysis_time: Optional[float] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def accuracy(self) -> float:
        """Confirmed share of resolved predictions, in percent"""
        return _rate(self.confirmed_predictions, self.confirmed_predictions + self.false_positives)

    def record_confirmation(self, lead_time: float) -> None:
        self.confirmed_predictions += 1
        n = self.confirmed_predictions
        self.average_lead_time = (self.average_lead_time * (n - 1) + lead_time) / n

    def record_analysis(self, elapsed_ms: float) -> None:
        self.analyses += 1
        n = self.analyses
        self.average_analysis_ms = (self.average_analysis_ms * (n - 1) + elapsed_ms) / n

    def snapshot(self) -> Dict[str, Any]:
        return {
            "ticks_ingested": self.ticks_ingested,
            "timing_anomalies": self.timing_anomalies,
            "warmup_ticks": self.warmup_ticks,
            "skipped_ticks": self.skipped_ticks,
            "analyses": self.analyses,
            "analysis_errors": self.analysis_errors,
            "predictive_signals": self.predictive_signals,
            "confirmed_predictions": self.confirmed_predictions,
            "false_positives": self.false_positives,
            "unmatched_confirmations": self.unmatched_confirmations,
            "accuracy": self.accuracy,
            "average_lead_time": self.average_lead_time,
            "average_analysis_ms": self.average_analysis_ms,
            "last_analysis_time": self.last_analysis_time,
            "uptime_seconds": time.monotonic() - self.started_at,
        }


@dataclass
class ClassifierStats:
    total_classifications: int = 0
    distribution_signals: int = 0
    accumulation_signals: int = 0
    stop_hunt_signals: int = 0
    no_signals: int = 0
    errors: int = 0
    started_at: float = field(default_factory=time.monotonic)

    def snapshot(self) -> Dict[str, Any]:
        uptime = time.monotonic() - self.started_at
        total = self.total_classifications
        signals = self.distribution_signals + self.accumulation_signals + self.stop_hunt_signals
        return {
            "total_classifications": total,
            "distribution_signals": self.distribution_signals,
            "accumulation_signals": self.accumulation_signals,
            "stop_hunt_signals": self.stop_hunt_signals,
            "no_signals": self.no_signals,
            "errors": self.errors,
            "distribution_rate": _rate(self.distribution_signals, total),
            "accumulation_rate": _rate(self.accumulation_signals, total),
            "stop_hunt_rate": _rate(self.stop_hunt_signals, total),
            "signal_rate": _rate(signals, total),
            "classifications_per_hour": (total / uptime) * 3600.0 if uptime > 0 else 0.0,
            "uptime_seconds": uptime,
        }


__all__ = [
    "ExtractorStats",
    "DetectorStats",
    "ClassifierStats",
]
