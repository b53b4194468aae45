"""
Wavelet Cascade Detector

Predictive cascade detection from high-frequency energy in the Order Flow
Imbalance (OFI) series.

Features:
- Rolling OFI window (time-evicted, capped at window/sampling_interval + 1 samples)
- Complex Morlet CWT over 20 geometric scales (direct or FFT)
- High-frequency (2-10 s) band energy with rolling z-score
- PredictiveSignal emission with confidence tier and lead-time estimate
- Confirmation window per signal (CONFIRMED / FALSE_POSITIVE), accuracy tracking
- Bounded scalogram history for inspection and pandas export

record() and analyze() can run on different threads: record() is cheap and
returns the window to analyze; analyze() is the CPU-bound step. ingest() does
both inline.

Usage:
    detector = WaveletCascadeDetector("BTCUSDT")
    for vector in vectors:
        signal = detector.ingest(vector)
        if signal is not None:
            print(signal.confidence, signal.lead_time_estimate)
"""

import logging
import math
import threading
import time
from collections import OrderedDict, deque
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import WaveletConfig
from ..models import ConfidenceTier, EnergyScore, FeatureVector, PredictiveSignal, Scalogram, SignalStatus
from ..stats import DetectorStats
from ..utils.math_utils import rolling_zscore
from .confirmation import ConfirmationTracker
from .cwt import generate_scales, high_frequency_energy, morlet_cwt, per_scale_energy


def confidence_for_z(z_score: float) -> ConfidenceTier:
    """Confidence tier of an energy z-score"""
    if z_score > 5.0:
        return ConfidenceTier.VERY_HIGH
    if z_score > 4.0:
        return ConfidenceTier.HIGH
    if z_score > 3.5:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def estimate_lead_time(energy: float, base_seconds: float = 30.0, cap_seconds: float = 300.0) -> int:
    """
    Lead time estimate in seconds

    Formula: round(base × max(0.1, 1 / ln(energy + 1))), capped at cap_seconds.
    Higher energy means a shorter lead time.
    """
    cap = int(round(cap_seconds))
    if not math.isfinite(energy) or energy <= 0:
        return cap
    log_term = math.log(energy + 1.0)
    if log_term <= 0:
        return cap
    factor = max(0.1, 1.0 / log_term)
    return min(int(round(base_seconds * factor)), cap)


class WaveletCascadeDetector:
    """
    Per-symbol wavelet energy detector

    One writer for record() and one for analyze() at a time.
    """

    def __init__(self, symbol: str, config: Optional[WaveletConfig] = None):
        self.symbol = symbol
        self.config = config or WaveletConfig()
        self.logger = logging.getLogger(__name__)

        cfg = self.config
        self.scales = generate_scales(cfg.min_scale, cfg.max_scale, cfg.scale_steps)

        self._ofi_times: deque = deque(maxlen=cfg.max_samples)
        self._ofi_values: deque = deque(maxlen=cfg.max_samples)
        self._energy_scores: deque = deque(maxlen=cfg.max_samples)
        self._scalogram: "OrderedDict[float, np.ndarray]" = OrderedDict()
        self.signals: deque = deque(maxlen=cfg.signal_history_size)

        self.stats = DetectorStats()
        self._stats_lock = threading.Lock()
        self._series_lock = threading.Lock()
        self._energy_lock = threading.Lock()
        self.confirmations = ConfirmationTracker(
            cfg.confirmation_window_seconds,
            on_resolved=self._on_resolved,
            use_timers=cfg.confirmation_timers,
        )

        if cfg.enable_logging:
            self.logger.info(
                f"WaveletCascadeDetector initialized for {symbol}: window={cfg.window_size_seconds}s, "
                f"scales={cfg.min_scale}-{cfg.max_scale}s x{cfg.scale_steps}, "
                f"threshold={cfg.energy_threshold_sigma}σ, method={cfg.method}"
            )

    # ========================
    # INGESTION
    # ========================

    def ingest(self, vector: FeatureVector) -> Optional[PredictiveSignal]:
        """Record one feature vector and analyze the updated window"""
        job = self.record(vector)
        if job is None:
            return None
        return self.analyze(*job)

    def record(self, vector: FeatureVector) -> Optional[Tuple[float, np.ndarray]]:
        """
        Append the vector's OFI to the rolling window

        Also expires pending confirmations against the vector's timestamp.

        Returns:
            (timestamp, OFI window copy) ready for analyze(), or None when the
            tick was dropped or the window is still warming up.
        """
        timestamp = float(vector.timestamp)
        ofi = float(vector.ofi)

        self.confirmations.expire(timestamp)

        with self._series_lock:
            self.stats.ticks_ingested += 1

            if self._ofi_times and timestamp <= self._ofi_times[-1]:
                self.stats.timing_anomalies += 1
                if self.config.enable_logging:
                    self.logger.warning(
                        f"{self.symbol}: dropped out-of-order OFI sample {timestamp} (last {self._ofi_times[-1]})"
                    )
                return None

            if vector.is_degraded or not math.isfinite(ofi):
                self.stats.skipped_ticks += 1
                return None

            self._ofi_times.append(timestamp)
            self._ofi_values.append(ofi)

            cutoff = timestamp - self.config.window_size_seconds
            while self._ofi_times and self._ofi_times[0] < cutoff:
                self._ofi_times.popleft()
                self._ofi_values.popleft()

            if len(self._ofi_values) < self.config.warmup_samples:
                self.stats.warmup_ticks += 1
                return None

            return timestamp, np.fromiter(self._ofi_values, dtype=np.float64, count=len(self._ofi_values))

    # ========================
    # ANALYSIS
    # ========================

    def analyze(self, timestamp: float, window: np.ndarray) -> Optional[PredictiveSignal]:
        """
        Transform the OFI window, score its energy and emit a signal on anomaly

        Never raises for numeric problems; they are logged and counted.
        """
        cfg = self.config
        start = time.perf_counter()

        try:
            magnitudes = morlet_cwt(window, self.scales, cfg.omega0, cfg.sampling_interval, cfg.method)
            energy = high_frequency_energy(magnitudes, self.scales, cfg.band_min_scale,
                                           cfg.band_max_scale, cfg.recent_samples)
            if not math.isfinite(energy):
                raise ArithmeticError(f"non-finite energy {energy}")
        except (ValueError, ArithmeticError) as e:
            self.stats.analysis_errors += 1
            self.logger.error(f"{self.symbol}: wavelet analysis failed at {timestamp}: {e}", exc_info=True)
            return None

        cutoff = timestamp - cfg.window_size_seconds
        with self._energy_lock:
            self._store_scalogram(timestamp, magnitudes)
            while self._energy_scores and self._energy_scores[0].timestamp < cutoff:
                self._energy_scores.popleft()

            energies = [score.energy for score in self._energy_scores]
            energies.append(energy)
            z_score, z_available = rolling_zscore(energies, cfg.zscore_lookback)
            self._energy_scores.append(EnergyScore(timestamp, energy, z_score, z_available))

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        self.stats.record_analysis(elapsed_ms)
        self.stats.last_analysis_time = timestamp

        if cfg.enable_logging:
            self.logger.debug(
                f"{self.symbol}: energy={energy:.6f} z={z_score:.2f} "
                f"(available={z_available}) in {elapsed_ms:.2f}ms"
            )

        if not z_available or z_score <= cfg.energy_threshold_sigma:
            return None

        return self._emit_signal(timestamp, energy, z_score, magnitudes)

    def _emit_signal(self, timestamp: float, energy: float, z_score: float,
                     magnitudes: np.ndarray) -> PredictiveSignal:
        signal = PredictiveSignal(
            timestamp=timestamp,
            symbol=self.symbol,
            energy_score=energy,
            z_score=z_score,
            confidence=confidence_for_z(z_score),
            lead_time_estimate=estimate_lead_time(energy, self.config.lead_time_base_seconds,
                                                  self.config.window_size_seconds),
            per_scale_energy=per_scale_energy(magnitudes, self.scales),
        )

        with self._stats_lock:
            self.stats.predictive_signals += 1
        self.signals.append(signal)
        self.confirmations.register(signal)

        if self.config.enable_logging:
            self.logger.info(
                f"PREDICTIVE CASCADE ALERT {self.symbol} at {timestamp}: z={z_score:.2f}σ, "
                f"confidence={signal.confidence.value}, lead_time≈{signal.lead_time_estimate}s"
            )
        return signal

    def _store_scalogram(self, timestamp: float, magnitudes: np.ndarray) -> None:
        self._scalogram[timestamp] = magnitudes
        while len(self._scalogram) > self.config.scalogram_history:
            self._scalogram.popitem(last=False)

    # ========================
    # CONFIRMATION
    # ========================

    def confirm_prediction(self, predictive_timestamp: float, observed_timestamp: float) -> Optional[PredictiveSignal]:
        """
        Confirm a pending prediction with a later observed cascade

        Returns:
            The confirmed signal (realized lead time recorded), or None when
            nothing pending matches within the confirmation window.
        """
        signal = self.confirmations.confirm(predictive_timestamp, observed_timestamp)
        if signal is None:
            with self._stats_lock:
                self.stats.unmatched_confirmations += 1
            if self.config.enable_logging:
                self.logger.warning(
                    f"{self.symbol}: no pending prediction at {predictive_timestamp} "
                    f"confirmable by {observed_timestamp}"
                )
        return signal

    def mark_false_positive(self, predictive_timestamp: float) -> Optional[PredictiveSignal]:
        return self.confirmations.mark_false_positive(predictive_timestamp)

    def expire_pending(self, now: float) -> List[PredictiveSignal]:
        return self.confirmations.expire(now)

    def _on_resolved(self, signal: PredictiveSignal) -> None:
        with self._stats_lock:
            if signal.status is SignalStatus.CONFIRMED:
                self.stats.record_confirmation(signal.realized_lead_time or 0.0)
            else:
                self.stats.false_positives += 1

        if self.config.enable_logging:
            if signal.status is SignalStatus.CONFIRMED:
                self.logger.info(
                    f"PREDICTION CONFIRMED {self.symbol}: lead time {signal.realized_lead_time:.1f}s, "
                    f"accuracy {self.stats.accuracy:.1f}%"
                )
            else:
                self.logger.info(f"False positive {self.symbol}: prediction {signal.timestamp}")

    # ========================
    # INSPECTION
    # ========================

    @property
    def energy_history(self) -> List[EnergyScore]:
        with self._energy_lock:
            return list(self._energy_scores)

    @property
    def ofi_series(self) -> List[Tuple[float, float]]:
        with self._series_lock:
            return list(zip(self._ofi_times, self._ofi_values))

    def get_recent_scalogram(self, points: int = 60) -> Scalogram:
        """Most recent scalograms, newest first: {timestamp: {scale: [magnitude per sample]}}"""
        with self._energy_lock:
            recent = list(self._scalogram.items())[-points:] if points > 0 else []
        return {
            timestamp: {float(scale): row.tolist() for scale, row in zip(self.scales, magnitudes)}
            for timestamp, magnitudes in reversed(recent)
        }

    def scalogram_frame(self, timestamp: Optional[float] = None) -> pd.DataFrame:
        """One scalogram as a DataFrame (rows: samples oldest first, columns: scales)"""
        with self._energy_lock:
            if not self._scalogram:
                return pd.DataFrame(columns=[float(s) for s in self.scales])
            if timestamp is None:
                timestamp = next(reversed(self._scalogram))
            magnitudes = self._scalogram[timestamp]
        return pd.DataFrame(magnitudes.T, columns=[float(s) for s in self.scales])

    def energy_frame(self) -> pd.DataFrame:
        """Energy history as a DataFrame indexed by timestamp"""
        with self._energy_lock:
            scores = list(self._energy_scores)
        frame = pd.DataFrame(scores, columns=list(EnergyScore._fields))
        return frame.set_index("timestamp")

    def get_stats(self) -> Dict[str, Any]:
        data = self.stats.snapshot()
        data.update({
            "symbol": self.symbol,
            "data_points": len(self._ofi_values),
            "energy_points": len(self._energy_scores),
            "scalogram_size": len(self._scalogram),
            "pending_confirmations": len(self.confirmations),
        })
        return data

    def shutdown(self) -> None:
        """Cancel confirmation timers"""
        self.confirmations.cancel_all()


__all__ = [
    "WaveletCascadeDetector",
    "confidence_for_z",
    "estimate_lead_time",
]
