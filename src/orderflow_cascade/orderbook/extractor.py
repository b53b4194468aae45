"""
Order Book Feature Extractor

Turns one order book snapshot into a FeatureVector and records it in the
symbol's FeatureHistory.

Features:
- Pressure: ask/bid volume ratio over the top-K levels
- Order Flow Imbalance (OFI): rank-weighted pressure over the top 5 levels
- Spread, mid price, relative spread
- Momentum against the history entry closest to (now - momentum window)
- Depth: per-side depth, depth imbalance, top-5 VWAP, liquidity ratio
- Microstructure: Herfindahl concentration, average level size, size imbalance
- Data quality score

extract() never raises for bad tick data. Malformed snapshots produce a
zero-valued vector flagged is_degraded; out-of-order or duplicate timestamps
are dropped (None) and counted.

Usage:
    from orderflow_cascade.orderbook import FeatureExtractor

    extractor = FeatureExtractor("BTCUSDT")
    vector = extractor.extract(OrderBookSnapshot(
        timestamp=1718000000.0,
        symbol="BTCUSDT",
        bids=[(43250.0, 1.5), (43249.0, 2.0)],
        asks=[(43251.0, 1.8), (43252.0, 1.2)],
    ))
"""

import logging
import math
import time
from typing import Any, Mapping, Optional, Tuple

import numpy as np

from ..config import FeatureConfig
from ..exceptions import DataError
from ..models import FeatureVector, OrderBookSnapshot
from ..stats import ExtractorStats
from ..utils.math_utils import (
    herfindahl_index,
    imbalance,
    rank_weighted_pressure,
    safe_divide,
    volume_weighted_price,
)
from .history import FeatureHistory


def _coerce_timestamp(value: Any) -> float:
    if isinstance(value, bool):
        raise DataError(f"Invalid timestamp: {value!r}")
    try:
        timestamp = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise DataError(f"Invalid timestamp: {value!r}") from e
    if not math.isfinite(timestamp):
        raise DataError(f"Non-finite timestamp: {value!r}")
    return timestamp


def parse_levels(levels: Any, side: str) -> Tuple[np.ndarray, np.ndarray]:
    """
    Validate one book side and split it into price and quantity arrays

    Args:
        levels: Sequence of (price, qty) pairs, or a {price: qty} mapping
        side: 'bids' or 'asks' (for error messages)

    Returns:
        (prices, quantities) as float64 arrays, in input order

    Raises:
        DataError: On non-numeric, non-finite, non-positive price or negative quantity
    """
    if levels is None:
        return np.empty(0), np.empty(0)
    if isinstance(levels, Mapping):
        levels = list(levels.items())

    prices = np.empty(len(levels), dtype=np.float64)
    quantities = np.empty(len(levels), dtype=np.float64)

    for i, level in enumerate(levels):
        try:
            price = float(level[0])
            quantity = float(level[1])
        except (TypeError, ValueError, OverflowError, IndexError, KeyError) as e:
            raise DataError(f"Malformed {side} level {i}: {level!r}") from e
        if not (math.isfinite(price) and math.isfinite(quantity)):
            raise DataError(f"Non-finite {side} level {i}: {level!r}")
        if price <= 0 or quantity < 0:
            raise DataError(f"Invalid {side} level {i}: price={price}, qty={quantity}")
        prices[i] = price
        quantities[i] = quantity

    return prices, quantities


def select_top_levels(prices: np.ndarray, quantities: np.ndarray, count: int,
                      descending: bool) -> Tuple[np.ndarray, np.ndarray]:
    """Sort a side best-first (bids descending, asks ascending) and keep `count` levels"""
    if len(prices) == 0:
        return prices, quantities
    order = np.argsort(-prices if descending else prices, kind="stable")[:count]
    return prices[order], quantities[order]


def assess_data_quality(bid_levels: int, ask_levels: int, min_levels: int = 5) -> float:
    """
    Data quality score in [0, 1]

    -0.2 per side with fewer than `min_levels` levels, a further -0.5 (once)
    if either side is empty, floored at 0.
    """
    score = 1.0
    if bid_levels < min_levels:
        score -= 0.2
    if ask_levels < min_levels:
        score -= 0.2
    if bid_levels == 0 or ask_levels == 0:
        score -= 0.5
    return max(0.0, score)


class FeatureExtractor:
    """
    Per-symbol feature extractor

    Owns the symbol's FeatureHistory; one writer at a time.
    """

    def __init__(self, symbol: str, config: Optional[FeatureConfig] = None,
                 history: Optional[FeatureHistory] = None):
        """
        Initialize extractor

        Args:
            symbol: Instrument symbol stamped on every vector
            config: FeatureConfig (defaults used when None)
            history: Existing FeatureHistory to append to (new one when None)
        """
        self.symbol = symbol
        self.config = config or FeatureConfig()
        self.history = history if history is not None else FeatureHistory(self.config.history_capacity)
        self.stats = ExtractorStats()
        self.logger = logging.getLogger(__name__)

        if self.config.enable_logging:
            self.logger.info(
                f"FeatureExtractor initialized for {symbol}: depth_levels={self.config.depth_levels}, "
                f"momentum_window={self.config.momentum_window_seconds}s, "
                f"history_capacity={self.history.capacity}"
            )

    # ========================
    # PUBLIC API
    # ========================

    def extract(self, snapshot: Any) -> Optional[FeatureVector]:
        """
        Build the feature vector for one snapshot and append it to history

        Args:
            snapshot: OrderBookSnapshot (or a mapping with the same keys)

        Returns:
            FeatureVector (degraded when the snapshot is malformed), or None
            when the timestamp is not strictly after the last recorded one.
        """
        start = time.perf_counter()

        symbol = self.symbol
        try:
            if isinstance(snapshot, Mapping):
                snapshot = OrderBookSnapshot.from_dict(snapshot)
            symbol = getattr(snapshot, "symbol", None) or self.symbol
            timestamp = _coerce_timestamp(getattr(snapshot, "timestamp", None))
        except (DataError, TypeError, ValueError) as e:
            self.stats.data_errors += 1
            if self.config.enable_logging:
                self.logger.warning(f"{self.symbol}: unusable snapshot, emitting degraded vector: {e}")
            return FeatureVector.degraded(0.0, symbol)

        if not self.history.accepts(timestamp):
            self.stats.timing_anomalies += 1
            if self.config.enable_logging:
                self.logger.debug(
                    f"{self.symbol}: dropped out-of-order tick {timestamp} "
                    f"(last {self.history.last_timestamp})"
                )
            return None

        try:
            vector = self._calculate(snapshot, timestamp, symbol)
        except (DataError, ValueError, TypeError, ArithmeticError) as e:
            self.stats.data_errors += 1
            if self.config.enable_logging:
                self.logger.warning(f"{self.symbol}: degraded vector at {timestamp}: {e}")
            vector = FeatureVector.degraded(timestamp, symbol)

        self.history.append(vector)

        self.stats.features_calculated += 1
        self.stats.last_feature_time = timestamp
        latency_ms = (time.perf_counter() - start) * 1000.0
        self.stats.record_latency(latency_ms)

        if self.config.enable_logging:
            self.logger.debug(f"{self.symbol}: features at {timestamp} took {latency_ms:.3f}ms")

        return vector

    def get_stats(self):
        data = self.stats.snapshot()
        data["current_feature_count"] = len(self.history)
        data["history_capacity"] = self.history.capacity
        return data

    # ========================
    # FEATURE CALCULATION
    # ========================

    def _calculate(self, snapshot: Any, timestamp: float, symbol: str) -> FeatureVector:
        cfg = self.config

        bid_prices, bid_qty = parse_levels(getattr(snapshot, "bids", None), "bids")
        ask_prices, ask_qty = parse_levels(getattr(snapshot, "asks", None), "asks")
        if len(bid_prices) == 0 and len(ask_prices) == 0:
            raise DataError("Empty order book")

        bid_prices, bid_qty = select_top_levels(bid_prices, bid_qty, cfg.depth_levels, descending=True)
        ask_prices, ask_qty = select_top_levels(ask_prices, ask_qty, cfg.depth_levels, descending=False)

        # Pressure & liquidity
        total_bid_volume = float(np.sum(bid_qty))
        total_ask_volume = float(np.sum(ask_qty))
        ask_to_bid_ratio = safe_divide(total_ask_volume, total_bid_volume)

        ofi = self.calculate_order_flow_imbalance(bid_qty, ask_qty)

        # Spread & prices
        has_both = len(bid_prices) > 0 and len(ask_prices) > 0
        last_price = self._coerce_price(getattr(snapshot, "current_price", None))
        if has_both:
            best_bid, best_ask = float(bid_prices[0]), float(ask_prices[0])
            spread = best_ask - best_bid
            mid_price = (best_bid + best_ask) / 2.0
        else:
            spread = 0.0
            mid_price = last_price or 0.0
        current_price = last_price if last_price is not None else mid_price
        relative_spread = safe_divide(spread, mid_price)

        momentum, momentum_available = self.calculate_momentum(current_price, timestamp)

        # Depth
        bid_depth, ask_depth = total_bid_volume, total_ask_volume
        vwap_n = cfg.vwap_levels

        # Microstructure
        avg_bid_size = float(np.mean(bid_qty)) if len(bid_qty) else 0.0
        avg_ask_size = float(np.mean(ask_qty)) if len(ask_qty) else 0.0

        vector = FeatureVector(
            timestamp=timestamp,
            symbol=symbol,
            ask_to_bid_ratio=ask_to_bid_ratio,
            total_bid_volume=total_bid_volume,
            total_ask_volume=total_ask_volume,
            current_price=current_price,
            momentum=momentum,
            momentum_available=momentum_available,
            ofi=ofi,
            spread=spread,
            mid_price=mid_price,
            relative_spread=relative_spread,
            bid_depth=bid_depth,
            ask_depth=ask_depth,
            depth_imbalance=imbalance(bid_depth, ask_depth),
            vwap_bid=volume_weighted_price(bid_prices[:vwap_n], bid_qty[:vwap_n]),
            vwap_ask=volume_weighted_price(ask_prices[:vwap_n], ask_qty[:vwap_n]),
            liquidity_ratio=safe_divide(ask_depth, bid_depth),
            bid_concentration=herfindahl_index(bid_qty),
            ask_concentration=herfindahl_index(ask_qty),
            avg_bid_size=avg_bid_size,
            avg_ask_size=avg_ask_size,
            size_imbalance=safe_divide(avg_ask_size - avg_bid_size, avg_bid_size),
            data_quality=assess_data_quality(len(bid_qty), len(ask_qty), cfg.min_quality_levels),
        )

        for name, value in vector.to_dict().items():
            if isinstance(value, float) and not math.isfinite(value):
                raise DataError(f"Non-finite feature {name}={value}")

        return vector

    def calculate_order_flow_imbalance(self, bid_qty: np.ndarray, ask_qty: np.ndarray) -> float:
        """
        Order Flow Imbalance

        Formula: (bidP - askP) / (bidP + askP), P = Σ qty[rank] / (rank + 1) over top levels
        Range: -1 (all ask pressure) to +1 (all bid pressure), 0 if no pressure
        or if either side is empty
        """
        if len(bid_qty) == 0 or len(ask_qty) == 0:
            return 0.0
        bid_pressure = rank_weighted_pressure(bid_qty, self.config.ofi_levels)
        ask_pressure = rank_weighted_pressure(ask_qty, self.config.ofi_levels)
        return imbalance(bid_pressure, ask_pressure)

    def calculate_momentum(self, current_price: float, timestamp: float) -> Tuple[float, bool]:
        """
        Percent price change over the momentum window

        Returns:
            (momentum_pct, available). available is False (and momentum 0.0)
            when no history entry lies within half a window of the target time
            or no usable reference price exists.
        """
        window = self.config.momentum_window_seconds
        match = self.history.closest(timestamp - window)

        if match is None or match[1] > window / 2.0 or current_price <= 0:
            self.stats.cold_starts += 1
            return 0.0, False

        reference_price = match[0].current_price
        if reference_price <= 0:
            self.stats.cold_starts += 1
            return 0.0, False

        return ((current_price - reference_price) / reference_price) * 100.0, True

    @staticmethod
    def _coerce_price(value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            price = float(value)
        except (TypeError, ValueError, OverflowError) as e:
            raise DataError(f"Invalid current price: {value!r}") from e
        if not math.isfinite(price) or price <= 0:
            raise DataError(f"Invalid current price: {value!r}")
        return price


__all__ = [
    "FeatureExtractor",
    "parse_levels",
    "select_top_levels",
    "assess_data_quality",
]
