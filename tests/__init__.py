"""
Test Suite for Orderflow Cascade

Shared generators and assertion helpers.

Test Structure:
- Unit tests per module (math utils, history, extractor, wavelet, regime, models, config)
- Integration tests for pipelines
- Performance checks with generous budgets
- Edge case validation
"""

import os
import sys
import time
import warnings
from typing import List, Optional, Sequence, Tuple

import numpy as np

# Configure test environment
SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC not in sys.path:
    sys.path.insert(0, SRC)

warnings.filterwarnings("ignore", category=RuntimeWarning)

from orderflow_cascade.models import FeatureVector, OrderBookSnapshot  # noqa: E402

T0 = 1_700_000_000.0


# Test data generators
def make_book(bid_qty: Sequence[float], ask_qty: Sequence[float], mid: float = 50000.0,
              tick: float = 1.0) -> Tuple[List[Tuple[float, float]], List[Tuple[float, float]]]:
    """Bids/asks best-first around `mid`, one tick apart"""
    bids = [(mid - tick * (i + 1), float(q)) for i, q in enumerate(bid_qty)]
    asks = [(mid + tick * (i + 1), float(q)) for i, q in enumerate(ask_qty)]
    return bids, asks


def make_snapshot(timestamp: float, bid_qty: Sequence[float] = (1.0,) * 10,
                  ask_qty: Sequence[float] = (1.0,) * 10, mid: float = 50000.0,
                  symbol: str = "BTCUSDT", current_price: Optional[float] = None):
    bids, asks = make_book(bid_qty, ask_qty, mid)
    return OrderBookSnapshot(timestamp=timestamp, symbol=symbol, bids=bids, asks=asks,
                             current_price=current_price)


def generate_snapshots(n_points: int = 200, symbol: str = "BTCUSDT", levels: int = 10,
                       start_price: float = 50000.0):
    """1 Hz stream of random-walk order books (seeded)"""
    rng = np.random.default_rng(42)
    price = start_price
    snapshots = []
    for i in range(n_points):
        price *= 1 + rng.normal(0, 0.0005)
        bids = [(price - 0.5 - j, float(rng.uniform(0.5, 5.0))) for j in range(levels)]
        asks = [(price + 0.5 + j, float(rng.uniform(0.5, 5.0))) for j in range(levels)]
        snapshots.append(OrderBookSnapshot(timestamp=T0 + i, symbol=symbol, bids=bids, asks=asks))
    return snapshots


def make_vector(timestamp: float, ofi: float = 0.0, symbol: str = "BTCUSDT", **fields):
    return FeatureVector(timestamp=timestamp, symbol=symbol, ofi=ofi, **fields)


def quiet_ofi(n_points: int, amplitude: float = 0.05, period: float = 90.0) -> np.ndarray:
    """Slow, low-amplitude OFI oscillation (no high-frequency content)"""
    t = np.arange(n_points, dtype=np.float64)
    return amplitude * np.sin(2 * np.pi * t / period)


def burst_ofi(n_points: int, amplitude: float = 0.8) -> np.ndarray:
    """Alternating +/- amplitude every second (high-frequency burst)"""
    return amplitude * np.where(np.arange(n_points) % 2 == 0, 1.0, -1.0)


# Test utilities
def assert_performance_acceptable(func, args, max_time_ms=10.0):
    """Assert function executes within acceptable time"""
    start_time = time.perf_counter()
    result = func(*args)
    execution_time_ms = (time.perf_counter() - start_time) * 1000

    assert execution_time_ms < max_time_ms, f"Function took {execution_time_ms:.2f}ms, expected < {max_time_ms}ms"

    return result


__all__ = [
    "T0",
    "make_book",
    "make_snapshot",
    "generate_snapshots",
    "make_vector",
    "quiet_ofi",
    "burst_ofi",
    "assert_performance_acceptable",
]
