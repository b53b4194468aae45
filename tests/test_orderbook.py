"""
Test Suite for FeatureExtractor

Comprehensive tests for order book feature extraction:
- Pressure ratio and OFI identities
- Spread, depth and microstructure values
- Momentum with cold start
- Data quality scoring
- Degraded vectors and timing anomalies
- JSON persistence of the history
"""

import numpy as np
import pytest

from orderflow_cascade.config import FeatureConfig
from orderflow_cascade.exceptions import DataError
from orderflow_cascade.models import OrderBookSnapshot
from orderflow_cascade.orderbook import (
    FeatureExtractor,
    FeatureHistory,
    assess_data_quality,
    load_history,
    parse_levels,
    persist_history,
)

from . import T0, assert_performance_acceptable, generate_snapshots, make_snapshot


@pytest.fixture
def extractor():
    return FeatureExtractor("BTCUSDT", FeatureConfig(enable_logging=False))


class TestPressureFeatures:
    """Test ratio and order flow imbalance"""

    def test_ratio_identity_and_ofi_range(self, extractor):
        """Test ask_to_bid_ratio = total_ask / total_bid exactly and OFI in [-1, 1]"""
        for snapshot in generate_snapshots(100):
            vector = extractor.extract(snapshot)
            assert vector.ask_to_bid_ratio == vector.total_ask_volume / vector.total_bid_volume
            assert -1.0 <= vector.ofi <= 1.0, f"OFI out of range: {vector.ofi}"

    def test_volumes_use_top_levels_only(self):
        extractor = FeatureExtractor("BTCUSDT", FeatureConfig(depth_levels=3, enable_logging=False))
        vector = extractor.extract(make_snapshot(T0, bid_qty=[1, 2, 3, 100], ask_qty=[4, 5, 6, 100]))

        assert vector.total_bid_volume == 6.0
        assert vector.total_ask_volume == 15.0
        assert vector.ask_to_bid_ratio == 2.5

    def test_ofi_rank_weighting(self, extractor):
        """Test OFI = (bidP - askP) / (bidP + askP) with 1/(rank+1) weights"""
        vector = extractor.extract(make_snapshot(T0, bid_qty=[3.0], ask_qty=[1.0]))
        assert vector.ofi == pytest.approx(0.5)

        bid_qty = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
        ask_qty = [2.0, 2.0, 2.0, 2.0, 2.0, 2.0]
        vector = extractor.extract(make_snapshot(T0 + 1, bid_qty=bid_qty, ask_qty=ask_qty))
        bid_pressure = sum(q / (r + 1) for r, q in enumerate(bid_qty[:5]))
        ask_pressure = sum(q / (r + 1) for r, q in enumerate(ask_qty[:5]))
        expected = (bid_pressure - ask_pressure) / (bid_pressure + ask_pressure)
        assert vector.ofi == pytest.approx(expected)

    def test_balanced_book(self, extractor):
        vector = extractor.extract(make_snapshot(T0))
        assert vector.ofi == 0.0
        assert vector.ask_to_bid_ratio == 1.0
        assert vector.depth_imbalance == 0.0

    def test_zero_bid_volume_ratio_is_zero(self, extractor):
        """Test explicit division policy: no bid volume gives ratio 0, never inf"""
        vector = extractor.extract(make_snapshot(T0, bid_qty=[0.0, 0.0], ask_qty=[1.0, 1.0]))
        assert vector.ask_to_bid_ratio == 0.0
        assert vector.ofi == -1.0
        assert not vector.is_degraded

    @pytest.mark.parametrize("bid_qty, ask_qty", [
        ([1.0] * 10, []),
        ([], [1.0] * 10),
    ])
    def test_one_sided_book_has_zero_ofi(self, extractor, bid_qty, ask_qty):
        """Test a missing side gives OFI 0, not a full-scale imbalance"""
        vector = extractor.extract(make_snapshot(T0, bid_qty=bid_qty, ask_qty=ask_qty))
        assert vector.ofi == 0.0
        assert vector.data_quality == pytest.approx(0.3)
        assert not vector.is_degraded


class TestSpreadAndDepth:
    """Test spread, depth and microstructure"""

    def test_spread_values(self, extractor):
        vector = extractor.extract(make_snapshot(T0, mid=50000.0))

        assert vector.spread == 2.0
        assert vector.mid_price == 50000.0
        assert vector.relative_spread == pytest.approx(2.0 / 50000.0)
        assert vector.current_price == 50000.0

    def test_unsorted_levels_are_sorted(self, extractor):
        """Test bids are taken best (highest) first and asks lowest first"""
        snapshot = OrderBookSnapshot(
            timestamp=T0,
            symbol="BTCUSDT",
            bids=[(99.0, 1.0), (101.0, 2.0), (100.0, 3.0)],
            asks=[(104.0, 1.0), (102.0, 2.0), (103.0, 3.0)],
        )
        vector = extractor.extract(snapshot)

        assert vector.spread == 1.0
        assert vector.mid_price == 101.5
        # best bid (qty 2) at rank 0, best ask (qty 2) at rank 0
        bid_pressure = 2.0 + 3.0 / 2 + 1.0 / 3
        ask_pressure = 2.0 + 3.0 / 2 + 1.0 / 3
        assert vector.ofi == pytest.approx((bid_pressure - ask_pressure) / (bid_pressure + ask_pressure))

    def test_depth_and_microstructure(self, extractor):
        vector = extractor.extract(make_snapshot(T0, bid_qty=[1.0, 1.0], ask_qty=[3.0, 3.0]))

        assert vector.bid_depth == 2.0
        assert vector.ask_depth == 6.0
        assert vector.depth_imbalance == pytest.approx(-0.5)
        assert vector.liquidity_ratio == pytest.approx(3.0)
        assert vector.vwap_bid == pytest.approx(49998.5)
        assert vector.vwap_ask == pytest.approx(50001.5)
        assert vector.bid_concentration == pytest.approx(0.5)
        assert vector.ask_concentration == pytest.approx(0.5)
        assert vector.avg_bid_size == 1.0
        assert vector.avg_ask_size == 3.0
        assert vector.size_imbalance == pytest.approx(2.0)

    def test_current_price_overrides_mid(self, extractor):
        vector = extractor.extract(make_snapshot(T0, current_price=50010.0))
        assert vector.current_price == 50010.0
        assert vector.mid_price == 50000.0


class TestMomentum:
    """Test momentum lookup and cold start"""

    def test_cold_start_then_available(self, extractor):
        """Test momentum is unavailable until an entry lies within half a window"""
        flags = []
        for i in range(31):
            vector = extractor.extract(make_snapshot(T0 + i, current_price=100.0))
            flags.append(vector.momentum_available)

        assert not any(flags[:30]), "momentum must be unavailable before half a window of history"
        assert flags[30]
        assert extractor.stats.cold_starts == 30

    def test_cold_start_is_not_a_flat_market(self, extractor):
        vector = extractor.extract(make_snapshot(T0, current_price=100.0))
        assert vector.momentum == 0.0
        assert vector.momentum_available is False

    def test_percent_change_against_window_start(self, extractor):
        for i in range(60):
            extractor.extract(make_snapshot(T0 + i, current_price=100.0))
        vector = extractor.extract(make_snapshot(T0 + 60, current_price=99.0))

        assert vector.momentum_available
        assert vector.momentum == pytest.approx(-1.0)

    def test_uses_closest_entry_with_gaps(self, extractor):
        extractor.extract(make_snapshot(T0, current_price=100.0))
        extractor.extract(make_snapshot(T0 + 50, current_price=200.0))
        vector = extractor.extract(make_snapshot(T0 + 75, current_price=220.0))

        # target T0 + 15: T0 is 15 s away, T0 + 50 is 35 s away
        assert vector.momentum_available
        assert vector.momentum == pytest.approx(120.0)


class TestDataQuality:
    """Test data quality score"""

    @pytest.mark.parametrize("bids, asks, expected", [
        (10, 10, 1.0),
        (5, 5, 1.0),
        (3, 10, 0.8),
        (3, 3, 0.6),
        (0, 10, 0.3),
        (0, 3, 0.1),
    ])
    def test_assess_data_quality(self, bids, asks, expected):
        assert assess_data_quality(bids, asks) == pytest.approx(expected)

    def test_floor_at_zero(self):
        assert assess_data_quality(0, 0) >= 0.0

    def test_vector_quality(self, extractor):
        vector = extractor.extract(make_snapshot(T0, bid_qty=[1.0, 1.0, 1.0], ask_qty=[1.0] * 10))
        assert vector.data_quality == pytest.approx(0.8)

        vector = extractor.extract(make_snapshot(T0 + 1, bid_qty=[], ask_qty=[1.0] * 10))
        assert vector.data_quality == pytest.approx(0.3)
        assert vector.spread == 0.0
        assert not vector.is_degraded


class TestDegradation:
    """Test malformed snapshots never raise"""

    def test_empty_book_degrades(self, extractor):
        vector = extractor.extract(make_snapshot(T0, bid_qty=[], ask_qty=[]))

        assert vector.is_degraded
        assert vector.data_quality == 0.0
        assert vector.total_bid_volume == 0.0
        assert extractor.stats.data_errors == 1
        assert len(extractor.history) == 1

    @pytest.mark.parametrize("bids", [
        [("abc", 1.0)],
        [(100.0, float("nan"))],
        [(float("inf"), 1.0)],
        [(-1.0, 1.0)],
        [(100.0, -2.0)],
        [(100.0,)],
        [None],
    ])
    def test_malformed_levels_degrade(self, extractor, bids):
        snapshot = OrderBookSnapshot(timestamp=T0, symbol="BTCUSDT", bids=bids, asks=[(101.0, 1.0)])
        vector = extractor.extract(snapshot)

        assert vector.is_degraded
        assert vector.timestamp == T0
        assert extractor.stats.data_errors == 1

    def test_invalid_timestamp_degrades_without_append(self, extractor):
        vector = extractor.extract({"timestamp": None, "symbol": "BTCUSDT", "bids": [], "asks": []})

        assert vector.is_degraded
        assert vector.timestamp == 0.0
        assert len(extractor.history) == 0

    def test_overflowing_timestamp_degrades(self, extractor):
        snapshot = OrderBookSnapshot(timestamp=10 ** 400, symbol="BTCUSDT", bids=[(100.0, 1.0)], asks=[(101.0, 1.0)])
        vector = extractor.extract(snapshot)

        assert vector.is_degraded
        assert vector.timestamp == 0.0
        assert extractor.stats.data_errors == 1
        assert len(extractor.history) == 0

    def test_overflowing_level_degrades(self, extractor):
        snapshot = OrderBookSnapshot(timestamp=T0, symbol="BTCUSDT", bids=[(10 ** 400, 1.0)], asks=[(101.0, 1.0)])
        vector = extractor.extract(snapshot)

        assert vector.is_degraded
        assert vector.timestamp == T0

    def test_overflowing_current_price_degrades(self, extractor):
        vector = extractor.extract(make_snapshot(T0, current_price=10 ** 400))
        assert vector.is_degraded

    def test_invalid_current_price_degrades(self, extractor):
        vector = extractor.extract(make_snapshot(T0, current_price=float("nan")))
        assert vector.is_degraded

    def test_parse_levels_mapping(self):
        prices, quantities = parse_levels({100.0: 1.0, 99.0: 2.0}, "bids")
        assert list(prices) == [100.0, 99.0]
        assert list(quantities) == [1.0, 2.0]

    def test_parse_levels_raises_data_error(self):
        with pytest.raises(DataError):
            parse_levels([(0.0, 1.0)], "asks")


class TestTimingAnomalies:
    """Test out-of-order and duplicate ticks"""

    def test_duplicate_and_older_dropped(self, extractor):
        assert extractor.extract(make_snapshot(T0 + 10)) is not None
        assert extractor.extract(make_snapshot(T0 + 10)) is None
        assert extractor.extract(make_snapshot(T0 + 5)) is None

        assert extractor.stats.timing_anomalies == 2
        assert len(extractor.history) == 1

    def test_history_capacity_respected(self):
        extractor = FeatureExtractor("BTCUSDT", FeatureConfig(history_capacity=50, enable_logging=False))
        for snapshot in generate_snapshots(120):
            extractor.extract(snapshot)

        assert len(extractor.history) == 50
        assert extractor.history.oldest.timestamp == T0 + 70


class TestExtractorInputs:
    """Test accepted input shapes and shared history"""

    def test_mapping_snapshot(self, extractor):
        vector = extractor.extract({
            "timestamp": T0,
            "symbol": "ETHUSDT",
            "bids": [[3000.0, 1.0]],
            "asks": [[3001.0, 2.0]],
            "currentPrice": 3000.5,
        })
        assert vector.symbol == "ETHUSDT"
        assert vector.current_price == 3000.5
        assert vector.ask_to_bid_ratio == 2.0

    def test_mapping_snapshot_with_numpy_levels(self, extractor):
        vector = extractor.extract({
            "timestamp": T0,
            "symbol": "BTCUSDT",
            "bids": np.array([[100.0, 1.0], [99.0, 2.0]]),
            "asks": np.array([[101.0, 3.0], [102.0, 1.0]]),
        })

        assert not vector.is_degraded
        assert vector.total_bid_volume == 3.0
        assert vector.total_ask_volume == 4.0
        assert vector.mid_price == 100.5

    def test_unusable_mapping_degrades(self, extractor):
        vector = extractor.extract({"timestamp": "soon", "symbol": "BTCUSDT", "bids": np.empty((0, 2))})
        assert vector.is_degraded
        assert extractor.stats.data_errors == 1

    def test_external_history(self):
        history = FeatureHistory(10)
        extractor = FeatureExtractor("BTCUSDT", FeatureConfig(enable_logging=False), history=history)
        extractor.extract(make_snapshot(T0))
        assert len(history) == 1

    def test_stats(self, extractor):
        for snapshot in generate_snapshots(20):
            extractor.extract(snapshot)
        stats = extractor.get_stats()

        assert stats["features_calculated"] == 20
        assert stats["current_feature_count"] == 20
        assert stats["last_feature_time"] == T0 + 19
        assert stats["average_latency_ms"] > 0
        assert stats["error_rate"] == 0.0

    def test_performance(self, extractor):
        """Test single extraction after JIT warmup is fast"""
        snapshots = generate_snapshots(2)
        extractor.extract(snapshots[0])
        assert_performance_acceptable(extractor.extract, (snapshots[1],), max_time_ms=50.0)


class TestPersistence:
    """Test JSON dumps of the history"""

    def test_round_trip(self, extractor, tmp_path):
        for snapshot in generate_snapshots(15):
            extractor.extract(snapshot)

        path = persist_history(extractor.history, tmp_path / "dumps", "BTCUSDT", stamp=123)
        assert path.name == "BTCUSDT_features_123.json"

        restored = load_history(path)
        assert len(restored) == 15
        assert list(restored) == list(extractor.history)

    def test_load_rejects_other_files(self, tmp_path):
        path = tmp_path / "other.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(DataError):
            load_history(path)
