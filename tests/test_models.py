"""
Test Suite for the Data Model

- Exact serialization round trips (dict and JSON)
- Missing field detection
- Single terminal resolution of predictive signals
- Confidence tier ordering
"""

import json

import pytest

from orderflow_cascade.exceptions import DataError
from orderflow_cascade.models import (
    ConfidenceTier,
    FeatureVector,
    OrderBookSnapshot,
    PredictiveSignal,
    Regime,
    RegimeClassification,
    SignalStatus,
    StrategyHint,
)

from . import T0


AWKWARD_FLOATS = {
    "ask_to_bid_ratio": 0.1 + 0.2,
    "total_bid_volume": 1 / 3,
    "total_ask_volume": 123456789.123456789,
    "current_price": 43250.123456789012,
    "momentum": -1e-300,
    "ofi": -0.7777777777777777,
    "relative_spread": 4.999999999999999e-05,
}


class TestFeatureVectorSerialization:
    """Test FeatureVector round trips"""

    def test_json_round_trip_is_exact(self):
        vector = FeatureVector(timestamp=T0 + 0.123, symbol="BTCUSDT", momentum_available=True,
                               data_quality=0.6000000000000001, **AWKWARD_FLOATS)
        restored = FeatureVector.from_json(vector.to_json())

        assert restored == vector
        for name, value in AWKWARD_FLOATS.items():
            assert getattr(restored, name) == value, f"{name} changed in round trip"

    def test_dict_round_trip(self):
        vector = FeatureVector.degraded(T0, "ETHUSDT")
        assert FeatureVector.from_dict(vector.to_dict()) == vector

    def test_missing_field(self):
        with pytest.raises(DataError):
            FeatureVector.from_dict({"symbol": "BTCUSDT"})

    def test_degraded_vector(self):
        vector = FeatureVector.degraded(T0, "BTCUSDT")
        assert vector.is_degraded
        assert vector.data_quality == 0.0
        assert vector.ofi == 0.0
        assert vector.momentum_available is False

    def test_immutable(self):
        vector = FeatureVector(timestamp=T0, symbol="BTCUSDT")
        with pytest.raises(AttributeError):
            vector.ofi = 1.0


class TestPredictiveSignal:
    """Test signal serialization and resolution"""

    def make_signal(self) -> PredictiveSignal:
        return PredictiveSignal(
            timestamp=T0,
            symbol="BTCUSDT",
            energy_score=0.1 + 0.2,
            z_score=4.123456789012345,
            confidence=ConfidenceTier.HIGH,
            lead_time_estimate=17,
            per_scale_energy={"scale_2.0s": 1 / 3, "scale_15.0s": 2.5e-12},
        )

    def test_wire_format(self):
        data = self.make_signal().to_dict()

        assert data["type"] == "PREDICTIVE_CASCADE_ALERT"
        assert data["confidence"] == "HIGH"
        assert data["expected_direction"] == "DOWN"
        assert data["status"] == "pending"
        assert "signal_type" not in data
        json.dumps(data)

    def test_json_round_trip_is_exact(self):
        signal = self.make_signal()
        signal.resolve(SignalStatus.CONFIRMED, T0 + 12.5, 12.5)
        restored = PredictiveSignal.from_json(signal.to_json())

        assert restored == signal
        assert restored.confidence is ConfidenceTier.HIGH
        assert restored.status is SignalStatus.CONFIRMED
        assert restored.per_scale_energy["scale_2.0s"] == 1 / 3

    def test_resolve_once(self):
        signal = self.make_signal()
        assert signal.is_pending
        assert signal.resolve(SignalStatus.FALSE_POSITIVE, T0 + 60)
        assert not signal.resolve(SignalStatus.CONFIRMED, T0 + 61, 61.0)
        assert signal.status is SignalStatus.FALSE_POSITIVE
        assert signal.resolved_at == T0 + 60

    def test_cannot_resolve_to_pending(self):
        with pytest.raises(ValueError):
            self.make_signal().resolve(SignalStatus.PENDING, T0)


class TestRegimeClassification:
    """Test classification serialization"""

    def test_json_round_trip_is_exact(self):
        classification = RegimeClassification(
            timestamp=T0,
            symbol="BTCUSDT",
            regime=Regime.STOP_HUNT,
            strategy=StrategyHint.ALERT_ONLY,
            confidence="MEDIUM",
            metrics={"ask_to_bid_ratio": 1 / 3, "total_bid_volume": 260000.0, "momentum": -0.6000000000000001},
            reason="pressure 0.33x < 1.5x",
            phenomenon="ARTIFICIAL_SUPPRESSION",
            expected_outcome="POTENTIAL_REVERSAL_LONG",
        )
        data = classification.to_dict()
        assert data["regime"] == "STOP_HUNT"
        assert data["strategy"] == "ALERT_ONLY"

        restored = RegimeClassification.from_json(classification.to_json())
        assert restored == classification
        assert restored.regime is Regime.STOP_HUNT


class TestEnumsAndSnapshot:
    """Test confidence ordering and snapshot parsing"""

    def test_confidence_ordering(self):
        assert ConfidenceTier.VERY_HIGH > ConfidenceTier.HIGH > ConfidenceTier.MEDIUM > ConfidenceTier.LOW
        assert ConfidenceTier.HIGH >= ConfidenceTier.HIGH
        assert max([ConfidenceTier.MEDIUM, ConfidenceTier.VERY_HIGH, ConfidenceTier.LOW]) is ConfidenceTier.VERY_HIGH

    def test_snapshot_from_dict(self):
        snapshot = OrderBookSnapshot.from_dict({
            "timestamp": T0,
            "symbol": "BTCUSDT",
            "bids": [[100.0, 1.0]],
            "asks": None,
            "currentPrice": 100.5,
        })
        assert snapshot.asks == []
        assert snapshot.current_price == 100.5
