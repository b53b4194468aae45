"""
Data Model

Value types exchanged between the pipeline stages and with collaborators:

- OrderBookLevel / OrderBookSnapshot: inbound order book tick
- FeatureVector: immutable per-tick features (fan-out to both consumers)
- EnergyScore: high-frequency wavelet energy with its z-score
- PredictiveSignal: cascade warning with a single terminal resolution
- RegimeClassification: regime verdict for one feature vector

Serialization contract: to_dict()/from_dict() and to_json()/from_json() keep
every numeric field exactly (no rounding). Floats are emitted with repr
precision by the json module, which round-trips IEEE doubles.
"""

import json
from dataclasses import MISSING, dataclass, field, fields, asdict
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from .exceptions import DataError


class Regime(str, Enum):
    """Mutually exclusive market regimes, in evaluation priority order"""
    DISTRIBUTION = "DISTRIBUTION"
    ACCUMULATION = "ACCUMULATION"
    STOP_HUNT = "STOP_HUNT"


class StrategyHint(str, Enum):
    SHORT = "SHORT"
    ALERT_ONLY = "ALERT_ONLY"


class ConfidenceTier(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def __ge__(self, other):
        if isinstance(other, ConfidenceTier):
            return self.rank >= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, ConfidenceTier):
            return self.rank > other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, ConfidenceTier):
            return self.rank <= other.rank
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, ConfidenceTier):
            return self.rank < other.rank
        return NotImplemented


_CONFIDENCE_RANK = {
    ConfidenceTier.LOW: 0,
    ConfidenceTier.MEDIUM: 1,
    ConfidenceTier.HIGH: 2,
    ConfidenceTier.VERY_HIGH: 3,
}


class SignalStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FALSE_POSITIVE = "false_positive"


class OrderBookLevel(NamedTuple):
    """Single price level"""
    price: float
    quantity: float


@dataclass
class OrderBookSnapshot:
    """
    Order book tick as handed over by the exchange connectivity layer

    bids/asks accept OrderBookLevel, (price, qty) tuples or [price, qty] lists.
    Ordering is not trusted: the extractor sorts each side itself.
    """
    timestamp: float
    symbol: str
    bids: Sequence[Tuple[float, float]] = field(default_factory=list)
    asks: Sequence[Tuple[float, float]] = field(default_factory=list)
    current_price: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrderBookSnapshot":
        bids = data.get("bids")
        asks = data.get("asks")
        return cls(
            timestamp=data.get("timestamp"),
            symbol=data.get("symbol"),
            bids=[] if bids is None else bids,
            asks=[] if asks is None else asks,
            current_price=data.get("current_price", data.get("currentPrice")),
        )


def _from_mapping(cls, data: Mapping[str, Any], converters: Optional[Dict[str, Any]] = None):
    converters = converters or {}
    kwargs = {}
    missing = []
    for f in fields(cls):
        if f.name in data:
            value = data[f.name]
            if f.name in converters and value is not None:
                value = converters[f.name](value)
            kwargs[f.name] = value
        elif f.default is MISSING and f.default_factory is MISSING:
            missing.append(f.name)
    if missing:
        raise DataError(f"{cls.__name__} is missing field(s): {', '.join(missing)}")
    return cls(**kwargs)


class _JsonMixin:
    """JSON helpers on top of to_dict/from_dict"""

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, payload: str):
        return cls.from_dict(json.loads(payload))


@dataclass(frozen=True)
class FeatureVector(_JsonMixin):
    """
    Per-tick order book features

    momentum_available is False while there is not enough history for a
    momentum reading (momentum is then 0.0 but not a measured flat market).
    is_degraded marks the zero-valued fallback produced for malformed data.
    """
    timestamp: float
    symbol: str

    # Core pressure/liquidity features
    ask_to_bid_ratio: float = 0.0
    total_bid_volume: float = 0.0
    total_ask_volume: float = 0.0
    current_price: float = 0.0
    momentum: float = 0.0
    momentum_available: bool = False

    # Order flow and spread
    ofi: float = 0.0
    spread: float = 0.0
    mid_price: float = 0.0
    relative_spread: float = 0.0

    # Depth
    bid_depth: float = 0.0
    ask_depth: float = 0.0
    depth_imbalance: float = 0.0
    vwap_bid: float = 0.0
    vwap_ask: float = 0.0
    liquidity_ratio: float = 0.0

    # Microstructure
    bid_concentration: float = 0.0
    ask_concentration: float = 0.0
    avg_bid_size: float = 0.0
    avg_ask_size: float = 0.0
    size_imbalance: float = 0.0

    # Quality
    data_quality: float = 1.0
    is_degraded: bool = False

    @classmethod
    def degraded(cls, timestamp: float, symbol: str) -> "FeatureVector":
        """Zero-valued, quality-flagged vector used when a snapshot is unusable"""
        return cls(timestamp=timestamp, symbol=symbol, data_quality=0.0, is_degraded=True)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeatureVector":
        return _from_mapping(cls, data)


class EnergyScore(NamedTuple):
    """High-frequency energy at one analysis step"""
    timestamp: float
    energy: float
    z_score: float = 0.0
    z_available: bool = False


@dataclass
class PredictiveSignal(_JsonMixin):
    """
    Predictive cascade warning

    Created PENDING; resolved exactly once to CONFIRMED or FALSE_POSITIVE by
    the detector's confirmation tracker.
    """
    timestamp: float
    symbol: str
    energy_score: float
    z_score: float
    confidence: ConfidenceTier
    expected_direction: str = "DOWN"
    lead_time_estimate: int = 0
    per_scale_energy: Dict[str, float] = field(default_factory=dict)
    signal_type: str = "PREDICTIVE_CASCADE_ALERT"
    status: SignalStatus = SignalStatus.PENDING
    resolved_at: Optional[float] = None
    realized_lead_time: Optional[float] = None

    @property
    def is_pending(self) -> bool:
        return self.status is SignalStatus.PENDING

    def resolve(self, status: SignalStatus, at: float, realized_lead_time: Optional[float] = None) -> bool:
        """
        Move to a terminal state

        Returns:
            True if the signal was pending and is now resolved, False if it had
            already been resolved (the call is then a no-op).
        """
        if status is SignalStatus.PENDING:
            raise ValueError("Cannot resolve a signal to PENDING")
        if self.status is not SignalStatus.PENDING:
            return False
        self.status = status
        self.resolved_at = float(at)
        self.realized_lead_time = realized_lead_time
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["confidence"] = self.confidence.value
        data["status"] = self.status.value
        data["type"] = data.pop("signal_type")
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PredictiveSignal":
        data = dict(data)
        if "type" in data:
            data["signal_type"] = data.pop("type")
        return _from_mapping(cls, data, converters={
            "confidence": ConfidenceTier,
            "status": SignalStatus,
            "per_scale_energy": dict,
        })


@dataclass(frozen=True)
class RegimeClassification(_JsonMixin):
    """Regime verdict for one FeatureVector"""
    timestamp: float
    symbol: str
    regime: Regime
    strategy: StrategyHint
    confidence: str
    metrics: Dict[str, float] = field(default_factory=dict)
    reason: str = ""
    phenomenon: str = ""
    expected_outcome: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["regime"] = self.regime.value
        data["strategy"] = self.strategy.value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RegimeClassification":
        return _from_mapping(cls, data, converters={
            "regime": Regime,
            "strategy": StrategyHint,
            "metrics": dict,
        })


Scale = float
Scalogram = Dict[float, Dict[Scale, List[float]]]


__all__ = [
    "Regime",
    "StrategyHint",
    "ConfidenceTier",
    "SignalStatus",
    "OrderBookLevel",
    "OrderBookSnapshot",
    "FeatureVector",
    "EnergyScore",
    "PredictiveSignal",
    "RegimeClassification",
    "Scale",
    "Scalogram",
]
