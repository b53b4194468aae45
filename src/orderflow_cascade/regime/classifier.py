"""
Market Regime Classifier

Maps one FeatureVector onto at most one of three mutually exclusive regimes,
evaluated in priority order; the first regime whose pressure, liquidity and
momentum predicates all hold wins.

| Priority | Regime       | Pressure  | Liquidity  | Momentum         | Hint       |
|----------|--------------|-----------|------------|------------------|------------|
| 1        | DISTRIBUTION | >= 3.0    | >= 100,000 | <= -0.3 %        | SHORT      |
| 2        | ACCUMULATION | < 2.0     | >= 300,000 | in (-0.1, 0.1) % | ALERT_ONLY |
| 3        | STOP_HUNT    | < 1.5     | >= 250,000 | <= -0.5 %        | ALERT_ONLY |

Pressure is ask_to_bid_ratio and liquidity total_bid_volume. A vector whose
momentum is not yet available fails every momentum predicate.

Usage:
    classifier = RegimeClassifier("BTCUSDT")
    result = classifier.classify(vector)
    if result is not None:
        print(result.regime, result.strategy, result.reason)
"""

import logging
import math
import time
from dataclasses import replace
from typing import Any, Dict, Mapping, NamedTuple, Optional

from ..config import RegimeConfig
from ..exceptions import ConfigurationError, DataError
from ..models import Regime, RegimeClassification, StrategyHint
from ..stats import ClassifierStats


class RegimeProfile(NamedTuple):
    """Static description attached to a detected regime"""
    strategy: StrategyHint
    confidence: str
    phenomenon: str
    expected_outcome: str


REGIME_PROFILES: Dict[Regime, RegimeProfile] = {
    Regime.DISTRIBUTION: RegimeProfile(StrategyHint.SHORT, "HIGH", "LIQUIDITY_CASCADE", "CONTINUED_DECLINE"),
    Regime.ACCUMULATION: RegimeProfile(StrategyHint.ALERT_ONLY, "HIGH", "LIQUIDITY_COIL",
                                       "VOLATILITY_BREAKOUT_PENDING"),
    Regime.STOP_HUNT: RegimeProfile(StrategyHint.ALERT_ONLY, "MEDIUM", "ARTIFICIAL_SUPPRESSION",
                                    "POTENTIAL_REVERSAL_LONG"),
}

PRIORITY = (Regime.DISTRIBUTION, Regime.ACCUMULATION, Regime.STOP_HUNT)

_FIELD_ALIASES = {
    "ask_to_bid_ratio": "askToBidRatio",
    "total_bid_volume": "totalBidVolume",
    "momentum": "momentum",
}


class MarketInputs(NamedTuple):
    """The three validated inputs of a classification"""
    timestamp: float
    symbol: Optional[str]
    pressure: float
    liquidity: float
    momentum: float
    momentum_available: bool


def _read_number(source: Any, name: str) -> float:
    if isinstance(source, Mapping):
        if name in source:
            value = source[name]
        elif _FIELD_ALIASES[name] in source:
            value = source[_FIELD_ALIASES[name]]
        else:
            raise DataError(f"missing field '{name}'")
    else:
        if not hasattr(source, name):
            raise DataError(f"missing field '{name}'")
        value = getattr(source, name)

    if isinstance(value, bool) or value is None:
        raise DataError(f"field '{name}' is not numeric: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise DataError(f"field '{name}' is not numeric: {value!r}") from e
    if not math.isfinite(number):
        raise DataError(f"field '{name}' is not finite: {value!r}")
    return number


def read_inputs(source: Any) -> MarketInputs:
    """
    Validate classifier inputs from a FeatureVector or a mapping

    Mappings may use snake_case or camelCase keys. A mapping without
    momentum_available is treated as carrying a measured momentum.

    Raises:
        DataError: If a field is missing, non-numeric or non-finite
    """
    pressure = _read_number(source, "ask_to_bid_ratio")
    liquidity = _read_number(source, "total_bid_volume")
    momentum = _read_number(source, "momentum")

    if isinstance(source, Mapping):
        timestamp = source.get("timestamp", time.time())
        symbol = source.get("symbol")
        available = source.get("momentum_available", source.get("momentumAvailable", True))
    else:
        timestamp = getattr(source, "timestamp", time.time())
        symbol = getattr(source, "symbol", None)
        available = getattr(source, "momentum_available", True)

    try:
        timestamp = float(timestamp)
    except (TypeError, ValueError, OverflowError) as e:
        raise DataError(f"field 'timestamp' is not numeric: {timestamp!r}") from e

    return MarketInputs(timestamp, symbol, pressure, liquidity, momentum, bool(available))


class RegimeClassifier:
    """Per-symbol regime classifier; side effects are limited to its counters"""

    def __init__(self, symbol: str, config: Optional[RegimeConfig] = None):
        self.symbol = symbol
        self.config = config or RegimeConfig()
        self.stats = ClassifierStats()
        self.logger = logging.getLogger(__name__)

        if self.config.enable_logging:
            self._log_thresholds("initialized")

    # ========================
    # CLASSIFICATION
    # ========================

    def classify(self, vector: Any) -> Optional[RegimeClassification]:
        """
        Classify one feature vector

        Args:
            vector: FeatureVector, or a mapping with ask_to_bid_ratio,
                total_bid_volume and momentum

        Returns:
            RegimeClassification of the highest-priority matching regime, or
            None when no regime matches or the input is malformed.
        """
        try:
            inputs = read_inputs(vector)
        except DataError as e:
            self.stats.errors += 1
            if self.config.enable_logging:
                self.logger.warning(f"{self.symbol}: cannot classify malformed input: {e}")
            return None

        self.stats.total_classifications += 1
        conditions = self.evaluate_inputs(inputs)

        for regime in PRIORITY:
            checks = conditions[regime]
            if all(checks.values()):
                return self._build(regime, inputs)

        self.stats.no_signals += 1
        return None

    def evaluate(self, vector: Any) -> Dict[str, Dict[str, bool]]:
        """
        Diagnostic view: pass/fail of every sub-condition of every regime

        Does not touch the counters.

        Raises:
            DataError: If the input is malformed
        """
        conditions = self.evaluate_inputs(read_inputs(vector))
        return {regime.value: checks for regime, checks in conditions.items()}

    def evaluate_inputs(self, inputs: MarketInputs) -> Dict[Regime, Dict[str, bool]]:
        cfg = self.config
        pressure, liquidity, momentum = inputs.pressure, inputs.liquidity, inputs.momentum
        measured = inputs.momentum_available

        return {
            Regime.DISTRIBUTION: {
                "pressure": pressure >= cfg.distribution_pressure,
                "liquidity": liquidity >= cfg.distribution_liquidity,
                "momentum": measured and momentum <= cfg.distribution_momentum,
            },
            Regime.ACCUMULATION: {
                "pressure": pressure < cfg.accumulation_pressure,
                "liquidity": liquidity >= cfg.accumulation_liquidity,
                "momentum": measured and cfg.accumulation_momentum_min < momentum < cfg.accumulation_momentum_max,
            },
            Regime.STOP_HUNT: {
                "pressure": pressure < cfg.stop_hunt_pressure,
                "liquidity": liquidity >= cfg.stop_hunt_liquidity,
                "momentum": measured and momentum <= cfg.stop_hunt_momentum,
            },
        }

    def _build(self, regime: Regime, inputs: MarketInputs) -> RegimeClassification:
        profile = REGIME_PROFILES[regime]

        if regime is Regime.DISTRIBUTION:
            self.stats.distribution_signals += 1
        elif regime is Regime.ACCUMULATION:
            self.stats.accumulation_signals += 1
        else:
            self.stats.stop_hunt_signals += 1

        classification = RegimeClassification(
            timestamp=inputs.timestamp,
            symbol=inputs.symbol or self.symbol,
            regime=regime,
            strategy=profile.strategy,
            confidence=profile.confidence,
            metrics={
                "ask_to_bid_ratio": inputs.pressure,
                "total_bid_volume": inputs.liquidity,
                "momentum": inputs.momentum,
            },
            reason=self._reason(regime, inputs),
            phenomenon=profile.phenomenon,
            expected_outcome=profile.expected_outcome,
        )

        if self.config.enable_logging:
            self.logger.info(f"REGIME DETECTED {self.symbol}: {regime.value} ({profile.strategy.value}) - "
                             f"{classification.reason}")
        return classification

    def _reason(self, regime: Regime, inputs: MarketInputs) -> str:
        cfg = self.config
        pressure = f"{inputs.pressure:.2f}x"
        liquidity = f"{inputs.liquidity / 1000:.1f}k"
        momentum = f"{inputs.momentum:.3f}%"

        if regime is Regime.DISTRIBUTION:
            parts = (
                f"pressure {pressure} >= {cfg.distribution_pressure}x",
                f"liquidity {liquidity} >= {cfg.distribution_liquidity / 1000:.1f}k",
                f"momentum {momentum} <= {cfg.distribution_momentum}%",
            )
        elif regime is Regime.ACCUMULATION:
            parts = (
                f"pressure {pressure} < {cfg.accumulation_pressure}x",
                f"liquidity {liquidity} >= {cfg.accumulation_liquidity / 1000:.1f}k",
                f"momentum {cfg.accumulation_momentum_min}% < {momentum} < {cfg.accumulation_momentum_max}%",
            )
        else:
            parts = (
                f"pressure {pressure} < {cfg.stop_hunt_pressure}x",
                f"liquidity {liquidity} >= {cfg.stop_hunt_liquidity / 1000:.1f}k",
                f"momentum {momentum} <= {cfg.stop_hunt_momentum}%",
            )
        return ", ".join(parts)

    # ========================
    # MANAGEMENT
    # ========================

    def update_thresholds(self, **thresholds: float) -> RegimeConfig:
        """
        Replace some thresholds; the full set is re-validated

        Raises:
            ConfigurationError: On unknown names or an invalid/overlapping result
        """
        unknown = sorted(set(thresholds) - set(RegimeConfig.threshold_names()))
        if unknown:
            raise ConfigurationError(f"Unknown threshold(s): {', '.join(unknown)}")

        self.config = replace(self.config, **thresholds)
        if self.config.enable_logging:
            self._log_thresholds("thresholds updated")
        return self.config

    def reset_stats(self) -> None:
        self.stats = ClassifierStats()
        if self.config.enable_logging:
            self.logger.info(f"{self.symbol}: classifier statistics reset")

    def get_stats(self) -> Dict[str, Any]:
        data = self.stats.snapshot()
        data["symbol"] = self.symbol
        data["thresholds"] = self.config.thresholds()
        return data

    def _log_thresholds(self, event: str) -> None:
        cfg = self.config
        self.logger.info(
            f"RegimeClassifier {event} for {self.symbol}: "
            f"DISTRIBUTION(p>={cfg.distribution_pressure}, l>={cfg.distribution_liquidity}, "
            f"m<={cfg.distribution_momentum}) "
            f"ACCUMULATION(p<{cfg.accumulation_pressure}, l>={cfg.accumulation_liquidity}, "
            f"{cfg.accumulation_momentum_min}<m<{cfg.accumulation_momentum_max}) "
            f"STOP_HUNT(p<{cfg.stop_hunt_pressure}, l>={cfg.stop_hunt_liquidity}, m<={cfg.stop_hunt_momentum})"
        )


__all__ = [
    "RegimeClassifier",
    "RegimeProfile",
    "REGIME_PROFILES",
    "PRIORITY",
    "MarketInputs",
    "read_inputs",
]
