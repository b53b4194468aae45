"""
Configuration for the per-symbol analysis pipeline

Dataclass configs validated in __post_init__. Any inconsistency raises
ConfigurationError at construction, before data flows.

Loaders:
- PipelineConfig.from_dict(mapping)
- PipelineConfig.from_env(environ) using the deployment variable names
  (DEPTH_LEVELS, MOMENTUM_WINDOW, WAVELET_WINDOW, CASCADE_PRESSURE_THRESHOLD, ...)
- load_config(path) for YAML files

Usage:
    from orderflow_cascade.config import PipelineConfig, load_config

    config = load_config("config.yaml")
    config = PipelineConfig.from_dict({"depth_levels": 20, "wavelet": {"method": "fft"}})
"""

import math
import os
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml

from .exceptions import ConfigurationError


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigurationError(message)


def _require_finite(name: str, value: float) -> None:
    _require(
        isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value),
        f"{name} must be a finite number, got {value!r}",
    )


@dataclass
class FeatureConfig:
    """Configuration for FeatureExtractor and FeatureHistory"""
    depth_levels: int = 10
    momentum_window_seconds: float = 60.0
    history_capacity: int = 3600  # 1 hour at 1 Hz
    ofi_levels: int = 5
    vwap_levels: int = 5
    min_quality_levels: int = 5
    enable_logging: bool = True

    def __post_init__(self):
        _require(isinstance(self.depth_levels, int) and self.depth_levels > 0,
                 f"depth_levels must be a positive integer, got {self.depth_levels!r}")
        _require_finite("momentum_window_seconds", self.momentum_window_seconds)
        _require(self.momentum_window_seconds > 0,
                 f"momentum_window_seconds must be positive, got {self.momentum_window_seconds}")
        _require(isinstance(self.history_capacity, int) and self.history_capacity > 0,
                 f"history_capacity must be a positive integer, got {self.history_capacity!r}")
        _require(isinstance(self.ofi_levels, int) and self.ofi_levels > 0,
                 f"ofi_levels must be a positive integer, got {self.ofi_levels!r}")
        _require(isinstance(self.vwap_levels, int) and self.vwap_levels > 0,
                 f"vwap_levels must be a positive integer, got {self.vwap_levels!r}")
        _require(isinstance(self.min_quality_levels, int) and self.min_quality_levels >= 0,
                 f"min_quality_levels must be a non-negative integer, got {self.min_quality_levels!r}")


@dataclass
class WaveletConfig:
    """Configuration for WaveletCascadeDetector"""
    min_scale: float = 2.0
    max_scale: float = 15.0
    scale_steps: int = 20
    window_size_seconds: float = 300.0
    energy_threshold_sigma: float = 3.5
    confirmation_window_seconds: float = 60.0

    omega0: float = 6.0
    sampling_interval: float = 1.0
    band_min_scale: float = 2.0
    band_max_scale: float = 10.0
    recent_samples: int = 10
    zscore_lookback: int = 60
    lead_time_base_seconds: float = 30.0

    method: str = "direct"  # 'direct' (reference O(N²)) or 'fft'
    scalogram_history: int = 60
    signal_history_size: int = 100
    confirmation_timers: bool = False
    enable_logging: bool = True

    def __post_init__(self):
        for name in ("min_scale", "max_scale", "window_size_seconds", "energy_threshold_sigma",
                     "confirmation_window_seconds", "omega0", "sampling_interval",
                     "band_min_scale", "band_max_scale", "lead_time_base_seconds"):
            _require_finite(name, getattr(self, name))

        _require(self.min_scale > 0, f"min_scale must be positive, got {self.min_scale}")
        _require(self.min_scale < self.max_scale,
                 f"min_scale ({self.min_scale}) must be below max_scale ({self.max_scale})")
        _require(isinstance(self.scale_steps, int) and self.scale_steps >= 2,
                 f"scale_steps must be an integer >= 2, got {self.scale_steps!r}")
        _require(self.window_size_seconds > 0,
                 f"window_size_seconds must be positive, got {self.window_size_seconds}")
        _require(self.sampling_interval > 0,
                 f"sampling_interval must be positive, got {self.sampling_interval}")
        _require(self.energy_threshold_sigma > 0,
                 f"energy_threshold_sigma must be positive, got {self.energy_threshold_sigma}")
        _require(self.confirmation_window_seconds > 0,
                 f"confirmation_window_seconds must be positive, got {self.confirmation_window_seconds}")
        _require(self.omega0 > 0, f"omega0 must be positive, got {self.omega0}")
        _require(self.band_min_scale <= self.band_max_scale,
                 f"band_min_scale ({self.band_min_scale}) must not exceed band_max_scale ({self.band_max_scale})")
        _require(self.lead_time_base_seconds > 0,
                 f"lead_time_base_seconds must be positive, got {self.lead_time_base_seconds}")
        _require(isinstance(self.recent_samples, int) and self.recent_samples > 0,
                 f"recent_samples must be a positive integer, got {self.recent_samples!r}")
        _require(isinstance(self.zscore_lookback, int) and self.zscore_lookback >= 2,
                 f"zscore_lookback must be an integer >= 2, got {self.zscore_lookback!r}")
        _require(self.method in ("direct", "fft"),
                 f"method must be 'direct' or 'fft', got {self.method!r}")
        _require(isinstance(self.scalogram_history, int) and self.scalogram_history > 0,
                 f"scalogram_history must be a positive integer, got {self.scalogram_history!r}")
        _require(isinstance(self.signal_history_size, int) and self.signal_history_size > 0,
                 f"signal_history_size must be a positive integer, got {self.signal_history_size!r}")
        _require(self.max_samples >= self.warmup_samples,
                 f"window_size_seconds={self.window_size_seconds} holds {self.max_samples} samples, "
                 f"fewer than the {self.warmup_samples} needed to leave warm-up")

    @property
    def max_samples(self) -> int:
        """Hard cap on the OFI series length (bounds the O(N²) transform)"""
        return int(self.window_size_seconds / self.sampling_interval) + 1

    @property
    def warmup_samples(self) -> int:
        """Series length below which analysis is withheld"""
        return int(math.ceil(2 * self.min_scale))


@dataclass
class RegimeConfig:
    """
    Thresholds for RegimeClassifier

    Pressure is the ask/bid volume ratio, liquidity the total bid volume and
    momentum a percentage change.
    """
    distribution_pressure: float = 3.0
    distribution_liquidity: float = 100_000.0
    distribution_momentum: float = -0.3

    accumulation_pressure: float = 2.0
    accumulation_liquidity: float = 300_000.0
    accumulation_momentum_min: float = -0.1
    accumulation_momentum_max: float = 0.1

    stop_hunt_pressure: float = 1.5
    stop_hunt_liquidity: float = 250_000.0
    stop_hunt_momentum: float = -0.5

    enable_logging: bool = True

    def __post_init__(self):
        for name in self.threshold_names():
            _require_finite(name, getattr(self, name))

        for name in ("distribution_liquidity", "accumulation_liquidity", "stop_hunt_liquidity",
                     "distribution_pressure", "accumulation_pressure", "stop_hunt_pressure"):
            _require(getattr(self, name) >= 0, f"{name} must be non-negative, got {getattr(self, name)}")

        _require(self.accumulation_momentum_min < self.accumulation_momentum_max,
                 f"accumulation momentum band ({self.accumulation_momentum_min}, "
                 f"{self.accumulation_momentum_max}) is empty")

        # DISTRIBUTION: pressure >= Pd, momentum <= Md
        # ACCUMULATION: pressure < Pa, Ma_min < momentum < Ma_max
        # STOP_HUNT:    pressure < Ps, momentum <= Ms
        # Liquidity predicates are all lower bounds and always overlap.
        _require(self.distribution_pressure >= self.accumulation_pressure
                 or self.distribution_momentum <= self.accumulation_momentum_min,
                 "DISTRIBUTION and ACCUMULATION thresholds overlap")
        _require(self.distribution_pressure >= self.stop_hunt_pressure,
                 "DISTRIBUTION and STOP_HUNT thresholds overlap: "
                 f"distribution_pressure ({self.distribution_pressure}) < "
                 f"stop_hunt_pressure ({self.stop_hunt_pressure})")
        _require(self.stop_hunt_momentum <= self.accumulation_momentum_min,
                 "ACCUMULATION and STOP_HUNT thresholds overlap: "
                 f"stop_hunt_momentum ({self.stop_hunt_momentum}) > "
                 f"accumulation_momentum_min ({self.accumulation_momentum_min})")

    @staticmethod
    def threshold_names() -> Tuple[str, ...]:
        return tuple(f.name for f in fields(RegimeConfig) if f.name != "enable_logging")

    def thresholds(self) -> Dict[str, float]:
        return {name: float(getattr(self, name)) for name in self.threshold_names()}


# Environment variable -> (section, key, parser)
ENV_VARIABLES: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    "DEPTH_LEVELS": ("features", "depth_levels", int),
    "MOMENTUM_WINDOW": ("features", "momentum_window_seconds", float),
    "FEATURE_HISTORY_LENGTH": ("features", "history_capacity", int),
    "WAVELET_WINDOW": ("wavelet", "window_size_seconds", float),
    "WAVELET_ENERGY_THRESHOLD": ("wavelet", "energy_threshold_sigma", float),
    "WAVELET_METHOD": ("wavelet", "method", str),
    "CONFIRMATION_WINDOW": ("wavelet", "confirmation_window_seconds", float),
    "CASCADE_PRESSURE_THRESHOLD": ("regime", "distribution_pressure", float),
    "CASCADE_LIQUIDITY_THRESHOLD": ("regime", "distribution_liquidity", float),
    "CASCADE_MOMENTUM_THRESHOLD": ("regime", "distribution_momentum", float),
    "COIL_PRESSURE_THRESHOLD": ("regime", "accumulation_pressure", float),
    "COIL_LIQUIDITY_THRESHOLD": ("regime", "accumulation_liquidity", float),
    "COIL_MOMENTUM_MIN": ("regime", "accumulation_momentum_min", float),
    "COIL_MOMENTUM_MAX": ("regime", "accumulation_momentum_max", float),
    "SHAKEOUT_PRESSURE_THRESHOLD": ("regime", "stop_hunt_pressure", float),
    "SHAKEOUT_LIQUIDITY_THRESHOLD": ("regime", "stop_hunt_liquidity", float),
    "SHAKEOUT_MOMENTUM_THRESHOLD": ("regime", "stop_hunt_momentum", float),
}

_SECTIONS = {
    "features": FeatureConfig,
    "wavelet": WaveletConfig,
    "regime": RegimeConfig,
}


def _build_section(name: str, values: Mapping[str, Any]):
    cls = _SECTIONS[name]
    if not isinstance(values, Mapping):
        raise ConfigurationError(f"'{name}' section must be a mapping, got {type(values).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown {name} option(s): {', '.join(unknown)}")
    try:
        return cls(**dict(values))
    except TypeError as e:
        raise ConfigurationError(f"Invalid {name} configuration: {e}") from e


@dataclass
class PipelineConfig:
    """Complete configuration of one symbol pipeline"""
    features: FeatureConfig = field(default_factory=FeatureConfig)
    wavelet: WaveletConfig = field(default_factory=WaveletConfig)
    regime: RegimeConfig = field(default_factory=RegimeConfig)
    offload_wavelet: bool = False

    def __post_init__(self):
        _require(isinstance(self.features, FeatureConfig), "features must be a FeatureConfig")
        _require(isinstance(self.wavelet, WaveletConfig), "wavelet must be a WaveletConfig")
        _require(isinstance(self.regime, RegimeConfig), "regime must be a RegimeConfig")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]] = None) -> "PipelineConfig":
        """
        Build a config from a nested mapping

        Sections 'features', 'wavelet' and 'regime' map onto the dataclasses of
        the same name. FeatureConfig options may also be given at top level
        (e.g. ``depth_levels``).
        """
        data = dict(data or {})
        sections: Dict[str, Dict[str, Any]] = {name: {} for name in _SECTIONS}

        offload = data.pop("offload_wavelet", False)
        for name in _SECTIONS:
            if name in data:
                section = data.pop(name)
                if section is not None:
                    if not isinstance(section, Mapping):
                        raise ConfigurationError(f"'{name}' section must be a mapping")
                    sections[name].update(section)

        feature_keys = {f.name for f in fields(FeatureConfig)}
        for key in list(data):
            if key in feature_keys:
                sections["features"][key] = data.pop(key)

        if data:
            raise ConfigurationError(f"Unknown configuration key(s): {', '.join(sorted(data))}")

        return cls(
            features=_build_section("features", sections["features"]),
            wavelet=_build_section("wavelet", sections["wavelet"]),
            regime=_build_section("regime", sections["regime"]),
            offload_wavelet=bool(offload),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """Build a config from environment variables, defaults for anything unset"""
        environ = os.environ if environ is None else environ
        sections: Dict[str, Dict[str, Any]] = {name: {} for name in _SECTIONS}

        for variable, (section, key, parser) in ENV_VARIABLES.items():
            raw = environ.get(variable)
            if raw is None or raw == "":
                continue
            try:
                sections[section][key] = parser(raw)
            except ValueError as e:
                raise ConfigurationError(f"{variable}={raw!r} is not a valid {parser.__name__}") from e

        offload = environ.get("WAVELET_OFFLOAD", "").strip().lower() in ("1", "true", "yes")
        return cls.from_dict({**sections, "offload_wavelet": offload})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: str) -> PipelineConfig:
    """
    Load a PipelineConfig from a YAML file

    Args:
        path: Path to a YAML document shaped like PipelineConfig.from_dict input

    Returns:
        Validated PipelineConfig
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Config file {path} must contain a mapping at top level")

    return PipelineConfig.from_dict(data)


__all__ = [
    "FeatureConfig",
    "WaveletConfig",
    "RegimeConfig",
    "PipelineConfig",
    "ENV_VARIABLES",
    "load_config",
]
