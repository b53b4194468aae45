"""
Complex Morlet Continuous Wavelet Transform

Magnitude scalogram of a uniformly sampled series and the high-frequency
band energy derived from it.

Features:
- Geometric scale grid
- Direct O(N²) transform (Numba kernel, reference implementation)
- FFT transform via scipy.signal.fftconvolve (same coefficients, O(N log N))
- Band energy over the most recent samples

Coefficient at sample n and scale s:

    W(n, s) = sqrt(dt/s) × |Σ_k x[k] × exp(-t²/2) × exp(i ω0 t)|,  t = (k - n) dt / s

The sum runs over the whole series (no cone-of-influence padding).
"""

import math
from typing import Sequence

import numpy as np
from numba import jit
from scipy import signal as sp_signal

CWT_METHODS = ("direct", "fft")


def generate_scales(min_scale: float = 2.0, max_scale: float = 15.0, steps: int = 20) -> np.ndarray:
    """
    Geometrically spaced scales, both endpoints included

    Args:
        min_scale: Smallest scale (seconds)
        max_scale: Largest scale (seconds)
        steps: Number of scales

    Returns:
        Array of `steps` scales
    """
    if steps < 2:
        raise ValueError(f"steps must be >= 2, got {steps}")
    if not 0 < min_scale < max_scale:
        raise ValueError(f"Invalid scale range [{min_scale}, {max_scale}]")

    log_min = math.log(min_scale)
    step = (math.log(max_scale) - log_min) / (steps - 1)
    return np.exp(log_min + step * np.arange(steps))


@jit(nopython=True, cache=True)
def _fast_morlet_cwt(values: np.ndarray, scales: np.ndarray, omega0: float, dt: float) -> np.ndarray:
    """
    Fast direct Morlet CWT magnitudes with Numba

    Returns:
        (len(scales), len(values)) magnitude matrix
    """
    n = len(values)
    m = len(scales)
    magnitudes = np.zeros((m, n))

    for s in range(m):
        scale = scales[s]
        norm = math.sqrt(dt / scale)
        for i in range(n):
            real_part = 0.0
            imag_part = 0.0
            for k in range(n):
                t = (k - i) * dt / scale
                envelope = math.exp(-0.5 * t * t)
                real_part += values[k] * envelope * math.cos(omega0 * t)
                imag_part += values[k] * envelope * math.sin(omega0 * t)
            real_part *= norm
            imag_part *= norm
            magnitudes[s, i] = math.sqrt(real_part * real_part + imag_part * imag_part)

    return magnitudes


def _fft_morlet_cwt(values: np.ndarray, scales: np.ndarray, omega0: float, dt: float) -> np.ndarray:
    """FFT Morlet CWT magnitudes (full-support kernel, identical sum to the direct method)"""
    n = len(values)
    magnitudes = np.zeros((len(scales), n))
    if n == 0:
        return magnitudes

    # kernel[j] = wavelet(N-1-j), so full[N-1+i] = Σ_k x[k] × wavelet(k-i)
    offsets = np.arange(n - 1, -n, -1, dtype=np.float64)
    for s, scale in enumerate(scales):
        t = offsets * dt / scale
        kernel = np.exp(-0.5 * t * t) * np.exp(1j * omega0 * t)
        full = sp_signal.fftconvolve(values.astype(np.complex128), kernel, mode="full")
        magnitudes[s] = np.abs(full[n - 1:2 * n - 1]) * math.sqrt(dt / scale)

    return magnitudes


def morlet_cwt(values: Sequence[float], scales: Sequence[float], omega0: float = 6.0,
               dt: float = 1.0, method: str = "direct") -> np.ndarray:
    """
    Complex Morlet CWT magnitudes

    Args:
        values: Uniformly sampled series (oldest first)
        scales: Scales in seconds
        omega0: Central frequency parameter (default: 6)
        dt: Sampling interval in seconds (default: 1)
        method: 'direct' (reference) or 'fft'

    Returns:
        (len(scales), len(values)) magnitude matrix, one row per scale
    """
    values = np.asarray(values, dtype=np.float64)
    scales = np.asarray(scales, dtype=np.float64)

    if method == "direct":
        if len(values) == 0:
            return np.zeros((len(scales), 0))
        return _fast_morlet_cwt(values, scales, float(omega0), float(dt))
    if method == "fft":
        return _fft_morlet_cwt(values, scales, float(omega0), float(dt))
    raise ValueError(f"Unknown CWT method: {method!r} (expected one of {CWT_METHODS})")


def high_frequency_energy(magnitudes: np.ndarray, scales: Sequence[float], band_min: float = 2.0,
                          band_max: float = 10.0, recent: int = 10) -> float:
    """
    Mean per-scale energy of the high-frequency band

    For every scale in [band_min, band_max], sums the squared magnitudes of the
    `recent` newest samples; returns the mean of those sums (0 if no scale is
    in the band).
    """
    scales = np.asarray(scales, dtype=np.float64)
    in_band = (scales >= band_min) & (scales <= band_max)
    if not np.any(in_band) or magnitudes.shape[1] == 0:
        return 0.0

    tail = magnitudes[in_band, -recent:]
    return float(np.mean(np.sum(tail * tail, axis=1)))


def per_scale_energy(magnitudes: np.ndarray, scales: Sequence[float]):
    """Total energy per scale, keyed 'scale_<s:.1f>s'"""
    energies = np.sum(magnitudes * magnitudes, axis=1)
    return {f"scale_{scale:.1f}s": float(energy) for scale, energy in zip(scales, energies)}


__all__ = [
    "CWT_METHODS",
    "generate_scales",
    "morlet_cwt",
    "high_frequency_energy",
    "per_scale_energy",
]
