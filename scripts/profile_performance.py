"""
Performance Profiling Script for Orderflow Cascade

Profiles:
- FeatureExtractor.extract() (target: <1ms per snapshot)
- Morlet CWT, direct vs FFT on a full 300 s window (target: direct <50ms)
- RegimeClassifier.classify() (target: <0.1ms)
- SymbolPipeline.process() end to end
- Hot paths identification (cProfile)

Usage:
    python scripts/profile_performance.py
    python scripts/profile_performance.py --detailed
    python scripts/profile_performance.py --module wavelet --iterations 20
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import time
import cProfile
import pstats
import io
import logging
import argparse
from typing import Dict, List

import numpy as np

from orderflow_cascade.config import FeatureConfig, PipelineConfig, RegimeConfig, WaveletConfig
from orderflow_cascade.models import OrderBookSnapshot
from orderflow_cascade.orderbook import FeatureExtractor
from orderflow_cascade.pipeline import SymbolPipeline
from orderflow_cascade.regime import RegimeClassifier
from orderflow_cascade.wavelet import generate_scales, morlet_cwt


# ============================================================================
# TEST DATA GENERATORS
# ============================================================================

def generate_test_snapshots(n: int = 600, symbol: str = 'BTCUSDT', levels: int = 20) -> List[OrderBookSnapshot]:
    """Generate a 1 Hz stream of realistic order book snapshots"""
    rng = np.random.default_rng(42)

    price = 50000.0
    snapshots = []
    for i in range(n):
        price *= 1 + rng.normal(0, 0.0005)
        bids = [(price - 0.5 - j * 0.5, float(rng.uniform(0.5, 5.0))) for j in range(levels)]
        asks = [(price + 0.5 + j * 0.5, float(rng.uniform(0.5, 5.0))) for j in range(levels)]
        snapshots.append(OrderBookSnapshot(
            timestamp=1_700_000_000.0 + i,
            symbol=symbol,
            bids=bids,
            asks=asks,
            current_price=price,
        ))
    return snapshots


def _report(name: str, times: List[float], target_ms: float) -> Dict[str, float]:
    avg_time = float(np.mean(times))
    print(f"\nResults ({len(times)} iterations):")
    print(f"  Average: {avg_time:.3f} ms")
    print(f"  Min:     {np.min(times):.3f} ms")
    print(f"  Max:     {np.max(times):.3f} ms")
    print(f"  Target:  {target_ms:.3f} ms")
    print(f"  Status:  {'✅ PASS' if avg_time < target_ms else '❌ FAIL'}")
    return {'avg_ms': avg_time, 'target_ms': target_ms, 'pass': avg_time < target_ms}


# ============================================================================
# PROFILES
# ============================================================================

def profile_feature_extraction(n_iterations: int = 600) -> Dict[str, float]:
    """Profile FeatureExtractor.extract (target: <1ms)"""
    print("\n" + "="*70)
    print("PROFILING: Feature Extraction (target <1ms)")
    print("="*70)

    snapshots = generate_test_snapshots(n_iterations + 1)
    extractor = FeatureExtractor('BTCUSDT', FeatureConfig(enable_logging=False))
    extractor.extract(snapshots[0])  # JIT warmup

    times = []
    for snapshot in snapshots[1:]:
        start = time.perf_counter()
        extractor.extract(snapshot)
        times.append((time.perf_counter() - start) * 1000.0)

    return _report('features', times, 1.0)


def profile_wavelet_transform(n_iterations: int = 10) -> Dict[str, Dict[str, float]]:
    """Profile direct vs FFT Morlet CWT on a full window (target: direct <50ms)"""
    print("\n" + "="*70)
    print("PROFILING: Morlet CWT, 301 samples x 20 scales (direct vs fft)")
    print("="*70)

    rng = np.random.default_rng(7)
    signal = np.tanh(rng.normal(0, 0.3, 301))
    scales = generate_scales(2.0, 15.0, 20)

    results = {}
    for method, target in (('direct', 50.0), ('fft', 20.0)):
        morlet_cwt(signal, scales, method=method)  # warmup
        times = []
        for _ in range(n_iterations):
            start = time.perf_counter()
            morlet_cwt(signal, scales, method=method)
            times.append((time.perf_counter() - start) * 1000.0)
        print(f"\n[{method}]")
        results[method] = _report(method, times, target)

    direct = morlet_cwt(signal, scales, method='direct')
    fft = morlet_cwt(signal, scales, method='fft')
    print(f"\nMax |direct - fft|: {np.max(np.abs(direct - fft)):.2e}")
    return results


def profile_regime_classification(n_iterations: int = 10000) -> Dict[str, float]:
    """Profile RegimeClassifier.classify (target: <0.1ms)"""
    print("\n" + "="*70)
    print("PROFILING: Regime Classification (target <0.1ms)")
    print("="*70)

    classifier = RegimeClassifier('BTCUSDT', RegimeConfig(enable_logging=False))
    rng = np.random.default_rng(3)
    inputs = [
        {
            'ask_to_bid_ratio': float(rng.uniform(0.5, 4.0)),
            'total_bid_volume': float(rng.uniform(50_000, 400_000)),
            'momentum': float(rng.normal(0, 0.4)),
            'timestamp': float(i),
        }
        for i in range(n_iterations)
    ]

    times = []
    for item in inputs:
        start = time.perf_counter()
        classifier.classify(item)
        times.append((time.perf_counter() - start) * 1000.0)

    return _report('regime', times, 0.1)


def _quiet_pipeline_config(method: str = 'direct') -> PipelineConfig:
    return PipelineConfig(
        features=FeatureConfig(enable_logging=False),
        wavelet=WaveletConfig(method=method, enable_logging=False),
        regime=RegimeConfig(enable_logging=False),
    )


def profile_pipeline(n_snapshots: int = 600) -> Dict[str, float]:
    """Profile SymbolPipeline.process end to end with inline FFT analysis"""
    print("\n" + "="*70)
    print("PROFILING: SymbolPipeline.process (fft, inline)")
    print("="*70)

    snapshots = generate_test_snapshots(n_snapshots)
    times = []
    with SymbolPipeline('BTCUSDT', _quiet_pipeline_config('fft')) as pipeline:
        for snapshot in snapshots:
            start = time.perf_counter()
            pipeline.process(snapshot)
            times.append((time.perf_counter() - start) * 1000.0)

    return _report('pipeline', times[10:], 25.0)


# ============================================================================
# DETAILED PROFILING WITH CPROFILE
# ============================================================================

def detailed_profile_pipeline():
    """Detailed cProfile analysis of SymbolPipeline"""
    print("\n" + "="*70)
    print("DETAILED PROFILING: SymbolPipeline (cProfile)")
    print("="*70)

    snapshots = generate_test_snapshots(400)

    profiler = cProfile.Profile()
    with SymbolPipeline('BTCUSDT', _quiet_pipeline_config('direct')) as pipeline:
        profiler.enable()
        for snapshot in snapshots:
            pipeline.process(snapshot)
        profiler.disable()

    s = io.StringIO()
    ps = pstats.Stats(profiler, stream=s).sort_stats('cumulative')
    ps.print_stats(20)  # Top 20 functions

    print(s.getvalue())


# ============================================================================
# MAIN
# ============================================================================

def main():
    parser = argparse.ArgumentParser(description='Profile Orderflow Cascade Performance')
    parser.add_argument('--detailed', action='store_true', help='Run detailed cProfile analysis')
    parser.add_argument('--module', type=str, choices=['features', 'wavelet', 'regime', 'pipeline', 'all'], default='all', help='Module to profile')
    parser.add_argument('--iterations', type=int, default=None, help='Number of iterations')

    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    print("="*70)
    print("ORDERFLOW CASCADE PERFORMANCE PROFILING")
    print("="*70)

    results = {}

    if args.module in ['features', 'all']:
        results['features'] = profile_feature_extraction(args.iterations or 600)

    if args.module in ['wavelet', 'all']:
        for method, result in profile_wavelet_transform(args.iterations or 10).items():
            results[f'cwt_{method}'] = result

    if args.module in ['regime', 'all']:
        results['regime'] = profile_regime_classification(args.iterations or 10000)

    if args.module in ['pipeline', 'all']:
        results['pipeline'] = profile_pipeline(args.iterations or 600)

        if args.detailed:
            detailed_profile_pipeline()

    # Summary
    print("\n" + "="*70)
    print("SUMMARY")
    print("="*70)

    total_pass = sum(1 for result in results.values() if result['pass'])
    for module, result in results.items():
        status = "✅ PASS" if result['pass'] else "❌ FAIL"
        print(f"{module:20s}: {result['avg_ms']:7.3f} ms / {result['target_ms']:6.2f} ms  {status}")

    print("\n" + "="*70)
    print(f"Overall: {total_pass}/{len(results)} targets met")
    print("="*70)


if __name__ == "__main__":
    main()
