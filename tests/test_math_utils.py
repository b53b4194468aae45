"""
Test Suite for Math Utilities

- Safe division policy
- Rank-weighted pressure, Herfindahl, VWAP, imbalance
- Rolling z-score cold start and zero variance
"""

import numpy as np
import pytest

from orderflow_cascade.utils import (
    herfindahl_index,
    imbalance,
    rank_weighted_pressure,
    rolling_zscore,
    safe_divide,
    volume_weighted_price,
)


class TestSafeDivide:
    """Test division-by-zero policy"""

    def test_regular_division(self):
        assert safe_divide(6.0, 3.0) == 2.0

    def test_zero_denominator_returns_default(self):
        """Test zero denominator yields the default, never inf/NaN"""
        assert safe_divide(5.0, 0.0) == 0.0
        assert safe_divide(5.0, 0.0, default=-1.0) == -1.0

    def test_tiny_denominator_is_divided(self):
        """Only an exact zero triggers the default"""
        assert safe_divide(1.0, 1e-300) == pytest.approx(1e300)


class TestPressure:
    """Test rank-weighted pressure and derived measures"""

    def test_rank_weights(self):
        """Test Σ qty / (rank + 1)"""
        quantities = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 100.0])
        expected = 1.0 + 2.0 / 2 + 3.0 / 3 + 4.0 / 4 + 5.0 / 5
        assert rank_weighted_pressure(quantities, levels=5) == pytest.approx(expected)

    def test_fewer_levels_than_requested(self):
        assert rank_weighted_pressure(np.array([2.0]), levels=5) == pytest.approx(2.0)
        assert rank_weighted_pressure(np.array([]), levels=5) == 0.0

    def test_imbalance_bounds(self):
        """Test imbalance range [-1, 1] and zero policy"""
        assert imbalance(1.0, 0.0) == 1.0
        assert imbalance(0.0, 1.0) == -1.0
        assert imbalance(0.0, 0.0) == 0.0
        assert imbalance(3.0, 1.0) == pytest.approx(0.5)

    def test_herfindahl(self):
        """Test concentration of equal and single-level sides"""
        assert herfindahl_index(np.array([1.0, 1.0, 1.0, 1.0])) == pytest.approx(0.25)
        assert herfindahl_index(np.array([5.0])) == pytest.approx(1.0)
        assert herfindahl_index(np.array([0.0, 0.0])) == 0.0
        assert herfindahl_index(np.array([])) == 0.0

    def test_vwap(self):
        prices = np.array([100.0, 101.0])
        quantities = np.array([1.0, 3.0])
        assert volume_weighted_price(prices, quantities) == pytest.approx(100.75)
        assert volume_weighted_price(prices, np.zeros(2)) == 0.0


class TestRollingZScore:
    """Test z-score availability semantics"""

    def test_cold_start_unavailable(self):
        z, available = rolling_zscore([1.0, 2.0, 3.0], lookback=60)
        assert (z, available) == (0.0, False)

    def test_zero_variance_unavailable(self):
        z, available = rolling_zscore([2.0] * 60, lookback=60)
        assert (z, available) == (0.0, False)

    def test_population_std_includes_current_value(self):
        """Test population std over the window including the newest value"""
        values = [0.0] * 59 + [1.0]
        z, available = rolling_zscore(values, lookback=60)

        window = np.array(values)
        expected = (1.0 - window.mean()) / window.std()
        assert available
        assert z == pytest.approx(expected)
        assert z == pytest.approx(np.sqrt(59))

    def test_only_last_lookback_values_count(self):
        values = [1000.0] * 10 + [0.0, 1.0] * 30
        z_full, _ = rolling_zscore(values, lookback=60)
        z_tail, _ = rolling_zscore(values[-60:], lookback=60)
        assert z_full == pytest.approx(z_tail)
