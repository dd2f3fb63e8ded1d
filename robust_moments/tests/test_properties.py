"""Property-based tests for the statistics.

Uses Hypothesis to check invariants that hold for any input: merging
partitions in any order, exact integer results and the bias toggle.
"""

from fractions import Fraction
import math

from hypothesis import assume, given, settings
from hypothesis import strategies as st
import numpy as np
import pytest

from robust_moments.double_statistics import Kurtosis, Mean, Skewness, Variance
from robust_moments.int128 import LONG_MAX, LONG_MIN
from robust_moments.integer_statistics import LongMean, LongSum, LongVariance
from robust_moments.moment_state import MomentState

finite_values = st.lists(
    st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
    min_size=1,
    max_size=60,
)
long_values = st.lists(st.integers(LONG_MIN, LONG_MAX), min_size=1, max_size=40)


def partitions(values, cuts):
    bounds = sorted({min(c, len(values)) for c in cuts} | {0, len(values)})
    return [values[a:b] for a, b in zip(bounds, bounds[1:])]


class TestMergeProperties:
    """Test that partitioned computation matches the whole."""

    @given(finite_values, st.lists(st.integers(0, 60), max_size=4), st.randoms())
    @settings(max_examples=200, deadline=None)
    def test_merge_order_independence(self, values, cuts, random):
        """Test that any partitioning and merge order agree with the whole."""
        parts = partitions(values, cuts)
        random.shuffle(parts)
        merged = MomentState()
        for part in parts:
            merged.combine(MomentState.of_range(part, 0, len(part)))
        whole = MomentState.of_range(values, 0, len(values))
        scale = max(1.0, math.fsum(x * x for x in values))
        assert merged.n == whole.n
        assert merged.mean() == pytest.approx(whole.mean(), abs=1e-12 * math.sqrt(scale))
        assert merged.sum_of_squared_deviations() == pytest.approx(
            whole.sum_of_squared_deviations(), abs=1e-10 * scale
        )
        ss = whole.sum_of_squared_deviations()
        abs_cube = float(np.sum(np.abs(np.asarray(values) - whole.mean()) ** 3))
        assert merged.sum_of_cubed_deviations() == pytest.approx(
            whole.sum_of_cubed_deviations(),
            abs=1e-10 * abs_cube + 1e-12 * math.sqrt(scale) * ss + 1e-12,
        )

    @given(finite_values)
    @settings(deadline=None)
    def test_streaming_matches_array(self, values):
        """Test that one observation at a time agrees with the array path."""
        mean = Mean.create()
        variance = Variance.create()
        for x in values:
            mean.accept(x)
            variance.accept(x)
        scale = max(1.0, math.fsum(x * x for x in values))
        assert mean.get_as_double() == pytest.approx(
            Mean.of(values).get_as_double(), abs=1e-12 * math.sqrt(scale)
        )
        if len(values) > 1:
            assert variance.get_as_double() == pytest.approx(
                Variance.of(values).get_as_double(), abs=1e-10 * scale
            )

    @given(long_values, long_values)
    def test_integer_merge_is_exact(self, a, b):
        """Test that merged integer statistics equal the whole exactly."""
        values = a + b
        assert LongSum.of(a).combine(LongSum.of(b)).get_as_integer() == sum(values)
        merged = LongVariance.of(a).combine(LongVariance.of(b))
        assert merged.get_as_double() == LongVariance.of(values).get_as_double()
        n = len(values)
        s = sum(values)
        q = sum(x * x for x in values)
        assert merged.set_biased(True).get_as_double() == float(Fraction(q * n - s * s, n * n))

    @given(long_values)
    def test_integer_mean_rounding(self, values):
        """Test that the integer mean rounds the exact quotient half up."""
        mean = LongMean.of(values)
        expected = math.floor(Fraction(sum(values), len(values)) + Fraction(1, 2))
        assert mean.get_as_long() == expected
        assert LONG_MIN <= mean.get_as_long() <= LONG_MAX


class TestBiasProperties:
    """Test the biased and unbiased forms."""

    @given(finite_values)
    def test_toggle_does_not_accumulate(self, values):
        """Test that switching the bias mode only changes the reading."""
        for statistic in (Variance, Skewness, Kurtosis):
            stat = statistic.of(values)
            unbiased = stat.get_as_double()
            biased = stat.set_biased(True).get_as_double()
            again = stat.set_biased(False).get_as_double()
            assert again == unbiased or (math.isnan(again) and math.isnan(unbiased))
            assert stat.set_biased(True).get_as_double() == biased or math.isnan(biased)

    @given(finite_values)
    def test_variance_forms(self, values):
        """Test the ratio between the two variance forms."""
        assume(len(values) > 1)
        v = Variance.of(values)
        unbiased = v.get_as_double()
        biased = v.set_biased(True).get_as_double()
        n = len(values)
        assert biased == pytest.approx(unbiased * (n - 1) / n, rel=1e-14, abs=1e-300)
        assert unbiased >= 0.0

    @given(
        st.lists(st.integers(-(10**6), 10**6), min_size=2, max_size=60),
        st.integers(-(10**9), 10**9),
    )
    def test_shift_invariance(self, values, shift):
        """Test that shifting integral data leaves the variance unchanged."""
        data = np.asarray(values, dtype=np.float64)
        expected = Variance.of(data).get_as_double()
        assert Variance.of(data + shift).get_as_double() == pytest.approx(
            expected, rel=1e-9, abs=1e-9
        )
