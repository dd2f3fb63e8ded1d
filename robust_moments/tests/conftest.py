"""Pytest configuration and shared fixtures."""

from fractions import Fraction
import math

import numpy as np
import pytest


def _exact_central_sums(values):
    """Return (n, mean, ss, sc, sq) as exact fractions."""
    xs = [Fraction(float(x)) if not isinstance(x, int) else Fraction(x) for x in values]
    n = len(xs)
    mean = sum(xs, Fraction(0)) / n
    dx = [x - mean for x in xs]
    ss = sum((d * d for d in dx), Fraction(0))
    sc = sum((d * d * d for d in dx), Fraction(0))
    sq = sum((d * d * d * d for d in dx), Fraction(0))
    return n, mean, ss, sc, sq


@pytest.fixture
def exact_moments():
    """Return a function computing correctly rounded moments of finite values.

    The function returns a dict with ``n``, ``mean``, ``ss``, ``sc``, ``sq``,
    ``variance``, ``biased_variance``, ``skewness`` and ``kurtosis`` (biased
    forms for the last two), each rounded once from the exact value where
    possible.
    """

    def compute(values):
        n, mean, ss, sc, sq = _exact_central_sums(values)
        result = {
            "n": n,
            "mean": float(mean),
            "ss": float(ss),
            "sc": float(sc),
            "sq": float(sq),
            "variance": float(ss / (n - 1)) if n > 1 else math.nan,
            "biased_variance": float(ss / n),
        }
        if ss:
            m2 = ss / n
            result["skewness"] = float(sc / n) / math.sqrt(float(m2)) ** 3
            result["kurtosis"] = float(sq / n / (m2 * m2)) - 3
        return result

    return compute


@pytest.fixture
def rng():
    """Seeded random generator for reproducible data."""
    return np.random.default_rng(20240517)


@pytest.fixture
def normal_data(rng):
    """Shifted normal sample with non-zero skewness from an added tail."""
    data = rng.normal(loc=3.5, scale=2.0, size=997)
    data[:50] += rng.exponential(scale=5.0, size=50)
    return data
