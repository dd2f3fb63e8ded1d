"""Robust Moments: numerically robust descriptive statistics."""

from importlib import import_module

from ._version import __version__

# Modules are imported only when one of their names is accessed

_EXPORTS = {
    "CompensatedSum": "extended_precision",
    "ExtendedPrecision": "extended_precision",
    "Int128": "int128",
    "UInt192": "int128",
    "MomentState": "moment_state",
    "Statistic": "statistic",
    "Mean": "double_statistics",
    "Sum": "double_statistics",
    "SumOfSquares": "double_statistics",
    "Product": "double_statistics",
    "SumOfSquaredDeviations": "double_statistics",
    "SumOfCubedDeviations": "double_statistics",
    "SumOfFourthDeviations": "double_statistics",
    "Variance": "double_statistics",
    "StandardDeviation": "double_statistics",
    "Skewness": "double_statistics",
    "Kurtosis": "double_statistics",
    "IntSum": "integer_statistics",
    "LongSum": "integer_statistics",
    "IntMean": "integer_statistics",
    "LongMean": "integer_statistics",
    "IntSumOfSquares": "integer_statistics",
    "LongSumOfSquares": "integer_statistics",
    "IntVariance": "integer_statistics",
    "LongVariance": "integer_statistics",
    "IntStandardDeviation": "integer_statistics",
    "LongStandardDeviation": "integer_statistics",
    "NaNPolicy": "nan_transformers",
    "NaNTransformer": "nan_transformers",
    "NaNValueError": "nan_transformers",
    "TransformedRange": "nan_transformers",
    "create_nan_transformer": "nan_transformers",
    "LoggingConfig": "config",
    "StatisticsConfiguration": "config",
    "MomentSummary": "summary",
    "summarize": "summary",
}

__all__ = ["__version__", *_EXPORTS]


def __getattr__(name):
    """Lazy import of the public names."""
    module = _EXPORTS.get(name)
    if module is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(f".{module}", __name__), name)
