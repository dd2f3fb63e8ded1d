"""Version information for robust_moments."""

__version__ = "0.1.0"
