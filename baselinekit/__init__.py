"""Covariate-aware baseline selection and statistical thresholds."""

__version__ = "0.1.0"
