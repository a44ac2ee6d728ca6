"""Binomial confidence intervals, compliance sizing, and threshold derivation."""
