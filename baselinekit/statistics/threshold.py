"""Derive a pass-rate threshold from baseline counts and judge new runs against it."""

from __future__ import annotations

from pydantic import BaseModel

from baselinekit.statistics.defaults import DEFAULT_CONFIDENCE
from baselinekit.statistics.wilson import wilson_interval, wilson_lower_bound


class DerivedThreshold(BaseModel):
    baseline_samples: int
    baseline_successes: int
    baseline_rate: float
    min_pass_rate: float
    interval: tuple[float, float]
    confidence: float


class Verdict(BaseModel):
    passed: bool
    samples: int
    successes: int
    observed_rate: float
    threshold: float
    interval: tuple[float, float]


def derive_threshold(
    samples: int, successes: int, confidence: float = DEFAULT_CONFIDENCE
) -> DerivedThreshold:
    """Minimum pass rate a new run must reach to be consistent with the baseline.

    Uses the one-sided Wilson lower bound of the baseline rate, so a sample
    that is small or noisy yields a more forgiving threshold.
    """
    interval = wilson_interval(successes, samples, confidence)
    return DerivedThreshold(
        baseline_samples=samples,
        baseline_successes=successes,
        baseline_rate=successes / samples,
        min_pass_rate=wilson_lower_bound(successes, samples, confidence),
        interval=(interval.lower, interval.upper),
        confidence=confidence,
    )


def evaluate(threshold: DerivedThreshold, samples: int, successes: int) -> Verdict:
    interval = wilson_interval(successes, samples, threshold.confidence)
    observed = successes / samples
    return Verdict(
        passed=observed >= threshold.min_pass_rate,
        samples=samples,
        successes=successes,
        observed_rate=observed,
        threshold=threshold.min_pass_rate,
        interval=(interval.lower, interval.upper),
    )
