"""Wilson score intervals over binomial proportions."""

from __future__ import annotations

import math
from typing import NamedTuple

from scipy.stats import norm

from baselinekit.statistics.defaults import DEFAULT_CONFIDENCE


class Interval(NamedTuple):
    lower: float
    upper: float

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper

    def as_list(self) -> list[float]:
        return [self.lower, self.upper]


def z_score(confidence: float = DEFAULT_CONFIDENCE, sided: int = 2) -> float:
    """Critical value of the standard normal for a one- or two-sided interval."""
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"confidence must be in (0, 1), got: {confidence}")
    if sided not in (1, 2):
        raise ValueError(f"sided must be 1 or 2, got: {sided}")
    alpha = 1.0 - confidence
    return float(norm.ppf(1.0 - alpha / sided))


def _check_counts(successes: int, samples: int) -> None:
    if samples <= 0:
        raise ValueError(f"samples must be positive, got: {samples}")
    if successes < 0 or successes > samples:
        raise ValueError(f"successes must be in [0, {samples}], got: {successes}")


def _wilson_terms(successes: int, samples: int, z: float) -> tuple[float, float, float]:
    n = samples
    p = successes / n
    z2 = z * z
    denominator = 1.0 + z2 / n
    centre = p + z2 / (2 * n)
    spread = z * math.sqrt(p * (1 - p) / n + z2 / (4 * n * n))
    return centre / denominator, spread / denominator, denominator


def wilson_interval(
    successes: int, samples: int, confidence: float = DEFAULT_CONFIDENCE
) -> Interval:
    """Two-sided Wilson score interval, clamped to [0, 1]."""
    _check_counts(successes, samples)
    centre, spread, _ = _wilson_terms(successes, samples, z_score(confidence, sided=2))
    return Interval(max(0.0, centre - spread), min(1.0, centre + spread))


def wilson_lower_bound(
    successes: int, samples: int, confidence: float = DEFAULT_CONFIDENCE
) -> float:
    """One-sided Wilson lower bound.

    For a perfect observation (``successes == samples``) this reduces to
    ``n / (n + z^2)``.
    """
    _check_counts(successes, samples)
    centre, spread, _ = _wilson_terms(successes, samples, z_score(confidence, sided=1))
    return max(0.0, centre - spread)


def standard_error(successes: int, samples: int) -> float:
    """Normal-approximation standard error of the observed proportion."""
    _check_counts(successes, samples)
    p = successes / samples
    return math.sqrt(p * (1 - p) / samples)
