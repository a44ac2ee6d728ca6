"""Sample-size checks for compliance-anchored pass-rate claims."""

from __future__ import annotations

import enum
import math

from baselinekit.statistics.defaults import COMPLIANCE_ALPHA
from baselinekit.statistics.wilson import z_score

SIZING_NOTE = "sample not sized for compliance verification"


class ThresholdOrigin(str, enum.Enum):
    """Where a pass-rate target came from."""

    UNSPECIFIED = "UNSPECIFIED"
    SLA = "SLA"
    SLO = "SLO"
    POLICY = "POLICY"
    EMPIRICAL = "EMPIRICAL"

    @classmethod
    def parse(cls, raw: str | None) -> "ThresholdOrigin":
        if not raw:
            return cls.UNSPECIFIED
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return cls.UNSPECIFIED


_COMPLIANCE_ORIGINS = {ThresholdOrigin.SLA, ThresholdOrigin.SLO, ThresholdOrigin.POLICY}


def has_compliance_context(
    origin: ThresholdOrigin | str | None, contract_ref: str | None = None
) -> bool:
    """True when the target is externally anchored (SLA/SLO/policy or a contract reference)."""
    if contract_ref and contract_ref.strip():
        return True
    if origin is None:
        return False
    if not isinstance(origin, ThresholdOrigin):
        origin = ThresholdOrigin.parse(origin)
    return origin in _COMPLIANCE_ORIGINS


def perfect_lower_bound(samples: int, alpha: float = COMPLIANCE_ALPHA) -> float:
    """Wilson one-sided lower bound when every sample passed: ``n / (n + z^2)``."""
    z = z_score(1.0 - alpha, sided=1)
    return samples / (samples + z * z)


def is_undersized(samples: int, target: float, alpha: float = COMPLIANCE_ALPHA) -> bool:
    """Whether even a flawless run of ``samples`` could not support ``target``.

    Returns False for non-positive sample counts and for targets outside
    (0, 1), where the question is meaningless.
    """
    if samples <= 0 or not 0.0 < target < 1.0:
        return False
    return perfect_lower_bound(samples, alpha) < target


def minimum_compliant_samples(target: float, alpha: float = COMPLIANCE_ALPHA) -> int:
    """Smallest n whose perfect-run lower bound reaches ``target``."""
    if not 0.0 < target < 1.0:
        raise ValueError(f"target must be in (0, 1), got: {target}")
    z = z_score(1.0 - alpha, sided=1)
    # n / (n + z^2) >= target  <=>  n >= target * z^2 / (1 - target)
    n = math.ceil(target * z * z / (1.0 - target))
    while perfect_lower_bound(n, alpha) < target:
        n += 1
    return max(n, 1)
