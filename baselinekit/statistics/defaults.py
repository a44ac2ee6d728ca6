"""Statistical defaults.

Confidence levels are defined once; every alpha is derived from its
confidence so reporting and gating can never drift apart.
"""

from __future__ import annotations

DEFAULT_CONFIDENCE = 0.95
DEFAULT_ALPHA = 1.0 - DEFAULT_CONFIDENCE

# One-sided confidence used when checking whether a sample can support an
# SLA/SLO/policy pass-rate claim.
COMPLIANCE_CONFIDENCE = 0.999
COMPLIANCE_ALPHA = 1.0 - COMPLIANCE_CONFIDENCE
