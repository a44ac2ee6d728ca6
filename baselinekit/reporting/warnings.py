"""Warning text for covariate non-conformance, ambiguous selection, and expiry."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pydantic import BaseModel

from baselinekit.baseline.selector import ConformanceDetail
from baselinekit.expiration import (
    ExpirationPolicy,
    ExpirationStatus,
    Expired,
    ExpiringImminently,
    ExpiringSoon,
    NoExpiration,
    Valid,
)
from baselinekit.reporting.durations import format_calendar

NON_CONFORMANCE_TITLE = "COVARIATE NON-CONFORMANCE"
EXPIRED_TITLE = "BASELINE EXPIRED"
IMMINENT_TITLE = "BASELINE EXPIRING IMMINENTLY"
SOON_TITLE = "BASELINE EXPIRES SOON"

AMBIGUITY_NOTE = "Multiple equally-suitable baselines existed. Selection may be non-deterministic."


class WarningContent(BaseModel):
    title: str = ""
    body: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.title and not self.body


def render_covariate_warning(
    non_conforming: Sequence[ConformanceDetail], ambiguous: bool
) -> WarningContent:
    if not non_conforming and not ambiguous:
        return WarningContent()

    lines: list[str] = []
    if non_conforming:
        lines.append("Statistical inference may be less reliable.")
        lines.append("")
        for detail in non_conforming:
            lines.append(
                f"- {detail.key}: baseline={detail.baseline_value}, test={detail.test_value}"
            )
    if ambiguous:
        if lines:
            lines.append("")
        lines.append(AMBIGUITY_NOTE)
    return WarningContent(title=NON_CONFORMANCE_TITLE, body="\n".join(lines))


def render_covariate_short(non_conforming: Sequence[ConformanceDetail]) -> str:
    if not non_conforming:
        return ""
    return "Non-conforming covariates: " + ", ".join(d.key for d in non_conforming)


def _format_ts(ts: Optional[datetime]) -> str:
    if ts is None:
        return "unknown"
    return ts.strftime("%Y-%m-%d %H:%M %Z").strip()


def render_expiration_warning(
    policy: ExpirationPolicy, status: ExpirationStatus
) -> WarningContent:
    expires_at = _format_ts(policy.expiration_time())
    if isinstance(status, Expired):
        body = "\n".join(
            [
                "The baseline used for statistical inference has expired.",
                "",
                f"  Baseline created:   {_format_ts(policy.baseline_end)}",
                f"  Validity period:    {policy.expires_in_days} days",
                f"  Expiration date:    {expires_at}",
                f"  Expired:            {format_calendar(status.expired_ago)} ago",
                "",
                "Statistical inference is based on potentially stale empirical data.",
                "Consider recording a fresh baseline.",
            ]
        )
        return WarningContent(title=EXPIRED_TITLE, body=body)
    if isinstance(status, ExpiringImminently):
        body = (
            f"Baseline expires in {format_calendar(status.remaining)} (on {expires_at}).\n"
            "Schedule a new measurement to refresh the baseline."
        )
        return WarningContent(title=IMMINENT_TITLE, body=body)
    if isinstance(status, ExpiringSoon):
        body = f"Baseline expires in {format_calendar(status.remaining)} (on {expires_at})."
        return WarningContent(title=SOON_TITLE, body=body)
    if isinstance(status, (NoExpiration, Valid)):
        return WarningContent()
    raise TypeError(f"Unhandled expiration status: {status!r}")
