"""Baseline validity windows.

A baseline recorded at ``baseline_end`` with ``expires_in_days = N`` is valid
until ``baseline_end + N days``. The remaining fraction of that window decides
how loudly callers are warned.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

IMMINENT_FRACTION = 0.10
SOON_FRACTION = 0.25


class _Status(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def requires_warning(self) -> bool:
        return False

    @property
    def is_expired(self) -> bool:
        return False


class NoExpiration(_Status):
    kind: Literal["no_expiration"] = "no_expiration"


class Valid(_Status):
    kind: Literal["valid"] = "valid"
    remaining: timedelta


class ExpiringSoon(_Status):
    kind: Literal["expiring_soon"] = "expiring_soon"
    remaining: timedelta
    remaining_percent: float

    @property
    def requires_warning(self) -> bool:
        return True


class ExpiringImminently(_Status):
    kind: Literal["expiring_imminently"] = "expiring_imminently"
    remaining: timedelta
    remaining_percent: float

    @property
    def requires_warning(self) -> bool:
        return True


class Expired(_Status):
    kind: Literal["expired"] = "expired"
    expired_ago: timedelta

    @property
    def requires_warning(self) -> bool:
        return True

    @property
    def is_expired(self) -> bool:
        return True


ExpirationStatus = Union[NoExpiration, Valid, ExpiringSoon, ExpiringImminently, Expired]


def remaining_validity(status: ExpirationStatus) -> Optional[timedelta]:
    """Time left in the validity window, or None when there is no window or it has passed."""
    if isinstance(status, (Valid, ExpiringSoon, ExpiringImminently)):
        return status.remaining
    if isinstance(status, (NoExpiration, Expired)):
        return None
    raise TypeError(f"Unknown expiration status: {type(status).__name__}")


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


class ExpirationPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    expires_in_days: int = Field(default=0, ge=0)
    baseline_end: Optional[datetime] = None

    @model_validator(mode="after")
    def _end_required(self) -> "ExpirationPolicy":
        if self.expires_in_days > 0 and self.baseline_end is None:
            raise ValueError("baseline_end must be set when expires_in_days > 0")
        return self

    @classmethod
    def none(cls) -> "ExpirationPolicy":
        return cls()

    @property
    def has_expiration(self) -> bool:
        return self.expires_in_days > 0

    def expiration_time(self) -> Optional[datetime]:
        if not self.has_expiration or self.baseline_end is None:
            return None
        return _aware(self.baseline_end) + timedelta(days=self.expires_in_days)

    def evaluate_at(self, now: datetime | None = None) -> ExpirationStatus:
        expiration = self.expiration_time()
        if expiration is None:
            return NoExpiration()

        now = _aware(now or datetime.now(timezone.utc))
        remaining = expiration - now
        if remaining < timedelta(0):
            return Expired(expired_ago=-remaining)

        fraction = remaining / timedelta(days=self.expires_in_days)
        if fraction <= IMMINENT_FRACTION:
            return ExpiringImminently(remaining=remaining, remaining_percent=fraction)
        if fraction <= SOON_FRACTION:
            return ExpiringSoon(remaining=remaining, remaining_percent=fraction)
        return Valid(remaining=remaining)
