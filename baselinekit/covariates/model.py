"""Core covariate data models: partition definitions, values, and profiles."""

from __future__ import annotations

import enum
import hashlib
from collections.abc import Iterator, Mapping
from datetime import time
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MINUTES_PER_DAY = 24 * 60


# ---------------------------------------------------------------------------
# Partition definitions
# ---------------------------------------------------------------------------

class Weekday(str, enum.Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def index(self) -> int:
        """Monday-first ordinal, matching ``datetime.weekday()``."""
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        return _WEEKDAY_ORDER[index]


_WEEKDAY_ORDER = list(Weekday)

WEEKEND_DAYS = frozenset({Weekday.SATURDAY, Weekday.SUNDAY})
WEEKDAY_DAYS = frozenset(
    {Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY}
)


def sort_days(days: frozenset[Weekday] | set[Weekday]) -> list[Weekday]:
    return sorted(days, key=lambda d: d.index)


class DayGroupDefinition(BaseModel):
    """Days that are treated as one statistically equivalent partition."""

    model_config = ConfigDict(frozen=True)

    days: frozenset[Weekday]
    label: str

    @field_validator("days")
    @classmethod
    def _non_empty(cls, v: frozenset[Weekday]) -> frozenset[Weekday]:
        if not v:
            raise ValueError("days must not be empty")
        return v

    @field_validator("label")
    @classmethod
    def _label_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("label must not be blank")
        return v

    def contains(self, day: Weekday) -> bool:
        return day in self.days


class TimePeriodDefinition(BaseModel):
    """A half-open time-of-day interval ``[start, start + duration)``.

    Periods never cross midnight: ``start + duration <= 24:00``.
    """

    model_config = ConfigDict(frozen=True)

    start: time
    duration_minutes: int
    label: str

    @model_validator(mode="after")
    def _check_bounds(self) -> "TimePeriodDefinition":
        if self.duration_minutes <= 0:
            raise ValueError(f"duration must be positive, got: {self.duration_minutes} minutes")
        if self.start_minutes + self.duration_minutes > MINUTES_PER_DAY:
            raise ValueError(
                f"Period must not cross midnight: {format_clock(self.start_minutes)} + "
                f"{format_duration(self.duration_minutes)} exceeds 24:00"
            )
        if not self.label.strip():
            raise ValueError("label must not be blank")
        return self

    @classmethod
    def of(cls, start: time, duration_minutes: int) -> "TimePeriodDefinition":
        """Build a period labelled with its canonical ``HH:MM/<duration>`` form."""
        start_minutes = start.hour * 60 + start.minute
        return cls(
            start=start,
            duration_minutes=duration_minutes,
            label=format_period(start_minutes, duration_minutes),
        )

    @property
    def start_minutes(self) -> int:
        return self.start.hour * 60 + self.start.minute

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes

    def contains(self, t: time) -> bool:
        minute_of_day = t.hour * 60 + t.minute
        return self.start_minutes <= minute_of_day < self.end_minutes


class RegionGroupDefinition(BaseModel):
    """ISO 3166-1 alpha-2 codes treated as one partition. Codes are stored upper-case."""

    model_config = ConfigDict(frozen=True)

    regions: frozenset[str]
    label: str

    @field_validator("regions")
    @classmethod
    def _normalize(cls, v: frozenset[str]) -> frozenset[str]:
        if not v:
            raise ValueError("regions must not be empty")
        return frozenset(code.upper() for code in v)

    @field_validator("label")
    @classmethod
    def _label_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("label must not be blank")
        return v

    def contains(self, region_code: str) -> bool:
        return region_code.upper() in self.regions


# ---------------------------------------------------------------------------
# Canonical time notation
# ---------------------------------------------------------------------------

def format_clock(minute_of_day: int) -> str:
    if minute_of_day >= MINUTES_PER_DAY:
        minute_of_day = 0
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


def format_duration(minutes: int) -> str:
    hours, rest = divmod(minutes, 60)
    if hours and rest:
        return f"{hours}h{rest}m"
    if hours:
        return f"{hours}h"
    return f"{rest}m"


def format_period(start_minutes: int, duration_minutes: int) -> str:
    """``08:00/2h``, ``08:00/30m``, ``08:00/2h30m``."""
    return f"{format_clock(start_minutes)}/{format_duration(duration_minutes)}"


# ---------------------------------------------------------------------------
# Covariate values
# ---------------------------------------------------------------------------

class StringValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["string"] = "string"
    value: str

    def canonical(self) -> str:
        return self.value


class TimeWindowValue(BaseModel):
    """Window during which an experiment ran, e.g. ``14:30-14:45 Europe/London``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["time_window"] = "time_window"
    start: time
    end: time
    timezone: str

    def canonical(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M} {self.timezone}"

    @classmethod
    def parse(cls, canonical: str) -> "TimeWindowValue":
        time_part, sep, zone = canonical.rpartition(" ")
        start, hyphen, end = time_part.partition("-")
        if not sep or not hyphen:
            raise ValueError(f"Invalid time window format: {canonical}")
        return cls(start=time.fromisoformat(start), end=time.fromisoformat(end), timezone=zone)


CovariateValue = Annotated[Union[StringValue, TimeWindowValue], Field(discriminator="kind")]


def canonical_of(value: StringValue | TimeWindowValue) -> str:
    if isinstance(value, StringValue):
        return value.value
    if isinstance(value, TimeWindowValue):
        return value.canonical()
    raise TypeError(f"Unsupported covariate value: {value!r}")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

NOT_SET = "not_set"


class CovariateProfile(Mapping[str, Union[StringValue, TimeWindowValue]]):
    """Resolved covariate values in declaration order. Immutable."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, StringValue | TimeWindowValue] | None = None) -> None:
        self._values: dict[str, StringValue | TimeWindowValue] = dict(values or {})

    @classmethod
    def empty(cls) -> "CovariateProfile":
        return cls()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> "CovariateProfile":
        """Build a profile from stored key/value pairs (values become StringValue)."""
        return cls({str(k): StringValue(value="" if v is None else str(v)) for k, v in raw.items()})

    def __getitem__(self, key: str) -> StringValue | TimeWindowValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CovariateProfile({self.to_mapping()!r})"

    def __hash__(self) -> int:
        return hash(tuple(self.to_mapping().items()))

    @property
    def is_empty(self) -> bool:
        return not self._values

    def ordered_keys(self) -> list[str]:
        return list(self._values)

    def to_mapping(self) -> dict[str, str]:
        return {k: canonical_of(v) for k, v in self._values.items()}

    def value_hashes(self) -> list[str]:
        """One SHA-256 hex digest per ``key=value`` pair, in declaration order."""
        return [
            hashlib.sha256(f"{k}={v}".encode("utf-8")).hexdigest()
            for k, v in self.to_mapping().items()
        ]
