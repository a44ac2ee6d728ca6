"""Parse raw partition declarations into validated definitions.

Each extractor validates its whole group set at construction time: malformed
entries, duplicated days/regions, and overlapping periods are rejected
immediately with a :class:`CovariateValidationError`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import time
from typing import Any

from baselinekit.covariates.model import (
    MINUTES_PER_DAY,
    WEEKDAY_DAYS,
    WEEKEND_DAYS,
    DayGroupDefinition,
    RegionGroupDefinition,
    TimePeriodDefinition,
    Weekday,
    format_clock,
    sort_days,
)
from baselinekit.covariates.regions import ISO_COUNTRY_CODES
from baselinekit.errors import CovariateValidationError

TIME_PERIOD_PATTERN = re.compile(r"^(\d{2}):(\d{2})/(?:(\d+)h)?(?:(\d+)m)?$")
ACCEPTED_PERIOD_FORMATS = "'HH:MM/Nh', 'HH:MM/Nm' or 'HH:MM/NhMm' (e.g. '08:00/2h', '08:00/30m', '08:00/2h30m')"


def _split_group(entry: Any) -> tuple[Iterable[Any], str]:
    """Accept either a bare list of members or ``{"<members>": [...], "label": ...}``."""
    if isinstance(entry, Mapping):
        members = entry.get("days", entry.get("regions", ()))
        return members or (), str(entry.get("label") or "")
    if isinstance(entry, str):
        return [entry], ""
    return entry, ""


# ---------------------------------------------------------------------------
# Day groups
# ---------------------------------------------------------------------------

def derive_day_group_label(days: Iterable[Weekday]) -> str:
    day_set = frozenset(days)
    if day_set == WEEKEND_DAYS:
        return "WEEKEND"
    if day_set == WEEKDAY_DAYS:
        return "WEEKDAY"
    return "_".join(d.value for d in sort_days(day_set))


def _parse_day(raw: Any) -> Weekday:
    if isinstance(raw, Weekday):
        return raw
    try:
        return Weekday(str(raw).strip().upper())
    except ValueError:
        raise CovariateValidationError(
            f"Invalid day of week: '{raw}'. Expected one of {[d.value for d in Weekday]}"
        ) from None


def extract_day_groups(raw: Iterable[Any] | None) -> list[DayGroupDefinition]:
    if not raw:
        return []

    seen: set[Weekday] = set()
    result: list[DayGroupDefinition] = []
    for entry in raw:
        members, label = _split_group(entry)
        days = frozenset(_parse_day(d) for d in members)
        if not days:
            raise CovariateValidationError("Day group must contain at least one day")
        for day in sort_days(days):
            if day in seen:
                raise CovariateValidationError(
                    f"Day {day.value} appears in more than one day group "
                    "(mutual exclusivity violated)"
                )
            seen.add(day)
        result.append(DayGroupDefinition(days=days, label=label or derive_day_group_label(days)))
    return result


# ---------------------------------------------------------------------------
# Time periods
# ---------------------------------------------------------------------------

def parse_time_period(period: str) -> TimePeriodDefinition:
    text = str(period).strip()
    m = TIME_PERIOD_PATTERN.match(text)
    if not m or (m.group(3) is None and m.group(4) is None):
        raise CovariateValidationError(
            f"Invalid time period format: '{period}'. Expected {ACCEPTED_PERIOD_FORMATS}"
        )

    hours, minutes = int(m.group(1)), int(m.group(2))
    duration_hours = int(m.group(3) or 0)
    duration_minutes = int(m.group(4) or 0)

    if hours > 23:
        raise CovariateValidationError(
            f"Invalid hour in time period '{period}': {hours} (must be 00-23). "
            f"Expected {ACCEPTED_PERIOD_FORMATS}"
        )
    if minutes > 59:
        raise CovariateValidationError(
            f"Invalid minute in time period '{period}': {minutes} (must be 00-59). "
            f"Expected {ACCEPTED_PERIOD_FORMATS}"
        )
    if m.group(3) is not None and m.group(4) is not None and duration_minutes >= 60:
        raise CovariateValidationError(
            f"Invalid minutes component in time period '{period}': {duration_minutes} "
            f"(must be 0-59 when combined with hours). Expected {ACCEPTED_PERIOD_FORMATS}"
        )

    total = duration_hours * 60 + duration_minutes
    if total <= 0:
        raise CovariateValidationError(
            f"Duration must be positive in time period '{period}'. Expected {ACCEPTED_PERIOD_FORMATS}"
        )
    if hours * 60 + minutes + total > MINUTES_PER_DAY:
        raise CovariateValidationError(
            f"Time period '{period}' crosses midnight (start + duration exceeds 24:00). "
            f"Expected {ACCEPTED_PERIOD_FORMATS}"
        )

    return TimePeriodDefinition.of(time(hours, minutes), total)


def extract_time_periods(raw: Iterable[str] | None) -> list[TimePeriodDefinition]:
    if not raw:
        return []

    result = [parse_time_period(p) for p in raw]

    ordered = sorted(result, key=lambda p: p.start_minutes)
    for current, following in zip(ordered, ordered[1:]):
        if current.end_minutes > following.start_minutes:
            raise CovariateValidationError(
                f"Time periods overlap: '{current.label}' "
                f"[{format_clock(current.start_minutes)}, {format_clock(current.end_minutes)}) and "
                f"'{following.label}' "
                f"[{format_clock(following.start_minutes)}, {format_clock(following.end_minutes)})"
            )
    return result


# ---------------------------------------------------------------------------
# Region groups
# ---------------------------------------------------------------------------

def derive_region_group_label(regions: Iterable[str]) -> str:
    return "_".join(sorted(regions))


def extract_region_groups(raw: Iterable[Any] | None) -> list[RegionGroupDefinition]:
    if not raw:
        return []

    seen: set[str] = set()
    result: list[RegionGroupDefinition] = []
    for entry in raw:
        members, label = _split_group(entry)
        regions = frozenset(str(code).strip().upper() for code in members)
        if not regions:
            raise CovariateValidationError("Region group must contain at least one region code")
        for region in sorted(regions):
            if region not in ISO_COUNTRY_CODES:
                raise CovariateValidationError(
                    f"Invalid ISO 3166-1 alpha-2 country code: '{region}'"
                )
            if region in seen:
                raise CovariateValidationError(
                    f"Region '{region}' appears in more than one region group "
                    "(mutual exclusivity violated)"
                )
            seen.add(region)
        result.append(
            RegionGroupDefinition(regions=regions, label=label or derive_region_group_label(regions))
        )
    return result
