"""Resolve declared covariates to concrete values for the current context."""

from __future__ import annotations

import abc
import os
from collections.abc import Callable, Mapping
from datetime import datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tzlocal import get_localzone_name

from baselinekit.covariates.declaration import (
    DAY_OF_WEEK,
    REGION,
    TIME_OF_DAY,
    TIMEZONE,
    CovariateDeclaration,
)
from baselinekit.covariates.model import (
    MINUTES_PER_DAY,
    NOT_SET,
    CovariateProfile,
    DayGroupDefinition,
    RegionGroupDefinition,
    StringValue,
    TimePeriodDefinition,
    TimeWindowValue,
    Weekday,
    format_period,
)
from baselinekit.covariates.partitions import derive_day_group_label
from baselinekit.logging import get_logger

log = get_logger(__name__)

PROPERTY_PREFIX = "baselinekit."
ENV_PREFIX = "BASELINEKIT_"


class ResolutionContext:
    """Everything a resolver may consult: the clock, the zone, and three lookup layers.

    ``properties`` are explicit overrides (highest priority), ``environ`` is the
    process environment, ``environment`` an ambient map supplied by the host.
    """

    def __init__(
        self,
        now: datetime | None = None,
        timezone: str | None = None,
        properties: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
        environment: Mapping[str, str] | None = None,
    ) -> None:
        self.now = now or datetime.now(dt_timezone.utc)
        self.timezone = timezone or _system_timezone()
        self.properties = dict(properties or {})
        self.environ = os.environ if environ is None else environ
        self.environment = dict(environment or {})

    def local_now(self) -> datetime:
        tz = ZoneInfo(self.timezone)
        if self.now.tzinfo is None:
            return self.now.replace(tzinfo=tz)
        return self.now.astimezone(tz)

    def get_property(self, key: str) -> str | None:
        return self.properties.get(key)

    def get_env(self, key: str) -> str | None:
        return self.environ.get(key)

    def get_ambient(self, key: str) -> str | None:
        return self.environment.get(key)

    def lookup(self, property_key: str, env_key: str, ambient_key: str) -> str | None:
        """First non-empty value from properties, then environment variables, then the ambient map."""
        for value in (
            self.get_property(property_key),
            self.get_env(env_key),
            self.get_ambient(ambient_key),
        ):
            if value is not None and value != "":
                return value
        return None


def _system_timezone() -> str:
    """IANA name of the host zone; UTC when it cannot be determined or is not an IANA id."""
    try:
        name = get_localzone_name()
    except ZoneInfoNotFoundError as exc:
        log.warning("Could not determine the system timezone, using UTC: %s", exc)
        return "UTC"
    if not name:
        return "UTC"
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("System timezone %r is not an IANA zone id, using UTC", name)
        return "UTC"
    return name


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------

class CovariateResolver(abc.ABC):
    """Turns a resolution context into one covariate value."""

    @abc.abstractmethod
    def resolve(self, context: ResolutionContext) -> StringValue | TimeWindowValue:
        ...


class DayOfWeekResolver(CovariateResolver):
    def __init__(self, groups: list[DayGroupDefinition] | tuple[DayGroupDefinition, ...]) -> None:
        self.groups = list(groups)
        self.remainder_label = self.compute_remainder_label(self.groups)

    @staticmethod
    def compute_remainder_label(groups: list[DayGroupDefinition]) -> str:
        declared: set[Weekday] = set()
        for group in groups:
            declared |= group.days
        complement = set(Weekday) - declared
        if not complement:
            return ""
        return derive_day_group_label(complement)

    def resolve(self, context: ResolutionContext) -> StringValue:
        today = Weekday.from_index(context.local_now().weekday())
        for group in self.groups:
            if group.contains(today):
                return StringValue(value=group.label)
        return StringValue(value=self.remainder_label)


class TimeOfDayResolver(CovariateResolver):
    def __init__(
        self, periods: list[TimePeriodDefinition] | tuple[TimePeriodDefinition, ...]
    ) -> None:
        self.periods = list(periods)
        self.remainder_label = self.compute_remainder_label(self.periods)

    @staticmethod
    def compute_gaps(periods: list[TimePeriodDefinition]) -> list[tuple[int, int]]:
        """Uncovered ``(start_minute, duration_minutes)`` intervals of the day, ascending."""
        gaps: list[tuple[int, int]] = []
        cursor = 0
        for period in sorted(periods, key=lambda p: p.start_minutes):
            if cursor < period.start_minutes:
                gaps.append((cursor, period.start_minutes - cursor))
            cursor = max(cursor, period.end_minutes)
        if cursor < MINUTES_PER_DAY:
            gaps.append((cursor, MINUTES_PER_DAY - cursor))
        return gaps

    @classmethod
    def compute_remainder_label(cls, periods: list[TimePeriodDefinition]) -> str:
        return ", ".join(format_period(start, length) for start, length in cls.compute_gaps(periods))

    def resolve(self, context: ResolutionContext) -> StringValue:
        current = context.local_now().time()
        for period in self.periods:
            if period.contains(current):
                return StringValue(value=period.label)
        return StringValue(value=self.remainder_label)


class RegionResolver(CovariateResolver):
    """Region from ``baselinekit.region``, ``BASELINEKIT_REGION`` or ambient ``region``."""

    PROPERTY_KEY = PROPERTY_PREFIX + "region"
    ENV_KEY = ENV_PREFIX + "REGION"
    AMBIENT_KEY = "region"

    REMAINDER_LABEL = "OTHER"
    UNDEFINED_LABEL = "UNDEFINED"

    def __init__(self, groups: list[RegionGroupDefinition] | tuple[RegionGroupDefinition, ...]) -> None:
        self.groups = list(groups)

    def resolve(self, context: ResolutionContext) -> StringValue:
        raw = context.lookup(self.PROPERTY_KEY, self.ENV_KEY, self.AMBIENT_KEY)
        if raw is None:
            return StringValue(value=self.UNDEFINED_LABEL)
        for group in self.groups:
            if group.contains(raw.strip()):
                return StringValue(value=group.label)
        return StringValue(value=self.REMAINDER_LABEL)


class TimezoneResolver(CovariateResolver):
    def resolve(self, context: ResolutionContext) -> StringValue:
        return StringValue(value=context.timezone)


class CustomCovariateResolver(CovariateResolver):
    """Looks the key up in properties, environment and ambient map; ``not_set`` if absent."""

    def __init__(self, key: str) -> None:
        self.key = key

    def resolve(self, context: ResolutionContext) -> StringValue:
        env_key = ENV_PREFIX + self.key.upper().replace(".", "_").replace("-", "_")
        value = context.lookup(PROPERTY_PREFIX + self.key, env_key, self.key)
        return StringValue(value=NOT_SET if value is None else value)


class CallableResolver(CovariateResolver):
    """Adapts a caller-supplied ``context -> str`` function."""

    def __init__(self, fn: Callable[[ResolutionContext], str | None]) -> None:
        self.fn = fn

    def resolve(self, context: ResolutionContext) -> StringValue:
        value = self.fn(context)
        return StringValue(value=NOT_SET if value is None else str(value))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class CovariateResolverRegistry:
    def __init__(self) -> None:
        self._resolvers: dict[str, CovariateResolver] = {}

    @classmethod
    def for_declaration(cls, declaration: CovariateDeclaration) -> "CovariateResolverRegistry":
        """Standard resolvers configured with the declaration's partitions."""
        registry = cls()
        registry.register(DAY_OF_WEEK, DayOfWeekResolver(declaration.day_groups))
        registry.register(TIME_OF_DAY, TimeOfDayResolver(declaration.time_periods))
        registry.register(REGION, RegionResolver(declaration.region_groups))
        registry.register(TIMEZONE, TimezoneResolver())
        return registry

    def register(
        self,
        key: str,
        resolver: CovariateResolver | Callable[[ResolutionContext], str | None],
    ) -> "CovariateResolverRegistry":
        if not isinstance(resolver, CovariateResolver):
            resolver = CallableResolver(resolver)
        self._resolvers[key] = resolver
        return self

    def update(self, other: "CovariateResolverRegistry") -> "CovariateResolverRegistry":
        self._resolvers.update(other._resolvers)
        return self

    def has(self, key: str) -> bool:
        return key in self._resolvers

    def get(self, key: str) -> CovariateResolver:
        """Registered resolver for ``key``, or the custom lookup fallback."""
        return self._resolvers.get(key) or CustomCovariateResolver(key)


def resolve_profile(
    declaration: CovariateDeclaration,
    context: ResolutionContext,
    registry: CovariateResolverRegistry | None = None,
) -> CovariateProfile:
    """Resolve every declared covariate, in declaration order."""
    if declaration.is_empty:
        return CovariateProfile.empty()

    # Caller registrations override the standard resolvers built from the declaration.
    merged = CovariateResolverRegistry.for_declaration(declaration)
    if registry is not None:
        merged.update(registry)

    values = {key: merged.get(key).resolve(context) for key in declaration.all_keys()}
    log.debug("Resolved covariate profile: %s", {k: v.canonical() for k, v in values.items()})
    return CovariateProfile(values)
