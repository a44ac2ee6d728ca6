"""Covariate declarations: which contextual factors a use case cares about."""

from __future__ import annotations

import enum
import hashlib
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from baselinekit.covariates.model import (
    DayGroupDefinition,
    RegionGroupDefinition,
    TimePeriodDefinition,
)
from baselinekit.covariates.partitions import (
    extract_day_groups,
    extract_region_groups,
    extract_time_periods,
)
from baselinekit.errors import CovariateValidationError


class CovariateCategory(str, enum.Enum):
    TEMPORAL = "TEMPORAL"
    CONFIGURATION = "CONFIGURATION"
    EXTERNAL_DEPENDENCY = "EXTERNAL_DEPENDENCY"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    OPERATIONAL = "OPERATIONAL"
    DATA_STATE = "DATA_STATE"

    @property
    def is_hard_gate(self) -> bool:
        """A mismatch in a CONFIGURATION covariate rules the baseline out."""
        return self is CovariateCategory.CONFIGURATION

    @property
    def report_language(self) -> str:
        return _REPORT_LANGUAGE[self]


_REPORT_LANGUAGE = {
    CovariateCategory.TEMPORAL: "Temporal factors may influence system behavior",
    CovariateCategory.CONFIGURATION: "The system configuration differs from the baseline",
    CovariateCategory.EXTERNAL_DEPENDENCY: "Third-party service behavior may have changed",
    CovariateCategory.INFRASTRUCTURE: "Resource availability and latency characteristics may vary",
    CovariateCategory.OPERATIONAL: "Resource availability and latency characteristics may vary",
    CovariateCategory.DATA_STATE: "Data volume or distribution may affect performance",
}

DAY_OF_WEEK = "day_of_week"
TIME_OF_DAY = "time_of_day"
REGION = "region"
TIMEZONE = "timezone"

STANDARD_CATEGORIES: dict[str, CovariateCategory] = {
    DAY_OF_WEEK: CovariateCategory.TEMPORAL,
    TIME_OF_DAY: CovariateCategory.TEMPORAL,
    REGION: CovariateCategory.OPERATIONAL,
    TIMEZONE: CovariateCategory.OPERATIONAL,
}


class CovariateDeclaration(BaseModel):
    """Declared covariates of a use case.

    Standard keys are active when their partition list is non-empty (or, for
    ``timezone``, when the flag is set). Custom keys keep their declared order.
    """

    model_config = ConfigDict(frozen=True)

    day_groups: tuple[DayGroupDefinition, ...] = ()
    time_periods: tuple[TimePeriodDefinition, ...] = ()
    region_groups: tuple[RegionGroupDefinition, ...] = ()
    timezone_enabled: bool = False
    custom: dict[str, CovariateCategory] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> "CovariateDeclaration":
        return cls()

    def all_keys(self) -> list[str]:
        keys: list[str] = []
        if self.day_groups:
            keys.append(DAY_OF_WEEK)
        if self.time_periods:
            keys.append(TIME_OF_DAY)
        if self.region_groups:
            keys.append(REGION)
        if self.timezone_enabled:
            keys.append(TIMEZONE)
        keys.extend(self.custom)
        return keys

    @property
    def is_empty(self) -> bool:
        return not self.all_keys()

    @property
    def size(self) -> int:
        return len(self.all_keys())

    def category_of(self, key: str) -> CovariateCategory | None:
        if key in STANDARD_CATEGORIES:
            return STANDARD_CATEGORIES[key]
        return self.custom.get(key)

    def compute_declaration_hash(self) -> str:
        """8-hex-char digest of the active key names; empty when nothing is declared.

        Only names contribute, so regrouping days or regions leaves the hash
        unchanged.
        """
        keys = self.all_keys()
        if not keys:
            return ""
        payload = "".join(f"{key}\n" for key in keys)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:8]


def _parse_category(key: str, raw: Any) -> CovariateCategory:
    if isinstance(raw, CovariateCategory):
        return raw
    try:
        return CovariateCategory(str(raw).strip().upper())
    except ValueError:
        raise CovariateValidationError(
            f"Invalid category '{raw}' for covariate '{key}'. "
            f"Expected one of {[c.value for c in CovariateCategory]}"
        ) from None


def extract_declaration(raw: Mapping[str, Any] | None) -> CovariateDeclaration:
    """Build a declaration from a raw mapping.

    Recognised keys: ``day_of_week``, ``time_of_day``, ``region``,
    ``timezone`` (bool) and ``custom`` (either ``{key: category}`` or a list of
    ``{"key": ..., "category": ...}`` entries).
    """
    if not raw:
        return CovariateDeclaration.empty()

    custom_raw = raw.get("custom") or {}
    if isinstance(custom_raw, Mapping):
        pairs = list(custom_raw.items())
    else:
        pairs = []
        for entry in custom_raw:
            if not isinstance(entry, Mapping) or entry.get("key") is None:
                raise CovariateValidationError(
                    f"Invalid custom covariate entry: {entry!r}. "
                    "Expected a mapping with 'key' and optional 'category'"
                )
            pairs.append((entry["key"], entry.get("category", "OPERATIONAL")))

    custom: dict[str, CovariateCategory] = {}
    for key, category in pairs:
        key = str(key).strip()
        if not key:
            raise CovariateValidationError("Custom covariate key must not be blank")
        if key in STANDARD_CATEGORIES:
            raise CovariateValidationError(
                f"Custom covariate '{key}' collides with a standard covariate key"
            )
        if key in custom:
            raise CovariateValidationError(f"Custom covariate '{key}' is declared more than once")
        custom[key] = _parse_category(key, category)

    return CovariateDeclaration(
        day_groups=tuple(extract_day_groups(raw.get(DAY_OF_WEEK))),
        time_periods=tuple(extract_time_periods(raw.get(TIME_OF_DAY))),
        region_groups=tuple(extract_region_groups(raw.get(REGION))),
        timezone_enabled=bool(raw.get(TIMEZONE, False)),
        custom=custom,
    )
