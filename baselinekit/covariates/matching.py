"""Per-key equality semantics for comparing baseline and test covariate values."""

from __future__ import annotations

import enum

from baselinekit.covariates.declaration import REGION
from baselinekit.covariates.model import NOT_SET, StringValue, TimeWindowValue, canonical_of


class MatchResult(str, enum.Enum):
    CONFORMS = "CONFORMS"
    DOES_NOT_CONFORM = "DOES_NOT_CONFORM"

    @property
    def conforms(self) -> bool:
        return self is MatchResult.CONFORMS


class ExactStringMatcher:
    """Canonical-string equality. ``not_set`` on either side never conforms."""

    def __init__(self, case_sensitive: bool = True) -> None:
        self.case_sensitive = case_sensitive

    def match(
        self,
        baseline_value: StringValue | TimeWindowValue,
        test_value: StringValue | TimeWindowValue,
    ) -> MatchResult:
        baseline = canonical_of(baseline_value)
        test = canonical_of(test_value)
        if baseline == NOT_SET or test == NOT_SET:
            return MatchResult.DOES_NOT_CONFORM
        if not self.case_sensitive:
            baseline, test = baseline.casefold(), test.casefold()
        return MatchResult.CONFORMS if baseline == test else MatchResult.DOES_NOT_CONFORM

    def __repr__(self) -> str:
        return f"ExactStringMatcher(case_sensitive={self.case_sensitive})"


DEFAULT_MATCHER = ExactStringMatcher()


class CovariateMatcherRegistry:
    def __init__(self, matchers: dict[str, ExactStringMatcher] | None = None) -> None:
        self._matchers: dict[str, ExactStringMatcher] = dict(matchers or {})

    @classmethod
    def with_defaults(cls) -> "CovariateMatcherRegistry":
        return cls({REGION: ExactStringMatcher(case_sensitive=False)})

    def register(self, key: str, matcher: ExactStringMatcher) -> "CovariateMatcherRegistry":
        self._matchers[key] = matcher
        return self

    def has(self, key: str) -> bool:
        return key in self._matchers

    def get(self, key: str) -> ExactStringMatcher:
        return self._matchers.get(key, DEFAULT_MATCHER)

    def match(
        self,
        key: str,
        baseline_value: StringValue | TimeWindowValue,
        test_value: StringValue | TimeWindowValue,
    ) -> MatchResult:
        return self.get(key).match(baseline_value, test_value)
