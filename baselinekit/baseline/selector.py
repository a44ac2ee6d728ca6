"""Choose the best-matching baseline among footprint-compatible candidates."""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from baselinekit.baseline.repository import BaselineCandidate
from baselinekit.covariates.declaration import CovariateDeclaration
from baselinekit.covariates.matching import CovariateMatcherRegistry, MatchResult
from baselinekit.covariates.model import CovariateProfile
from baselinekit.logging import get_logger

log = get_logger(__name__)


class ConformanceDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    baseline_value: str
    test_value: str
    result: MatchResult

    @property
    def conforms(self) -> bool:
        return self.result is MatchResult.CONFORMS


class SelectionResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    selected: Optional[BaselineCandidate] = None
    conformance_details: list[ConformanceDetail] = []
    ambiguous: bool = False
    candidate_count: int = 0

    @classmethod
    def no_match(cls) -> "SelectionResult":
        return cls()

    @property
    def has_selection(self) -> bool:
        return self.selected is not None

    @property
    def non_conforming(self) -> list[ConformanceDetail]:
        return [d for d in self.conformance_details if not d.conforms]

    @property
    def has_non_conformance(self) -> bool:
        return bool(self.non_conforming)

    def hard_gate_violations(self, declaration: CovariateDeclaration) -> list[ConformanceDetail]:
        """Mismatches on covariates whose category rules a baseline out."""
        violations = []
        for detail in self.non_conforming:
            category = declaration.category_of(detail.key)
            if category is not None and category.is_hard_gate:
                violations.append(detail)
        return violations


class _Scored(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    candidate: BaselineCandidate
    score: int
    details: list[ConformanceDetail]


class BaselineSelector:
    def __init__(self, matchers: CovariateMatcherRegistry | None = None) -> None:
        self.matchers = matchers or CovariateMatcherRegistry.with_defaults()

    def _score(
        self,
        candidate: BaselineCandidate,
        test_profile: CovariateProfile,
        keys: list[str],
    ) -> _Scored:
        details: list[ConformanceDetail] = []
        for key in keys:
            if key not in candidate.profile or key not in test_profile:
                continue
            baseline_value = candidate.profile[key]
            test_value = test_profile[key]
            details.append(
                ConformanceDetail(
                    key=key,
                    baseline_value=baseline_value.canonical(),
                    test_value=test_value.canonical(),
                    result=self.matchers.match(key, baseline_value, test_value),
                )
            )
        return _Scored(
            candidate=candidate,
            score=sum(1 for d in details if d.conforms),
            details=details,
        )

    def select(
        self,
        candidates: Sequence[BaselineCandidate],
        test_profile: CovariateProfile,
        declaration: CovariateDeclaration,
    ) -> SelectionResult:
        """Rank by conforming-covariate count, then recency.

        The first ranked candidate is always returned. The result is flagged
        ambiguous when nothing is declared (no covariate can confirm the
        choice) or when the runner-up ties on both score and timestamp.
        """
        if not candidates:
            return SelectionResult.no_match()

        keys = declaration.all_keys()
        scored = [self._score(c, test_profile, keys) for c in candidates]
        # sorted() is stable, so equal entries keep their input order.
        ranked = sorted(scored, key=lambda s: (-s.score, -s.candidate.generated_at.timestamp()))

        best = ranked[0]
        if declaration.is_empty:
            ambiguous = True
        elif len(ranked) > 1:
            runner_up = ranked[1]
            ambiguous = (
                runner_up.score == best.score
                and runner_up.candidate.generated_at == best.candidate.generated_at
            )
        else:
            ambiguous = False

        if ambiguous:
            log.warning(
                "Ambiguous baseline selection among %d candidate(s); using %s",
                len(candidates),
                best.candidate.filename,
            )
        else:
            log.info(
                "Selected baseline %s (score %d of %d)",
                best.candidate.filename,
                best.score,
                len(best.details),
            )

        return SelectionResult(
            selected=best.candidate,
            conformance_details=best.details,
            ambiguous=ambiguous,
            candidate_count=len(candidates),
        )


def select_best(
    candidates: Sequence[BaselineCandidate],
    test_profile: CovariateProfile,
    declaration: CovariateDeclaration,
    matchers: CovariateMatcherRegistry | None = None,
) -> SelectionResult:
    return BaselineSelector(matchers).select(candidates, test_profile, declaration)
