"""Evaluate a test run against the best-matching stored baseline.

The host supplies the declaration, the resolution context, and (optionally)
the observed counts of the current run; everything else is derived here:

1. declaration hash -> footprint-compatible candidates
2. resolved test profile -> ranked selection
3. CONFIGURATION covariates must conform, otherwise no baseline is usable
4. threshold from the selected baseline's counts, verdict for the observed run
5. compliance sizing note and expiration status
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from baselinekit.baseline.repository import BaselineCandidate, BaselineRepository
from baselinekit.baseline.selector import BaselineSelector, SelectionResult
from baselinekit.config import settings
from baselinekit.covariates.declaration import CovariateDeclaration
from baselinekit.covariates.matching import CovariateMatcherRegistry
from baselinekit.covariates.model import CovariateProfile
from baselinekit.covariates.resolvers import (
    CovariateResolverRegistry,
    ResolutionContext,
    resolve_profile,
)
from baselinekit.errors import NoCompatibleBaselineError
from baselinekit.expiration import ExpirationPolicy, ExpirationStatus, NoExpiration
from baselinekit.logging import get_logger
from baselinekit.reporting.warnings import (
    WarningContent,
    render_covariate_warning,
    render_expiration_warning,
)
from baselinekit.spec.model import ExecutionSpecification
from baselinekit.statistics.compliance import (
    SIZING_NOTE,
    ThresholdOrigin,
    has_compliance_context,
    is_undersized,
)
from baselinekit.statistics.threshold import DerivedThreshold, Verdict, derive_threshold, evaluate

log = get_logger(__name__)


class BaselineEvaluation(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    use_case_id: str
    footprint: str
    test_profile: CovariateProfile
    selection: SelectionResult
    threshold: Optional[DerivedThreshold] = None
    verdict: Optional[Verdict] = None
    sizing_note: Optional[str] = None
    expiration: ExpirationStatus = NoExpiration()
    warnings: list[WarningContent] = []

    @property
    def baseline(self) -> Optional[BaselineCandidate]:
        return self.selection.selected

    @property
    def passed(self) -> Optional[bool]:
        return self.verdict.passed if self.verdict is not None else None


def select_baseline(
    declaration: CovariateDeclaration,
    context: ResolutionContext,
    candidates: Sequence[BaselineCandidate],
    matchers: CovariateMatcherRegistry | None = None,
    resolvers: CovariateResolverRegistry | None = None,
) -> SelectionResult:
    """Resolve the test's covariate profile and select among ``candidates``."""
    profile = resolve_profile(declaration, context, resolvers)
    return BaselineSelector(matchers).select(candidates, profile, declaration)


def _hard_gate_keys(declaration: CovariateDeclaration) -> list[str]:
    keys = []
    for key in declaration.all_keys():
        category = declaration.category_of(key)
        if category is not None and category.is_hard_gate:
            keys.append(key)
    return keys


def _passes_hard_gates(
    candidate: BaselineCandidate,
    profile: CovariateProfile,
    keys: list[str],
    matchers: CovariateMatcherRegistry,
) -> bool:
    for key in keys:
        if key not in candidate.profile or key not in profile:
            continue
        if not matchers.match(key, candidate.profile[key], profile[key]).conforms:
            return False
    return True


def _expiration_policy(candidate: BaselineCandidate, default_days: int) -> ExpirationPolicy:
    stored = candidate.record.expiration
    days = stored.expires_in_days if stored is not None else default_days
    if days <= 0:
        return ExpirationPolicy.none()
    return ExpirationPolicy(expires_in_days=days, baseline_end=candidate.record.baseline_end)


def evaluate_against_baseline(
    use_case_id: str,
    declaration: CovariateDeclaration,
    context: ResolutionContext,
    repository: BaselineRepository,
    *,
    observed_samples: Optional[int] = None,
    observed_successes: Optional[int] = None,
    specification: Optional[ExecutionSpecification] = None,
    threshold_origin: ThresholdOrigin | str | None = None,
    contract_ref: Optional[str] = None,
    confidence: Optional[float] = None,
    matchers: CovariateMatcherRegistry | None = None,
    resolvers: CovariateResolverRegistry | None = None,
    now: Optional[datetime] = None,
) -> BaselineEvaluation:
    """Run the full selection and threshold pipeline for one test evaluation.

    Raises :class:`NoCompatibleBaselineError` when no stored baseline shares
    the declaration's footprint or every candidate differs on a
    CONFIGURATION covariate.
    """
    matchers = matchers or CovariateMatcherRegistry.with_defaults()
    confidence = confidence if confidence is not None else settings.confidence

    footprint = declaration.compute_declaration_hash()
    candidates = repository.require_candidates(use_case_id, footprint)
    profile = resolve_profile(declaration, context, resolvers)

    gate_keys = _hard_gate_keys(declaration)
    if gate_keys:
        compatible = [c for c in candidates if _passes_hard_gates(c, profile, gate_keys, matchers)]
        if not compatible:
            expected = ", ".join(f"{k}={profile[k].canonical()}" for k in gate_keys if k in profile)
            log.warning("No baseline for %s matches configuration %s", use_case_id, expected)
            raise NoCompatibleBaselineError(
                use_case_id,
                footprint,
                [c.footprint for c in candidates],
                reason=(
                    f"Configuration covariates differ from every stored baseline ({expected}). "
                    "A configuration change needs a new baseline."
                ),
            )
        candidates = compatible

    selection = BaselineSelector(matchers).select(candidates, profile, declaration)
    selected = selection.selected
    if selected is None:
        raise NoCompatibleBaselineError(use_case_id, footprint, [])

    warnings: list[WarningContent] = []
    covariate_warning = render_covariate_warning(selection.non_conforming, selection.ambiguous)
    if not covariate_warning.is_empty:
        warnings.append(covariate_warning)

    threshold: Optional[DerivedThreshold] = None
    if selected.samples > 0:
        threshold = derive_threshold(selected.samples, selected.successes, confidence)
        if specification is not None:
            threshold = threshold.model_copy(update={"min_pass_rate": specification.min_pass_rate})
    else:
        log.warning("Baseline %s has no executed samples; no threshold derived", selected.filename)

    verdict: Optional[Verdict] = None
    if threshold is not None and observed_samples:
        verdict = evaluate(threshold, observed_samples, observed_successes or 0)

    # An explicit UNSPECIFIED defers to the specification like None does.
    origin = ThresholdOrigin.parse(threshold_origin)
    if specification is not None:
        if origin is ThresholdOrigin.UNSPECIFIED:
            origin = specification.requirements.threshold_origin
        contract_ref = contract_ref or specification.requirements.contract_ref

    sizing_note: Optional[str] = None
    if threshold is not None and has_compliance_context(origin, contract_ref):
        sample_size = observed_samples or selected.samples
        if is_undersized(sample_size, threshold.min_pass_rate, settings.compliance_alpha):
            sizing_note = SIZING_NOTE
            log.info("%s: %d samples, target %.4f", SIZING_NOTE, sample_size, threshold.min_pass_rate)

    policy = _expiration_policy(selected, settings.expires_in_days)
    status = policy.evaluate_at(now)
    if status.requires_warning:
        warnings.append(render_expiration_warning(policy, status))

    return BaselineEvaluation(
        use_case_id=use_case_id,
        footprint=footprint,
        test_profile=profile,
        selection=selection,
        threshold=threshold,
        verdict=verdict,
        sizing_note=sizing_note,
        expiration=status,
        warnings=warnings,
    )
