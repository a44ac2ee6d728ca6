"""End-to-end tests for evaluating a run against stored baselines."""

from datetime import datetime, timedelta, timezone

import pytest

from baselinekit.baseline.repository import BaselineRepository
from baselinekit.baseline.writer import BaselineWriter
from baselinekit.covariates.declaration import extract_declaration
from baselinekit.covariates.model import CovariateProfile
from baselinekit.covariates.resolvers import ResolutionContext
from baselinekit.errors import NoCompatibleBaselineError
from baselinekit.expiration import Expired, NoExpiration
from baselinekit.reporting.render_md import render_evaluation
from baselinekit.reporting.warnings import AMBIGUITY_NOTE
from baselinekit.runners.evaluate import evaluate_against_baseline, select_baseline
from baselinekit.spec.model import ExecutionSpecification
from baselinekit.statistics.compliance import SIZING_NOTE, ThresholdOrigin
from baselinekit.statistics.wilson import wilson_lower_bound

USE_CASE = "shopping.search"
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
SATURDAY_MORNING = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)

DECLARATION = extract_declaration(
    {
        "day_of_week": [["SATURDAY", "SUNDAY"]],
        "region": [["FR", "DE"], ["US"]],
        "custom": {"llm_model": "CONFIGURATION"},
    }
)
FOOTPRINT = DECLARATION.compute_declaration_hash()

MATCHING = {"day_of_week": "WEEKEND", "region": "DE_FR", "llm_model": "sonnet"}


def _make_context(region="de", model="sonnet") -> ResolutionContext:
    return ResolutionContext(
        now=SATURDAY_MORNING,
        timezone="UTC",
        properties={"baselinekit.region": region, "baselinekit.llm_model": model},
        environ={},
    )


def _store(root, filename, covariates, successes=95, failures=5, footprint=FOOTPRINT, **kwargs):
    writer = BaselineWriter()
    doc = writer.build_document(
        USE_CASE,
        successes,
        failures,
        footprint=footprint,
        profile=CovariateProfile.from_mapping(covariates),
        generated_at=kwargs.pop("generated_at", T0),
        total_time_ms=60_000,
        **kwargs,
    )
    writer.write(doc, root / filename)


def _make_spec(min_pass_rate: float, origin: str = "SLA") -> ExecutionSpecification:
    return ExecutionSpecification.model_validate(
        {
            "specId": f"{USE_CASE}:v1",
            "useCaseId": USE_CASE,
            "approvedAt": "2026-02-01T10:00:00Z",
            "approvedBy": "qa-lead",
            "requirements": {"minPassRate": min_pass_rate, "thresholdOrigin": origin},
        }
    )


def test_selects_conforming_baseline_and_judges_run(tmp_path):
    _store(tmp_path, f"{USE_CASE}-match.yaml", MATCHING)
    _store(tmp_path, f"{USE_CASE}-weekday.yaml", {**MATCHING, "day_of_week": "WEEKDAY"}, generated_at=T0 + timedelta(days=1))

    evaluation = evaluate_against_baseline(
        USE_CASE,
        DECLARATION,
        _make_context(),
        BaselineRepository(tmp_path),
        observed_samples=50,
        observed_successes=46,
        now=T0,
    )

    assert evaluation.baseline.filename == f"{USE_CASE}-match.yaml"
    assert evaluation.footprint == FOOTPRINT
    assert evaluation.test_profile.to_mapping() == MATCHING
    assert not evaluation.selection.ambiguous
    assert evaluation.warnings == []
    assert evaluation.threshold.min_pass_rate == pytest.approx(wilson_lower_bound(95, 100, 0.95))
    assert evaluation.passed is True
    assert evaluation.sizing_note is None
    assert isinstance(evaluation.expiration, NoExpiration)


def test_failing_run(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING)
    evaluation = evaluate_against_baseline(
        USE_CASE,
        DECLARATION,
        _make_context(),
        BaselineRepository(tmp_path),
        observed_samples=50,
        observed_successes=30,
        now=T0,
    )
    assert evaluation.passed is False
    assert evaluation.verdict.observed_rate == pytest.approx(0.6)


def test_no_observed_counts_gives_threshold_only(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING)
    evaluation = evaluate_against_baseline(
        USE_CASE, DECLARATION, _make_context(), BaselineRepository(tmp_path), now=T0
    )
    assert evaluation.threshold is not None
    assert evaluation.verdict is None
    assert evaluation.passed is None


def test_soft_mismatch_selected_with_warning(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", {**MATCHING, "region": "US"})
    evaluation = evaluate_against_baseline(
        USE_CASE, DECLARATION, _make_context(), BaselineRepository(tmp_path), now=T0
    )
    assert evaluation.baseline is not None
    assert [d.key for d in evaluation.selection.non_conforming] == ["region"]
    assert evaluation.warnings[0].title == "COVARIATE NON-CONFORMANCE"
    assert "region: baseline=US, test=DE_FR" in evaluation.warnings[0].body


def test_configuration_mismatch_excludes_baseline(tmp_path):
    _store(tmp_path, f"{USE_CASE}-sonnet.yaml", {**MATCHING, "region": "US"})
    _store(tmp_path, f"{USE_CASE}-haiku.yaml", {**MATCHING, "llm_model": "haiku"}, generated_at=T0 + timedelta(days=2))
    evaluation = evaluate_against_baseline(
        USE_CASE, DECLARATION, _make_context(), BaselineRepository(tmp_path), now=T0
    )
    assert evaluation.baseline.filename == f"{USE_CASE}-sonnet.yaml"
    assert evaluation.selection.candidate_count == 1


def test_configuration_mismatch_everywhere_is_an_error(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", {**MATCHING, "llm_model": "haiku"})
    with pytest.raises(NoCompatibleBaselineError) as exc_info:
        evaluate_against_baseline(
            USE_CASE, DECLARATION, _make_context(), BaselineRepository(tmp_path), now=T0
        )
    assert "llm_model=sonnet" in str(exc_info.value)
    assert "Configuration covariates differ" in exc_info.value.reason


def test_footprint_mismatch_is_an_error(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING, footprint="deadbeef" * 8)
    with pytest.raises(NoCompatibleBaselineError) as exc_info:
        evaluate_against_baseline(
            USE_CASE, DECLARATION, _make_context(), BaselineRepository(tmp_path), now=T0
        )
    assert exc_info.value.available_footprints == ["deadbeef" * 8]


def test_ambiguous_selection_warns(tmp_path):
    _store(tmp_path, f"{USE_CASE}-a.yaml", MATCHING)
    _store(tmp_path, f"{USE_CASE}-b.yaml", MATCHING, successes=90, failures=10)
    evaluation = evaluate_against_baseline(
        USE_CASE, DECLARATION, _make_context(), BaselineRepository(tmp_path), now=T0
    )
    assert evaluation.selection.ambiguous
    assert evaluation.baseline.filename == f"{USE_CASE}-a.yaml"
    assert AMBIGUITY_NOTE in evaluation.warnings[0].body


def test_specification_overrides_threshold_and_flags_sizing(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING)
    evaluation = evaluate_against_baseline(
        USE_CASE,
        DECLARATION,
        _make_context(),
        BaselineRepository(tmp_path),
        observed_samples=100,
        observed_successes=100,
        specification=_make_spec(0.9999),
        now=T0,
    )
    assert evaluation.threshold.min_pass_rate == 0.9999
    assert evaluation.passed is True
    assert evaluation.sizing_note == SIZING_NOTE


def test_empirical_target_never_flags_sizing(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING)
    evaluation = evaluate_against_baseline(
        USE_CASE,
        DECLARATION,
        _make_context(),
        BaselineRepository(tmp_path),
        observed_samples=100,
        observed_successes=100,
        specification=_make_spec(0.9999, origin="EMPIRICAL"),
        now=T0,
    )
    assert evaluation.sizing_note is None


def test_unspecified_origin_defers_to_specification(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING)

    def run(origin):
        return evaluate_against_baseline(
            USE_CASE,
            DECLARATION,
            _make_context(),
            BaselineRepository(tmp_path),
            observed_samples=100,
            observed_successes=100,
            specification=_make_spec(0.9999, origin="SLA"),
            threshold_origin=origin,
            now=T0,
        )

    assert run(ThresholdOrigin.UNSPECIFIED).sizing_note == SIZING_NOTE
    assert run("unspecified").sizing_note == SIZING_NOTE
    assert run(ThresholdOrigin.EMPIRICAL).sizing_note is None


def test_contract_reference_alone_triggers_sizing_check(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING, successes=100, failures=0)
    evaluation = evaluate_against_baseline(
        USE_CASE,
        DECLARATION,
        _make_context(),
        BaselineRepository(tmp_path),
        contract_ref="MSA-2026",
        now=T0,
    )
    # A flawless 100-sample baseline cannot support its own 95% lower bound at 99.9%.
    assert evaluation.sizing_note == SIZING_NOTE


def test_expired_baseline_warns(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING, expires_in_days=30)
    evaluation = evaluate_against_baseline(
        USE_CASE,
        DECLARATION,
        _make_context(),
        BaselineRepository(tmp_path),
        now=T0 + timedelta(days=31),
    )
    assert isinstance(evaluation.expiration, Expired)
    assert [w.title for w in evaluation.warnings] == ["BASELINE EXPIRED"]


def test_select_baseline_without_repository(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", MATCHING)
    candidates = BaselineRepository(tmp_path).find_candidates(USE_CASE, FOOTPRINT)
    result = select_baseline(DECLARATION, _make_context(region="us"), candidates)
    assert result.has_selection
    assert [d.key for d in result.non_conforming] == ["region"]


def test_markdown_summary(tmp_path):
    _store(tmp_path, f"{USE_CASE}.yaml", {**MATCHING, "day_of_week": "WEEKDAY"})
    evaluation = evaluate_against_baseline(
        USE_CASE,
        DECLARATION,
        _make_context(),
        BaselineRepository(tmp_path),
        observed_samples=50,
        observed_successes=48,
        now=T0,
    )
    md = render_evaluation(evaluation)
    assert "# Baseline Evaluation" in md
    assert f"`{USE_CASE}.yaml`" in md
    assert "| day_of_week | WEEKDAY | WEEKEND | DOES_NOT_CONFORM |" in md
    assert "_Non-conforming covariates: day_of_week_" in md
    assert "## Verdict: PASS" in md
    assert "Run time: 1m 0s" in md
    assert "### COVARIATE NON-CONFORMANCE" in md
