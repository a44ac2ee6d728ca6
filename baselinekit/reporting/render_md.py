"""Render a markdown summary of a baseline evaluation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from baselinekit.expiration import remaining_validity
from baselinekit.reporting.durations import format_calendar, format_execution
from baselinekit.reporting.warnings import render_covariate_short

if TYPE_CHECKING:
    from baselinekit.runners.evaluate import BaselineEvaluation


def _pct(value: float) -> str:
    return f"{value * 100:.2f}%"


def render_evaluation(evaluation: "BaselineEvaluation") -> str:
    selection = evaluation.selection
    baseline = selection.selected
    lines = [
        "# Baseline Evaluation",
        "",
        f"**Use case:** `{evaluation.use_case_id}`",
        f"**Footprint:** `{evaluation.footprint or '(none)'}`",
        f"**Candidates:** {selection.candidate_count}",
        "",
    ]

    if baseline is None:
        lines.append("_No baseline selected._")
        return "\n".join(lines)

    record = baseline.record
    lines.extend(
        [
            "## Selected Baseline",
            "",
            f"- File: `{baseline.filename}`",
            f"- Generated: {baseline.generated_at.isoformat()}",
            f"- Samples: {baseline.samples} ({baseline.successes} passed, {_pct(baseline.observed_rate)})",
            f"- Run time: {format_execution(record.cost.total_time_ms)}",
            f"- Ambiguous: {'yes' if selection.ambiguous else 'no'}",
            "",
        ]
    )

    # Covariate conformance table
    if selection.conformance_details:
        lines.append("## Covariates")
        lines.append("")
        lines.append("| Covariate | Baseline | Test | Result |")
        lines.append("|-----------|----------|------|--------|")
        for d in selection.conformance_details:
            lines.append(f"| {d.key} | {d.baseline_value} | {d.test_value} | {d.result.value} |")
        lines.append("")
        short = render_covariate_short(selection.non_conforming)
        if short:
            lines.append(f"_{short}_")
            lines.append("")

    threshold = evaluation.threshold
    if threshold is not None:
        lines.append("## Threshold")
        lines.append("")
        lines.append(f"- Baseline rate: {_pct(threshold.baseline_rate)}")
        lines.append(
            f"- {threshold.confidence * 100:.0f}% interval: "
            f"[{_pct(threshold.interval[0])}, {_pct(threshold.interval[1])}]"
        )
        lines.append(f"- Minimum pass rate: {_pct(threshold.min_pass_rate)}")
        lines.append("")

    verdict = evaluation.verdict
    if verdict is not None:
        outcome = "PASS" if verdict.passed else "FAIL"
        lines.append(f"## Verdict: {outcome}")
        lines.append("")
        lines.append(
            f"Observed {verdict.successes}/{verdict.samples} ({_pct(verdict.observed_rate)}) "
            f"against a threshold of {_pct(verdict.threshold)}."
        )
        lines.append("")

    if evaluation.sizing_note:
        lines.append(f"> Note: {evaluation.sizing_note}")
        lines.append("")

    remaining = remaining_validity(evaluation.expiration)
    if remaining is not None:
        lines.append(f"Baseline validity remaining: {format_calendar(remaining)}")
        lines.append("")

    for warning in evaluation.warnings:
        lines.append(f"### {warning.title}")
        lines.append("")
        lines.append(warning.body)
        lines.append("")

    return "\n".join(lines)
