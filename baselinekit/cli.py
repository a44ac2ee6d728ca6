"""CLI entrypoint for baselinekit."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from baselinekit.config import settings
from baselinekit.errors import BaselineKitError, NotFoundError
from baselinekit.logging import setup_logging

app = typer.Typer(name="baselinekit", help="Covariate-aware baselines for regression testing non-deterministic services.")
console = Console()


def _parse_pairs(pairs: List[str]) -> dict[str, str]:
    result = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected key=value, got: {pair}")
        result[key.strip()] = value.strip()
    return result


def _fail(exc: BaselineKitError) -> None:
    console.print(f"[red]{type(exc).__name__}:[/] {exc}")
    raise typer.Exit(code=2 if isinstance(exc, NotFoundError) else 1)


@app.command()
def select(
    use_case: str = typer.Option(..., "--use-case", help="Use case identifier"),
    declaration_path: str = typer.Option(..., "--declaration", help="Path to covariate declaration YAML"),
    baseline_dir: str = typer.Option("", "--baseline-dir", help="Baseline directory (default: BASELINE_DIR)"),
    prop: List[str] = typer.Option([], "--prop", help="Covariate override key=value (repeatable)"),
    timezone: str = typer.Option("", help="IANA timezone of the test run (default: system)"),
    samples: int = typer.Option(0, help="Observed sample count of the current run"),
    successes: int = typer.Option(0, help="Observed successes of the current run"),
    spec_id: str = typer.Option("", "--spec", help="Approved specification useCaseId:vN"),
    report: str = typer.Option("", help="Write a markdown summary to this path"),
) -> None:
    """Select the best baseline and evaluate an observed run against it."""
    setup_logging(settings.log_level)
    from baselinekit.baseline.repository import BaselineRepository
    from baselinekit.covariates.declaration import extract_declaration
    from baselinekit.covariates.resolvers import PROPERTY_PREFIX, ResolutionContext
    from baselinekit.reporting.render_md import render_evaluation
    from baselinekit.runners.evaluate import evaluate_against_baseline
    from baselinekit.spec.registry import SpecificationRegistry

    path = Path(declaration_path)
    if not path.exists():
        console.print(f"[red]Declaration not found:[/] {path}")
        raise typer.Exit(code=1)

    try:
        with open(path, "r", encoding="utf-8") as f:
            declaration = extract_declaration(yaml.safe_load(f) or {})
        overrides = {PROPERTY_PREFIX + k: v for k, v in _parse_pairs(prop).items()}
        context = ResolutionContext(timezone=timezone or None, properties=overrides)
        repository = BaselineRepository(baseline_dir or settings.baseline_dir)
        specification = SpecificationRegistry(settings.specs_dir).resolve(spec_id) if spec_id else None
        evaluation = evaluate_against_baseline(
            use_case,
            declaration,
            context,
            repository,
            observed_samples=samples or None,
            observed_successes=successes,
            specification=specification,
        )
    except BaselineKitError as exc:
        _fail(exc)
        return

    selection = evaluation.selection
    console.print(f"[dim]footprint={evaluation.footprint or '(none)'}  candidates={selection.candidate_count}[/]")
    console.print(f"[bold green]Selected:[/] {evaluation.baseline.filename}")

    if selection.conformance_details:
        table = Table(title="Covariate Conformance")
        table.add_column("Covariate", style="cyan")
        table.add_column("Baseline")
        table.add_column("Test")
        table.add_column("Result")
        for d in selection.conformance_details:
            style = "green" if d.conforms else "yellow"
            table.add_row(d.key, d.baseline_value, d.test_value, f"[{style}]{d.result.value}[/]")
        console.print(table)

    if evaluation.threshold is not None:
        console.print(f"  min pass rate: {evaluation.threshold.min_pass_rate:.4f}")
    for warning in evaluation.warnings:
        console.print(f"[yellow]{warning.title}[/]\n{warning.body}")
    if evaluation.sizing_note:
        console.print(f"[yellow]Note:[/] {evaluation.sizing_note}")

    if report:
        Path(report).write_text(render_evaluation(evaluation))
        console.print(f"[green]Report written to {report}[/]")

    if evaluation.verdict is not None:
        if evaluation.verdict.passed:
            console.print(f"[bold green]PASS[/] observed {evaluation.verdict.observed_rate:.4f}")
        else:
            console.print(f"[bold red]FAIL[/] observed {evaluation.verdict.observed_rate:.4f}")
            raise typer.Exit(code=1)


@app.command()
def validate(
    paths: List[str] = typer.Argument(..., help="Baseline documents to validate"),
) -> None:
    """Check baseline documents against the schema and their content fingerprint."""
    setup_logging(settings.log_level)
    from baselinekit.baseline.schema import validate_document

    failed = False
    for p in paths:
        path = Path(p)
        if not path.exists():
            console.print(f"[red]Not found:[/] {path}")
            failed = True
            continue
        result = validate_document(path.read_text(encoding="utf-8"))
        if result.valid:
            console.print(f"[green]OK[/] {path}")
        else:
            failed = True
            console.print(f"[red]INVALID[/] {path}")
            for err in result.errors:
                console.print(f"  - {err}")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def threshold(
    samples: int = typer.Option(..., help="Baseline sample count"),
    successes: int = typer.Option(..., help="Baseline successes"),
    confidence: float = typer.Option(0.0, help="Confidence level (default: CONFIDENCE)"),
) -> None:
    """Derive the minimum pass rate implied by baseline counts."""
    from baselinekit.statistics.threshold import derive_threshold

    try:
        result = derive_threshold(samples, successes, confidence or settings.confidence)
    except ValueError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1)

    table = Table(title="Derived Threshold")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("baseline_rate", f"{result.baseline_rate:.4f}")
    table.add_row("interval", f"[{result.interval[0]:.4f}, {result.interval[1]:.4f}]")
    table.add_row("min_pass_rate", f"{result.min_pass_rate:.4f}")
    table.add_row("confidence", f"{result.confidence:.3f}")
    console.print(table)


@app.command()
def sizing(
    samples: int = typer.Option(..., help="Planned or observed sample count"),
    target: float = typer.Option(..., help="Target pass rate, e.g. 0.9999"),
    alpha: float = typer.Option(0.0, help="One-sided significance (default: COMPLIANCE_ALPHA)"),
) -> None:
    """Check whether a sample can support a compliance pass-rate claim."""
    from baselinekit.statistics.compliance import (
        SIZING_NOTE,
        is_undersized,
        minimum_compliant_samples,
        perfect_lower_bound,
    )

    alpha = alpha or settings.compliance_alpha
    if not 0.0 < target < 1.0:
        console.print(f"[red]target must be in (0, 1), got: {target}[/]")
        raise typer.Exit(code=1)

    console.print(f"  lower bound at 100%: {perfect_lower_bound(max(samples, 0), alpha):.6f}")
    console.print(f"  minimum samples:     {minimum_compliant_samples(target, alpha)}")
    if is_undersized(samples, target, alpha):
        console.print(f"[yellow]{SIZING_NOTE}[/]")
        raise typer.Exit(code=1)
    console.print("[green]Sample size supports the target.[/]")


@app.command()
def expiry(
    days: int = typer.Option(..., help="Validity period in days (0 = never expires)"),
    end: str = typer.Option("", help="Baseline end time, ISO-8601"),
    now: str = typer.Option("", help="Evaluation instant, ISO-8601 (default: now)"),
) -> None:
    """Classify a baseline's remaining validity."""
    from pydantic import ValidationError

    from baselinekit.expiration import ExpirationPolicy, remaining_validity
    from baselinekit.reporting.durations import format_calendar
    from baselinekit.reporting.warnings import render_expiration_warning

    try:
        policy = ExpirationPolicy(
            expires_in_days=days,
            baseline_end=datetime.fromisoformat(end) if end else None,
        )
        at: Optional[datetime] = datetime.fromisoformat(now) if now else None
    except (ValidationError, ValueError) as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1)

    status = policy.evaluate_at(at)
    console.print(f"status: [bold]{status.kind}[/]")
    remaining = remaining_validity(status)
    if remaining is not None:
        console.print(f"remaining: {format_calendar(remaining)}")
    if status.requires_warning:
        warning = render_expiration_warning(policy, status)
        console.print(f"[yellow]{warning.title}[/]\n{warning.body}")
    if status.is_expired:
        raise typer.Exit(code=1)


@app.command()
def spec(
    spec_id: str = typer.Argument(..., help="Specification id, useCaseId:vN"),
    specs_dir: str = typer.Option("", "--specs-dir", help="Specification root (default: SPECS_DIR)"),
) -> None:
    """Resolve and show an approved execution specification."""
    setup_logging(settings.log_level)
    from baselinekit.spec.registry import SpecificationRegistry

    registry = SpecificationRegistry(specs_dir or settings.specs_dir)
    try:
        resolved = registry.resolve(spec_id)
    except BaselineKitError as exc:
        _fail(exc)
        return

    table = Table(title=f"Specification {resolved.spec_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("useCaseId", resolved.use_case_id)
    table.add_row("version", str(resolved.version))
    table.add_row("approvedBy", resolved.approved_by or "")
    table.add_row("approvedAt", resolved.approved_at.isoformat() if resolved.approved_at else "")
    table.add_row("minPassRate", f"{resolved.min_pass_rate:.4f}")
    table.add_row("thresholdOrigin", resolved.requirements.threshold_origin.value)
    if resolved.requirements.success_criteria:
        table.add_row("successCriteria", resolved.requirements.success_criteria)
    console.print(table)


if __name__ == "__main__":
    app()
