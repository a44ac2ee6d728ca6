"""Render baselines as YAML or JSON documents carrying a content fingerprint."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from baselinekit.baseline.schema import (
    CURRENT_SCHEMA_VERSION,
    FINGERPRINT_FIELD,
    compute_content_fingerprint,
)
from baselinekit.covariates.model import CovariateProfile
from baselinekit.statistics.wilson import standard_error, wilson_interval

_PLACEHOLDER = "0" * 64


def _iso(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class BaselineWriter:
    def __init__(self, fmt: str = "yaml") -> None:
        if fmt not in ("yaml", "json"):
            raise ValueError(f"Unsupported baseline format: {fmt} (expected yaml or json)")
        self.fmt = fmt

    def build_document(
        self,
        use_case_id: str,
        successes: int,
        failures: int,
        *,
        footprint: str = "",
        profile: CovariateProfile | None = None,
        generated_at: datetime | None = None,
        samples_planned: Optional[int] = None,
        termination_reason: str = "COMPLETED",
        total_time_ms: int = 0,
        total_tokens: int = 0,
        expires_in_days: int = 0,
        baseline_end: datetime | None = None,
        success_criteria: Optional[str] = None,
        failure_distribution: dict[str, int] | None = None,
    ) -> dict[str, Any]:
        """Assemble the document mapping (without its fingerprint)."""
        samples = successes + failures
        generated_at = generated_at or datetime.now(timezone.utc)
        observed = successes / samples if samples else 0.0
        if samples:
            low, high = wilson_interval(successes, samples, 0.95)
            se = standard_error(successes, samples)
        else:
            low, high, se = 0.0, 0.0, 0.0

        doc: dict[str, Any] = {
            "schemaVersion": CURRENT_SCHEMA_VERSION,
            "useCaseId": use_case_id,
            "generatedAt": _iso(generated_at),
            "footprint": footprint,
            "covariates": profile.to_mapping() if profile is not None else {},
            "execution": {
                "samplesPlanned": samples_planned if samples_planned is not None else max(samples, 1),
                "samplesExecuted": samples,
                "terminationReason": termination_reason,
            },
            "statistics": {
                "successRate": {
                    "observed": round(observed, 4),
                    "standardError": round(se, 4),
                    "confidenceInterval95": [round(low, 4), round(high, 4)],
                },
                "successes": successes,
                "failures": failures,
            },
            "cost": {
                "totalTimeMs": total_time_ms,
                "totalTokens": total_tokens,
                "avgTimePerSampleMs": total_time_ms // samples if samples else 0,
                "avgTokensPerSample": total_tokens // samples if samples else 0,
            },
        }
        if failure_distribution:
            doc["statistics"]["failureDistribution"] = dict(failure_distribution)
        if expires_in_days:
            doc["expiration"] = {
                "expiresInDays": expires_in_days,
                "baselineEndTime": _iso(baseline_end or generated_at),
            }
        if success_criteria:
            doc["successCriteria"] = success_criteria
        return doc

    def render(self, document: dict[str, Any]) -> str:
        """Serialize ``document`` and stamp it with its content fingerprint."""
        body = {k: v for k, v in document.items() if k != FINGERPRINT_FIELD}
        if self.fmt == "json":
            body[FINGERPRINT_FIELD] = _PLACEHOLDER
            text = json.dumps(body, indent=2) + "\n"
        else:
            header = (
                f"# Empirical baseline for {document.get('useCaseId', '')}\n"
                "# Generated by baselinekit. Do not edit: the content fingerprint will no longer match.\n\n"
            )
            text = header + yaml.safe_dump(body, sort_keys=False, default_flow_style=None)
            text += f"{FINGERPRINT_FIELD}: {_PLACEHOLDER}\n"
        return text.replace(_PLACEHOLDER, compute_content_fingerprint(text), 1)

    def write(self, document: dict[str, Any], path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(document), encoding="utf-8")
        return path
