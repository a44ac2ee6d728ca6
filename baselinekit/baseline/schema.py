"""Schema and integrity checks for stored baseline documents.

A document is YAML (JSON is a subset) with these required fields:

- ``schemaVersion``: one of :data:`SUPPORTED_SCHEMA_VERSIONS`
- ``useCaseId``: non-empty string
- ``generatedAt``: ISO-8601 timestamp
- ``covariates``: mapping of string to string (may be empty)
- ``execution.samplesPlanned`` > 0, ``execution.samplesExecuted`` >= 0,
  ``execution.terminationReason`` in :data:`TERMINATION_REASONS`
- ``statistics.successRate.observed`` in [0, 1],
  ``statistics.successRate.standardError`` >= 0,
  ``statistics.successRate.confidenceInterval95`` two numbers,
  ``statistics.successes`` >= 0, ``statistics.failures`` >= 0
- ``cost.totalTimeMs`` >= 0, ``cost.totalTokens`` >= 0
- ``contentFingerprint``: SHA-256 (64 lowercase hex) of the document text
  with the fingerprint line itself removed

Every violation is collected; validation never stops at the first.
"""

from __future__ import annotations

import hashlib
import re
from datetime import date, datetime
from typing import Any

import yaml
from pydantic import BaseModel

from baselinekit.errors import BaselineIntegrityError

CURRENT_SCHEMA_VERSION = "baselinekit-2"
SUPPORTED_SCHEMA_VERSIONS = ("baselinekit-1", "baselinekit-2")

TERMINATION_REASONS = (
    "COMPLETED",
    "TOKEN_BUDGET_EXHAUSTED",
    "TIME_BUDGET_EXHAUSTED",
    "EARLY_TERMINATION",
    "ERROR",
)

FINGERPRINT_FIELD = "contentFingerprint"

_ISO_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}.*$")
_HEX_64 = re.compile(r"^[a-f0-9]{64}$")
# Only the top-level key is excluded: column 0 in YAML, the two-space indent
# BaselineWriter uses for JSON. Nested keys of the same name stay hashed.
_YAML_FINGERPRINT_LINE = re.compile(r'^"?contentFingerprint"?\s*:')
_JSON_FINGERPRINT_LINE = re.compile(r'^ {2}"contentFingerprint"\s*:')


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = []


# ---------------------------------------------------------------------------
# Fingerprint
# ---------------------------------------------------------------------------

def strip_fingerprint(text: str) -> str:
    pattern = _JSON_FINGERPRINT_LINE if text.lstrip().startswith("{") else _YAML_FINGERPRINT_LINE
    return "".join(line for line in text.splitlines(keepends=True) if not pattern.match(line))


def compute_content_fingerprint(text: str) -> str:
    return hashlib.sha256(strip_fingerprint(text).encode("utf-8")).hexdigest()


def verify_fingerprint(text: str, document: dict[str, Any] | None = None) -> list[str]:
    """Violations (empty when intact) from comparing the stored and recomputed fingerprint."""
    if document is None:
        document = _load(text)
        if not isinstance(document, dict):
            return ["Document is not a mapping"]
    stored = document.get(FINGERPRINT_FIELD)
    if not isinstance(stored, str) or not _HEX_64.match(stored):
        # Format problems are reported by validate_document.
        return []
    actual = compute_content_fingerprint(text)
    if stored != actual:
        return [
            f"contentFingerprint mismatch: stored {stored[:12]}..., computed {actual[:12]}... "
            "(document was modified after it was written)"
        ]
    return []


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------

def _load(text: str) -> Any:
    return yaml.safe_load(text)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _section(doc: dict[str, Any], name: str, errors: list[str]) -> dict[str, Any] | None:
    section = doc.get(name)
    if section is None:
        errors.append(f"Missing required section: {name}")
        return None
    if not isinstance(section, dict):
        errors.append(f"Section {name} must be a mapping")
        return None
    return section


def _require(
    section: dict[str, Any], path: str, key: str, errors: list[str]
) -> tuple[bool, Any]:
    if key not in section or section[key] is None:
        errors.append(f"Missing required field: {path}.{key}")
        return False, None
    return True, section[key]


def _check_int(section: dict[str, Any], path: str, key: str, minimum: int, errors: list[str]) -> None:
    present, value = _require(section, path, key, errors)
    if not present:
        return
    if not _is_int(value) or value < minimum:
        kind = "a positive integer" if minimum > 0 else "a non-negative integer"
        errors.append(f"{path}.{key} must be {kind}, got: {value}")


def _validate_header(doc: dict[str, Any], errors: list[str]) -> None:
    version = doc.get("schemaVersion")
    if not version:
        errors.append("Missing required field: schemaVersion")
    elif version not in SUPPORTED_SCHEMA_VERSIONS:
        errors.append(
            f"Unsupported schemaVersion: {version}. Supported: {list(SUPPORTED_SCHEMA_VERSIONS)}"
        )

    use_case_id = doc.get("useCaseId")
    if not use_case_id or not isinstance(use_case_id, str):
        errors.append("Missing required field: useCaseId")

    generated_at = doc.get("generatedAt")
    if generated_at is None or generated_at == "":
        errors.append("Missing required field: generatedAt")
    elif isinstance(generated_at, datetime):
        pass
    elif isinstance(generated_at, date) or not _ISO_TIMESTAMP.match(str(generated_at)):
        errors.append(
            f"Invalid generatedAt format. Expected ISO-8601 timestamp, got: {generated_at}"
        )

    # Required even when nothing is declared; an empty mapping is valid.
    covariates = doc.get("covariates")
    if "covariates" not in doc:
        errors.append("Missing required field: covariates")
    elif not isinstance(covariates, dict):
        errors.append("covariates must be a mapping of string to string")
    else:
        for key, value in covariates.items():
            if not isinstance(key, str) or not isinstance(value, str):
                errors.append(f"covariates.{key} must be a string, got: {value!r}")


def _validate_execution(doc: dict[str, Any], errors: list[str]) -> None:
    section = _section(doc, "execution", errors)
    if section is None:
        return
    _check_int(section, "execution", "samplesPlanned", 1, errors)
    _check_int(section, "execution", "samplesExecuted", 0, errors)
    present, reason = _require(section, "execution", "terminationReason", errors)
    if present and reason not in TERMINATION_REASONS:
        errors.append(
            f"Invalid execution.terminationReason: {reason}. Valid values: {list(TERMINATION_REASONS)}"
        )


def _validate_statistics(doc: dict[str, Any], errors: list[str]) -> None:
    section = _section(doc, "statistics", errors)
    if section is None:
        return

    rate = section.get("successRate")
    if rate is None:
        errors.append("Missing required section: statistics.successRate")
    elif not isinstance(rate, dict):
        errors.append("Section statistics.successRate must be a mapping")
    else:
        path = "statistics.successRate"
        present, observed = _require(rate, path, "observed", errors)
        if present and (not _is_number(observed) or not 0.0 <= observed <= 1.0):
            errors.append(f"{path}.observed must be a number in [0, 1], got: {observed}")
        present, se = _require(rate, path, "standardError", errors)
        if present and (not _is_number(se) or se < 0):
            errors.append(f"{path}.standardError must be non-negative, got: {se}")
        present, ci = _require(rate, path, "confidenceInterval95", errors)
        if present and (
            not isinstance(ci, (list, tuple)) or len(ci) != 2 or not all(_is_number(v) for v in ci)
        ):
            errors.append(f"{path}.confidenceInterval95 must be a two-element range, got: {ci}")
        elif present and ci[0] > ci[1]:
            errors.append(f"{path}.confidenceInterval95 lower bound exceeds upper bound: {ci}")

    _check_int(section, "statistics", "successes", 0, errors)
    _check_int(section, "statistics", "failures", 0, errors)


def _validate_cost(doc: dict[str, Any], errors: list[str]) -> None:
    section = _section(doc, "cost", errors)
    if section is None:
        return
    _check_int(section, "cost", "totalTimeMs", 0, errors)
    _check_int(section, "cost", "totalTokens", 0, errors)


def _validate_fingerprint_format(doc: dict[str, Any], errors: list[str]) -> None:
    fingerprint = doc.get(FINGERPRINT_FIELD)
    if not fingerprint:
        errors.append(f"Missing required field: {FINGERPRINT_FIELD}")
    elif not isinstance(fingerprint, str) or not _HEX_64.match(fingerprint):
        errors.append(
            "Invalid contentFingerprint format. Expected 64-character lowercase hex string, "
            f"got: {len(str(fingerprint))} characters"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_mapping(doc: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    _validate_header(doc, errors)
    _validate_execution(doc, errors)
    _validate_statistics(doc, errors)
    _validate_cost(doc, errors)
    _validate_fingerprint_format(doc, errors)
    return errors


def validate_document(text: str, check_fingerprint: bool = True) -> ValidationResult:
    if text is None or not text.strip():
        return ValidationResult(valid=False, errors=["Baseline content is empty"])
    try:
        doc = _load(text)
    except yaml.YAMLError as exc:
        return ValidationResult(valid=False, errors=[f"Unparseable document: {exc}"])
    if not isinstance(doc, dict):
        return ValidationResult(valid=False, errors=["Document is not a mapping"])

    errors = validate_mapping(doc)
    if check_fingerprint:
        errors.extend(verify_fingerprint(text, doc))
    return ValidationResult(valid=not errors, errors=errors)


def validate_or_raise(text: str, source: str = "<document>") -> None:
    result = validate_document(text)
    if not result.valid:
        raise BaselineIntegrityError(source, result.errors)
