"""Exception hierarchy.

Three kinds of failure surface from the core:

- declaration errors (malformed partitions, raised at extraction time),
- not-found errors (no baseline or specification for an identifier; the
  caller can recover by establishing one),
- load errors (a stored document exists but is unreadable or fails schema
  or fingerprint checks).

Ambiguous selection and soft covariate non-conformance are warnings on a
successful result, not errors.
"""

from __future__ import annotations

from typing import Sequence


class BaselineKitError(Exception):
    """Base class for all baselinekit errors."""


# ---------------------------------------------------------------------------
# Declaration errors
# ---------------------------------------------------------------------------

class CovariateValidationError(BaselineKitError, ValueError):
    """A covariate declaration is malformed (format, bounds, overlap, exclusivity)."""


# ---------------------------------------------------------------------------
# Not-found errors
# ---------------------------------------------------------------------------

class NotFoundError(BaselineKitError, LookupError):
    """Something the caller asked for does not exist."""


class NoCompatibleBaselineError(NotFoundError):
    def __init__(
        self,
        use_case_id: str,
        expected_footprint: str,
        available_footprints: Sequence[str],
        reason: str = "",
    ) -> None:
        self.use_case_id = use_case_id
        self.expected_footprint = expected_footprint
        self.available_footprints = list(available_footprints)
        self.reason = reason
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        parts = [
            f"No baseline matches footprint '{self.expected_footprint}' "
            f"for use case '{self.use_case_id}'."
        ]
        if self.reason:
            parts.append(self.reason)
        elif self.available_footprints:
            parts.append(f"Available footprints: {self.available_footprints}.")
        else:
            parts.append("No baselines found for this use case.")
        parts.append("This may indicate covariate declarations have changed.")
        parts.append("Run a measurement to generate a compatible baseline.")
        return " ".join(parts)


class SpecificationNotFoundError(NotFoundError):
    def __init__(self, spec_id: str, searched: str, available: Sequence[str] = ()) -> None:
        self.spec_id = spec_id
        self.searched = searched
        self.available = list(available)
        message = f"Specification not found: {spec_id} (tried .yaml, .yml and .json in {searched})"
        if self.available:
            message += f". Available versions: {', '.join(self.available)}"
        super().__init__(message)


class InvalidSpecIdError(BaselineKitError, ValueError):
    def __init__(self, spec_id: str) -> None:
        self.spec_id = spec_id
        super().__init__(
            f"Invalid spec ID format: {spec_id}. Expected: useCaseId:vN (e.g., shopping.search:v3)"
        )


# ---------------------------------------------------------------------------
# Load errors
# ---------------------------------------------------------------------------

class BaselineLoadError(BaselineKitError):
    """A stored baseline could not be read or parsed."""

    def __init__(self, source: str, errors: Sequence[str]) -> None:
        self.source = source
        self.errors = list(errors)
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        header = f"Failed to load baseline {self.source}"
        if not self.errors:
            return header
        return header + ":\n  - " + "\n  - ".join(self.errors)


class BaselineIntegrityError(BaselineLoadError):
    """A stored baseline fails schema validation or its content fingerprint."""


class SpecificationLoadError(BaselineKitError):
    """A specification file exists but could not be loaded."""


class SpecificationValidationError(BaselineKitError, ValueError):
    """A loaded specification is not approved or carries invalid requirements."""
