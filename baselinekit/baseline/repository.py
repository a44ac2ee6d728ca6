"""Scan a directory of stored baselines for candidates of a use case."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from baselinekit.baseline.naming import sanitize
from baselinekit.baseline.record import BaselineRecord
from baselinekit.baseline.schema import validate_mapping, verify_fingerprint
from baselinekit.covariates.model import CovariateProfile
from baselinekit.errors import NoCompatibleBaselineError
from baselinekit.logging import get_logger

log = get_logger(__name__)

BASELINE_SUFFIXES = (".yaml", ".yml", ".json")


class BaselineCandidate(BaseModel):
    """One stored baseline, read-only once produced by the repository."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    filename: str
    footprint: str
    profile: CovariateProfile
    generated_at: datetime
    record: BaselineRecord

    @property
    def samples(self) -> int:
        return self.record.samples

    @property
    def successes(self) -> int:
        return self.record.successes

    @property
    def observed_rate(self) -> float:
        return self.record.observed_rate


class LoadFailure(BaseModel):
    filename: str
    errors: list[str]


class ScanReport(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    candidates: list[BaselineCandidate] = []
    failures: list[LoadFailure] = []


class BaselineRepository:
    """Baselines are files named ``<useCaseId>.yaml`` or ``<useCaseId>-*.yaml``.

    ``.yml`` and ``.json`` are accepted as well. The document's own
    ``useCaseId`` must match; files belonging to another use case that
    happen to share the prefix are skipped.
    """

    def __init__(self, root: str | Path, verify_integrity: bool = True) -> None:
        self.root = Path(root)
        self.verify_integrity = verify_integrity

    def _matching_files(self, use_case_id: str) -> list[Path]:
        if not self.root.is_dir():
            return []
        prefixes = {use_case_id, sanitize(use_case_id)}
        files = []
        for path in sorted(self.root.iterdir()):
            if not path.is_file() or path.suffix.lower() not in BASELINE_SUFFIXES:
                continue
            stem = path.stem
            if any(stem == p or stem.startswith(p + "-") for p in prefixes):
                files.append(path)
        return files

    def _load(self, path: Path, use_case_id: str) -> BaselineCandidate | LoadFailure | None:
        try:
            text = path.read_text(encoding="utf-8")
            doc = yaml.safe_load(text)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            return LoadFailure(filename=path.name, errors=[f"Unreadable document: {exc}"])

        if not isinstance(doc, dict):
            return LoadFailure(filename=path.name, errors=["Document is not a mapping"])
        if doc.get("useCaseId") != use_case_id:
            return None

        errors = validate_mapping(doc)
        if self.verify_integrity:
            errors.extend(verify_fingerprint(text, doc))
        if errors:
            return LoadFailure(filename=path.name, errors=errors)

        try:
            record = BaselineRecord.model_validate(doc)
        except ValidationError as exc:
            return LoadFailure(
                filename=path.name,
                errors=[f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()],
            )

        return BaselineCandidate(
            filename=path.name,
            footprint=record.footprint,
            profile=CovariateProfile.from_mapping(record.covariates),
            generated_at=record.generated_at,
            record=record,
        )

    def scan(self, use_case_id: str) -> ScanReport:
        """Load every baseline of a use case, collecting per-file failures."""
        report = ScanReport()
        for path in self._matching_files(use_case_id):
            loaded = self._load(path, use_case_id)
            if loaded is None:
                log.debug("Skipping %s: belongs to a different use case", path.name)
            elif isinstance(loaded, LoadFailure):
                log.warning("Skipping malformed baseline %s: %s", path.name, "; ".join(loaded.errors))
                report.failures.append(loaded)
            else:
                report.candidates.append(loaded)
        log.info(
            "Scanned %s for %s: %d candidate(s), %d failure(s)",
            self.root,
            use_case_id,
            len(report.candidates),
            len(report.failures),
        )
        return report

    def find_all_candidates(self, use_case_id: str) -> list[BaselineCandidate]:
        return self.scan(use_case_id).candidates

    def find_candidates(self, use_case_id: str, footprint: str) -> list[BaselineCandidate]:
        """Candidates whose stored footprint equals ``footprint`` exactly."""
        return [c for c in self.find_all_candidates(use_case_id) if c.footprint == footprint]

    def find_available_footprints(self, use_case_id: str) -> list[str]:
        seen: dict[str, None] = {}
        for candidate in self.find_all_candidates(use_case_id):
            seen.setdefault(candidate.footprint, None)
        return list(seen)

    def require_candidates(self, use_case_id: str, footprint: str) -> list[BaselineCandidate]:
        all_candidates = self.find_all_candidates(use_case_id)
        matching = [c for c in all_candidates if c.footprint == footprint]
        if not matching:
            available = list(dict.fromkeys(c.footprint for c in all_candidates))
            raise NoCompatibleBaselineError(use_case_id, footprint, available)
        return matching
