"""Baseline filenames: ``<UseCase>-<footprint4>[-<covariate4>...].yaml``."""

from __future__ import annotations

import re

from pydantic import BaseModel

from baselinekit.covariates.model import CovariateProfile

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
HASH_LENGTH = 4


def sanitize(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


class ParsedFilename(BaseModel):
    use_case_name: str
    footprint_hash: str
    covariate_hashes: list[str] = []

    @property
    def has_covariates(self) -> bool:
        return bool(self.covariate_hashes)


class BaselineFileNamer:
    """Each covariate contributes a short hash of its ``key=value`` pair, so
    baselines recorded under different circumstances land in different files
    while re-measuring the same circumstances overwrites the same file.
    """

    def generate(
        self,
        use_case_name: str,
        footprint_hash: str,
        profile: CovariateProfile | None = None,
    ) -> str:
        parts = [sanitize(use_case_name), footprint_hash[:HASH_LENGTH]]
        if profile is not None:
            parts.extend(h[:HASH_LENGTH] for h in profile.value_hashes())
        return "-".join(parts) + ".yaml"

    def parse(self, filename: str) -> ParsedFilename:
        name = filename
        for suffix in (".yaml", ".yml"):
            if name.endswith(suffix):
                name = name[: -len(suffix)]
                break
        parts = name.split("-")
        if len(parts) < 2:
            raise ValueError(f"Invalid baseline filename format: {filename}")
        return ParsedFilename(
            use_case_name=parts[0],
            footprint_hash=parts[1],
            covariate_hashes=parts[2:],
        )
