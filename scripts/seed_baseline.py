#!/usr/bin/env python3
"""Write an example baseline for the shopping.search use case into BASELINE_DIR."""

from datetime import datetime, timezone

from baselinekit.baseline.naming import BaselineFileNamer
from baselinekit.baseline.writer import BaselineWriter
from baselinekit.config import settings
from baselinekit.covariates.declaration import extract_declaration
from baselinekit.covariates.resolvers import ResolutionContext, resolve_profile

USE_CASE_ID = "shopping.search"

DECLARATION = {
    "day_of_week": [["SATURDAY", "SUNDAY"]],
    "time_of_day": ["08:00/4h", "18:00/3h"],
    "region": [["FR", "DE"], ["US", "CA"]],
    "custom": {"llm_model": "CONFIGURATION"},
}


def main():
    declaration = extract_declaration(DECLARATION)
    context = ResolutionContext(
        now=datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc),
        timezone="Europe/Paris",
        properties={"baselinekit.region": "FR", "baselinekit.llm_model": "claude-sonnet"},
    )
    profile = resolve_profile(declaration, context)
    footprint = declaration.compute_declaration_hash()

    writer = BaselineWriter()
    document = writer.build_document(
        USE_CASE_ID,
        successes=951,
        failures=49,
        footprint=footprint,
        profile=profile,
        generated_at=context.now,
        total_time_ms=1_245_000,
        total_tokens=812_400,
        expires_in_days=settings.expires_in_days or 30,
    )

    filename = BaselineFileNamer().generate(USE_CASE_ID, footprint, profile)
    path = writer.write(document, settings.baseline_dir / filename)
    print(f"Baseline written: {path} (footprint {footprint})")


if __name__ == "__main__":
    main()
