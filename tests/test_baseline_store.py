"""Tests for baseline documents: writing, schema checks, naming and repository scans."""

import json
from datetime import datetime, timezone

import pytest
import yaml

from baselinekit.baseline.naming import BaselineFileNamer, sanitize
from baselinekit.baseline.repository import BaselineRepository
from baselinekit.baseline.schema import (
    compute_content_fingerprint,
    strip_fingerprint,
    validate_document,
    validate_or_raise,
)
from baselinekit.baseline.writer import BaselineWriter
from baselinekit.covariates.model import CovariateProfile
from baselinekit.errors import BaselineIntegrityError, NoCompatibleBaselineError

USE_CASE = "shopping.search"
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
FOOTPRINT_A = "a1b2c3d4" * 8
FOOTPRINT_B = "ffee0011" * 8


def _make_document(writer=None, use_case_id=USE_CASE, footprint=FOOTPRINT_A, covariates=None, **kwargs):
    writer = writer or BaselineWriter()
    return writer.build_document(
        use_case_id,
        successes=kwargs.pop("successes", 90),
        failures=kwargs.pop("failures", 10),
        footprint=footprint,
        profile=CovariateProfile.from_mapping(covariates or {"region": "US"}),
        generated_at=T0,
        **kwargs,
    )


def _write(tmp_path, filename, **kwargs):
    writer = BaselineWriter()
    return writer.write(_make_document(writer, **kwargs), tmp_path / filename)


# ---------------------------------------------------------------------------
# Writer and schema
# ---------------------------------------------------------------------------

def test_written_yaml_is_valid_and_fingerprinted():
    text = BaselineWriter().render(_make_document(total_time_ms=12000, total_tokens=5000))
    result = validate_document(text)
    assert result.valid, result.errors

    doc = yaml.safe_load(text)
    assert doc["schemaVersion"] == "baselinekit-2"
    assert doc["statistics"]["successes"] == 90
    assert doc["statistics"]["successRate"]["observed"] == 0.9
    assert doc["cost"]["avgTimePerSampleMs"] == 120
    assert doc["contentFingerprint"] == compute_content_fingerprint(text)


def test_written_json_is_valid():
    writer = BaselineWriter("json")
    text = writer.render(_make_document(writer))
    assert json.loads(text)["useCaseId"] == USE_CASE
    assert validate_document(text).valid


def test_unknown_writer_format_rejected():
    with pytest.raises(ValueError):
        BaselineWriter("toml")


def test_fingerprint_ignores_its_own_line():
    text = 'a: 1\ncontentFingerprint: "abc"\nb: 2\n'
    assert strip_fingerprint(text) == "a: 1\nb: 2\n"
    assert compute_content_fingerprint(text) == compute_content_fingerprint("a: 1\nb: 2\n")


def test_nested_fingerprint_key_is_hashed():
    text = 'covariates:\n  contentFingerprint: x\ncontentFingerprint: "abc"\n'
    assert strip_fingerprint(text) == "covariates:\n  contentFingerprint: x\n"

    writer = BaselineWriter("json")
    text = writer.render(_make_document(writer, covariates={"contentFingerprint": "x"}))
    assert validate_document(text).valid
    tampered = text.replace('    "contentFingerprint": "x"', '    "contentFingerprint": "y"')
    assert tampered != text
    assert any("contentFingerprint mismatch" in e for e in validate_document(tampered).errors)


def test_tampered_document_fails_fingerprint():
    text = BaselineWriter().render(_make_document())
    tampered = text.replace("successes: 90", "successes: 99")
    assert tampered != text
    result = validate_document(tampered)
    assert not result.valid
    assert any("contentFingerprint mismatch" in e for e in result.errors)
    assert validate_document(tampered, check_fingerprint=False).valid


def test_all_violations_reported():
    doc = _make_document()
    doc["schemaVersion"] = "baselinekit-0"
    doc["execution"]["samplesPlanned"] = 0
    doc["execution"]["terminationReason"] = "BORED"
    doc["statistics"]["successRate"]["observed"] = 1.5
    doc["cost"]["totalTokens"] = -1
    doc["contentFingerprint"] = "xyz"
    result = validate_document(yaml.safe_dump(doc), check_fingerprint=False)
    assert not result.valid
    joined = "\n".join(result.errors)
    assert "Unsupported schemaVersion" in joined
    assert "samplesPlanned must be a positive integer" in joined
    assert "Invalid execution.terminationReason" in joined
    assert "observed must be a number in [0, 1]" in joined
    assert "totalTokens must be a non-negative integer" in joined
    assert "Invalid contentFingerprint format" in joined
    assert len(result.errors) == 6


def test_missing_sections_reported():
    result = validate_document("schemaVersion: baselinekit-2\nuseCaseId: x\n")
    assert "Missing required section: execution" in result.errors
    assert "Missing required section: statistics" in result.errors
    assert "Missing required section: cost" in result.errors
    assert "Missing required field: generatedAt" in result.errors
    assert "Missing required field: covariates" in result.errors


def test_covariates_required_but_may_be_empty():
    doc = _make_document()
    doc["contentFingerprint"] = "0" * 64
    del doc["covariates"]
    result = validate_document(yaml.safe_dump(doc), check_fingerprint=False)
    assert result.errors == ["Missing required field: covariates"]

    doc["covariates"] = None
    result = validate_document(yaml.safe_dump(doc), check_fingerprint=False)
    assert result.errors == ["covariates must be a mapping of string to string"]

    doc["covariates"] = {}
    assert validate_document(yaml.safe_dump(doc), check_fingerprint=False).valid


def test_empty_and_unparseable_documents():
    assert validate_document("   ").errors == ["Baseline content is empty"]
    assert not validate_document("key: [unclosed").valid
    assert validate_document("- a\n- b\n").errors == ["Document is not a mapping"]


def test_validate_or_raise():
    text = BaselineWriter().render(_make_document())
    validate_or_raise(text)
    with pytest.raises(BaselineIntegrityError) as exc_info:
        validate_or_raise(text.replace("failures: 10", "failures: 11"), "tampered.yaml")
    assert exc_info.value.source == "tampered.yaml"
    assert "tampered.yaml" in str(exc_info.value)


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------

def test_filename_includes_covariate_hashes():
    profile = CovariateProfile.from_mapping({"day_of_week": "WEEKEND", "region": "US"})
    name = BaselineFileNamer().generate(USE_CASE, FOOTPRINT_A, profile)
    parts = name[: -len(".yaml")].split("-")
    assert parts[0] == "shopping_search"
    assert parts[1] == FOOTPRINT_A[:4]
    assert parts[2:] == [h[:4] for h in profile.value_hashes()]


def test_same_circumstances_same_filename():
    namer = BaselineFileNamer()
    a = namer.generate(USE_CASE, FOOTPRINT_A, CovariateProfile.from_mapping({"region": "US"}))
    b = namer.generate(USE_CASE, FOOTPRINT_A, CovariateProfile.from_mapping({"region": "US"}))
    c = namer.generate(USE_CASE, FOOTPRINT_A, CovariateProfile.from_mapping({"region": "DE"}))
    assert a == b
    assert a != c


def test_parse_filename():
    parsed = BaselineFileNamer().parse("shopping_search-a1b2-9f3c-0d1e.yaml")
    assert parsed.use_case_name == "shopping_search"
    assert parsed.footprint_hash == "a1b2"
    assert parsed.covariate_hashes == ["9f3c", "0d1e"]
    assert parsed.has_covariates
    assert not BaselineFileNamer().parse("x-a1b2.yml").has_covariates
    with pytest.raises(ValueError):
        BaselineFileNamer().parse("nohyphen.yaml")


def test_sanitize():
    assert sanitize("shopping.search/v2") == "shopping_search_v2"


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

def test_missing_directory_yields_nothing(tmp_path):
    repo = BaselineRepository(tmp_path / "absent")
    assert repo.find_all_candidates(USE_CASE) == []


def test_scan_matches_prefix_and_use_case(tmp_path):
    _write(tmp_path, f"{USE_CASE}.yaml")
    _write(tmp_path, f"{USE_CASE}-a1b2-0001.yaml", covariates={"region": "DE"})
    _write(tmp_path, "shopping_search-a1b2-0002.yaml", covariates={"region": "FR"})
    _write(tmp_path, f"{USE_CASE}-other.yaml", use_case_id="shopping.search.v2")
    _write(tmp_path, "shopping.searchv2.yaml", use_case_id=USE_CASE)
    (tmp_path / f"{USE_CASE}-notes.txt").write_text("ignored")

    candidates = BaselineRepository(tmp_path).find_all_candidates(USE_CASE)
    assert sorted(c.filename for c in candidates) == [
        f"{USE_CASE}-a1b2-0001.yaml",
        f"{USE_CASE}.yaml",
        "shopping_search-a1b2-0002.yaml",
    ]
    assert all(c.samples == 100 and c.successes == 90 for c in candidates)


def test_footprint_filter_and_available_footprints(tmp_path):
    _write(tmp_path, f"{USE_CASE}-a.yaml", footprint=FOOTPRINT_A)
    _write(tmp_path, f"{USE_CASE}-b.yaml", footprint=FOOTPRINT_B)
    _write(tmp_path, f"{USE_CASE}-c.yaml", footprint=FOOTPRINT_B, covariates={"region": "DE"})
    repo = BaselineRepository(tmp_path)

    assert [c.filename for c in repo.find_candidates(USE_CASE, FOOTPRINT_A)] == [f"{USE_CASE}-a.yaml"]
    assert len(repo.find_candidates(USE_CASE, FOOTPRINT_B)) == 2
    assert repo.find_available_footprints(USE_CASE) == [FOOTPRINT_A, FOOTPRINT_B]


def test_require_candidates_reports_available(tmp_path):
    _write(tmp_path, f"{USE_CASE}-a.yaml", footprint=FOOTPRINT_A)
    with pytest.raises(NoCompatibleBaselineError) as exc_info:
        BaselineRepository(tmp_path).require_candidates(USE_CASE, FOOTPRINT_B)
    assert exc_info.value.available_footprints == [FOOTPRINT_A]
    assert FOOTPRINT_B in str(exc_info.value)


def test_malformed_files_do_not_abort_scan(tmp_path):
    _write(tmp_path, f"{USE_CASE}-good.yaml")
    (tmp_path / f"{USE_CASE}-broken.yaml").write_text("key: [unclosed\n")
    path = _write(tmp_path, f"{USE_CASE}-tampered.yaml")
    path.write_text(path.read_text().replace("successes: 90", "successes: 100"))

    report = BaselineRepository(tmp_path).scan(USE_CASE)
    assert [c.filename for c in report.candidates] == [f"{USE_CASE}-good.yaml"]
    failures = {f.filename: f.errors for f in report.failures}
    assert set(failures) == {f"{USE_CASE}-broken.yaml", f"{USE_CASE}-tampered.yaml"}
    assert any("contentFingerprint mismatch" in e for e in failures[f"{USE_CASE}-tampered.yaml"])


def test_integrity_check_can_be_disabled(tmp_path):
    path = _write(tmp_path, f"{USE_CASE}-tampered.yaml")
    path.write_text(path.read_text().replace("successes: 90", "successes: 100"))
    candidates = BaselineRepository(tmp_path, verify_integrity=False).find_all_candidates(USE_CASE)
    assert len(candidates) == 1
    assert candidates[0].successes == 100


def test_candidate_exposes_profile_and_expiration(tmp_path):
    _write(tmp_path, f"{USE_CASE}.yaml", covariates={"day_of_week": "WEEKEND"}, expires_in_days=30)
    (candidate,) = BaselineRepository(tmp_path).find_all_candidates(USE_CASE)
    assert candidate.profile.to_mapping() == {"day_of_week": "WEEKEND"}
    assert candidate.generated_at == T0
    assert candidate.record.expiration.expires_in_days == 30
    assert candidate.record.baseline_end == T0
