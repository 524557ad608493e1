"""Tests for verification report assembly and persistence."""

import json
import re
import sys

import pytest

from codeanchor.contracts import VerificationRecord
from codeanchor.kernel.collector import FileCollectionError
from codeanchor.kernel.digest import compute_category_digests
from codeanchor.kernel.hash_utils import combine_digests
from codeanchor.kernel.report import (
    DEFAULT_PROJECT_NAME,
    DEFAULT_VERSION,
    REPORT_FILENAME,
    ReportFormatError,
    assemble_report,
    compute_final_hash,
    generate_report,
    load_report,
    read_project_version,
    utc_timestamp,
)
from codeanchor.kernel.security import SecurityTool

PASSING = SecurityTool(name="npmAudit", command=(sys.executable, "-c", "pass"))
FAILING = SecurityTool(name="eslint", command=(sys.executable, "-c", "raise SystemExit(2)"))

WIRE_KEYS = [
    "projectName",
    "version",
    "gitCommitHash",
    "sourceCodeHash",
    "dependenciesHash",
    "configHash",
    "buildArtifactsHash",
    "deploymentHash",
    "timestamp",
    "finalVerificationHash",
    "isGitClean",
    "securityChecks",
    "verification",
]


def test_utc_timestamp_format():
    assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$", utc_timestamp())


class TestReadProjectVersion:

    def test_reads_manifest(self, sample_project):
        assert read_project_version(sample_project) == "2.3.4"

    def test_missing_manifest_defaults(self, tmp_path):
        assert read_project_version(tmp_path) == DEFAULT_VERSION

    def test_malformed_manifest_defaults(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json", encoding="utf-8")
        assert read_project_version(tmp_path) == DEFAULT_VERSION

    def test_manifest_without_version_defaults(self, tmp_path):
        (tmp_path / "package.json").write_text('{"name": "x"}', encoding="utf-8")
        assert read_project_version(tmp_path) == DEFAULT_VERSION


class TestAssembleReport:

    def test_outside_git(self, sample_project, no_git_repo):
        record = assemble_report(sample_project, security_tools=[PASSING])
        assert record.project_name == DEFAULT_PROJECT_NAME
        assert record.version == "2.3.4"
        assert record.git_commit_hash == "unknown"
        assert record.is_git_clean is False
        assert record.verification.is_valid is False  # unknown git state counts as dirty

    def test_final_hash_matches_category_digests(self, sample_project, no_git_repo):
        record = assemble_report(sample_project, security_tools=None)
        digests = compute_category_digests(sample_project)
        assert record.category_digests() == digests.ordered()
        assert record.final_verification_hash == combine_digests(digests.ordered())
        assert compute_final_hash(record) == record.final_verification_hash

    def test_security_checks_recorded_in_order(self, sample_project, no_git_repo):
        record = assemble_report(sample_project, security_tools=[PASSING, FAILING])
        assert list(record.security_checks) == ["npmAudit", "eslint"]
        assert record.security_checks == {"npmAudit": True, "eslint": False}

    def test_skipped_security_is_empty_map(self, sample_project, no_git_repo):
        record = assemble_report(sample_project, security_tools=())
        assert record.security_checks == {}

    def test_validity_requires_clean_tree_and_passing_checks(self, sample_project, monkeypatch):
        monkeypatch.setattr("codeanchor.kernel.report.is_working_tree_clean", lambda *a, **kw: True)
        monkeypatch.setattr("codeanchor.kernel.report.get_commit_hash", lambda *a, **kw: "a" * 40)

        assert assemble_report(sample_project, security_tools=[PASSING]).verification.is_valid is True
        assert assemble_report(sample_project, security_tools=[PASSING, FAILING]).verification.is_valid is False

    def test_timestamps_agree(self, sample_project, no_git_repo):
        record = assemble_report(sample_project, security_tools=None)
        assert record.timestamp == record.verification.timestamp

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileCollectionError):
            assemble_report(tmp_path / "missing", security_tools=None)


class TestPersistence:

    def test_generate_writes_default_location(self, sample_project, no_git_repo):
        record, path = generate_report(sample_project, security_tools=None)
        assert path == sample_project.resolve() / REPORT_FILENAME
        data = json.loads(path.read_text(encoding="utf-8"))
        assert list(data) == WIRE_KEYS
        assert data["verification"] == {"isValid": False, "timestamp": record.timestamp}

    def test_report_file_does_not_change_the_next_digest(self, sample_project, no_git_repo):
        first, _ = generate_report(sample_project, security_tools=None)
        second, _ = generate_report(sample_project, security_tools=None)
        assert first.final_verification_hash == second.final_verification_hash

    def test_overwrites_previous_report(self, sample_project, no_git_repo, tmp_path):
        target = tmp_path / "out" / "report.json"
        target.parent.mkdir()
        target.write_text("stale", encoding="utf-8")
        generate_report(sample_project, target, security_tools=None)
        assert json.loads(target.read_text(encoding="utf-8"))["projectName"] == DEFAULT_PROJECT_NAME
        assert [p.name for p in target.parent.iterdir()] == ["report.json"]

    def test_load_round_trip(self, sample_project, no_git_repo):
        record, path = generate_report(sample_project, security_tools=[PASSING])
        assert load_report(path) == record

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_report(tmp_path / REPORT_FILENAME)

    def test_load_malformed_json(self, tmp_path):
        path = tmp_path / REPORT_FILENAME
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ReportFormatError):
            load_report(path)

    def test_load_rejects_bad_digest(self, sample_project, no_git_repo):
        _, path = generate_report(sample_project, security_tools=None)
        data = json.loads(path.read_text(encoding="utf-8"))
        data["sourceCodeHash"] = "xyz"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(ReportFormatError):
            load_report(path)

    def test_record_is_frozen(self, sample_project, no_git_repo):
        record = assemble_report(sample_project, security_tools=None)
        assert isinstance(record, VerificationRecord)
        with pytest.raises(Exception):
            record.version = "9.9.9"
