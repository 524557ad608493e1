"""Tests for the category digesters."""

import json
import os

import pytest

from conftest import SAMPLE_PROJECT, write_tree
from codeanchor.kernel.collector import FileCollectionError
from codeanchor.kernel.digest import (
    DEFAULT_RULES,
    NO_BUILD_ARTIFACTS,
    NO_DEPLOYMENT_CONFIG,
    SEPARATOR,
    DigestRules,
    compute_category_digests,
    hash_build_artifacts,
    hash_config_files,
    hash_dependencies,
    hash_deployment_config,
    hash_source_code,
)
from codeanchor.kernel.hash_utils import combine_digests, sha256_hex


def test_separator_is_literal_backslash_n():
    assert SEPARATOR == "\\" + "n"
    assert len(SEPARATOR) == 2


class TestDeterminism:

    def test_same_tree_same_digests(self, sample_project):
        assert compute_category_digests(sample_project) == compute_category_digests(sample_project)

    def test_creation_order_does_not_matter(self, tmp_path):
        """Two trees with identical content built in different orders hash the same."""
        forward = write_tree(tmp_path / "forward", SAMPLE_PROJECT)
        backward = write_tree(tmp_path / "backward", dict(reversed(list(SAMPLE_PROJECT.items()))))
        assert compute_category_digests(forward).ordered() == compute_category_digests(backward).ordered()

    def test_walk_order_does_not_matter(self, sample_project, monkeypatch):
        """Entries yielded in reverse order by the filesystem still hash the same."""
        write_tree(sample_project, {"dist/b.js": "B", "dist/a.js": "A", "src/z/y.ts": "Y"})
        before = compute_category_digests(sample_project)

        real_walk = os.walk
        walked = []

        def reversed_walk(top, *args, **kwargs):
            for dirpath, dirnames, filenames in real_walk(top, *args, **kwargs):
                walked.append(dirpath)
                dirnames.reverse()
                filenames.reverse()
                yield dirpath, dirnames, filenames

        monkeypatch.setattr(os, "walk", reversed_walk)
        assert compute_category_digests(sample_project) == before
        assert walked


class TestSourceCode:

    def test_encoding(self, tmp_path):
        write_tree(tmp_path, {"b.js": "B", "a.md": "A"})
        expected = sha256_hex("a.md:A" + SEPARATOR + "b.js:B")
        result = hash_source_code(tmp_path)
        assert result.digest == expected
        assert result.file_count == 2

    def test_single_byte_change_is_detected(self, sample_project):
        """Only the source digest moves, and the final hash moves with it."""
        before = compute_category_digests(sample_project)
        (sample_project / "src" / "App.jsx").write_text("export const App = () => 0;\n", encoding="utf-8")
        after = compute_category_digests(sample_project)

        assert after.source.digest != before.source.digest
        assert after.dependencies == before.dependencies
        assert after.config == before.config
        assert after.build == before.build
        assert after.deployment == before.deployment
        assert combine_digests(after.ordered()) != combine_digests(before.ordered())

    def test_byte_change_in_invalid_utf8_is_detected(self, tmp_path):
        path = tmp_path / "a.js"
        path.write_bytes(b"const s = '\x80';\n")
        before = hash_source_code(tmp_path).digest
        path.write_bytes(b"const s = '\x81';\n")
        assert hash_source_code(tmp_path).digest != before

    def test_contents_hashed_as_raw_bytes(self, tmp_path):
        (tmp_path / "a.js").write_bytes(b"\xff\xfe")
        assert hash_source_code(tmp_path).digest == sha256_hex(b"a.js:\xff\xfe")

    def test_rename_is_detected(self, sample_project):
        """Paths are part of the digest, not just contents."""
        before = hash_source_code(sample_project).digest
        (sample_project / "src" / "App.jsx").rename(sample_project / "src" / "Main.jsx")
        assert hash_source_code(sample_project).digest != before

    def test_excluded_dirs_and_reports_ignored(self, sample_project):
        before = hash_source_code(sample_project).digest
        write_tree(sample_project, {
            "node_modules/other/index.js": "x",
            "dist/app.js": "x",
            "verification-report.json": "{}",
            "blockchain-verification-report.json": "{}",
        })
        assert hash_source_code(sample_project).digest == before

    def test_empty_tree_hashes_empty_string(self, tmp_path):
        result = hash_source_code(tmp_path)
        assert result.digest == sha256_hex("")
        assert result.file_count == 0


class TestDependencies:

    def test_declared_order_not_alphabetical(self, tmp_path):
        write_tree(tmp_path, {"package.json": "P", "yarn.lock": "Y", "package-lock.json": "L"})
        assert hash_dependencies(tmp_path).digest == sha256_hex("P" + SEPARATOR + "L" + SEPARATOR + "Y")

    def test_missing_files_skipped(self, tmp_path):
        write_tree(tmp_path, {"yarn.lock": "Y"})
        result = hash_dependencies(tmp_path)
        assert result.digest == sha256_hex("Y")
        assert result.file_count == 1

    def test_reordering_the_list_changes_the_digest(self, tmp_path):
        write_tree(tmp_path, {"package.json": "P", "package-lock.json": "L"})
        swapped = DigestRules(dependency_files=("package-lock.json", "package.json"))
        assert hash_dependencies(tmp_path).digest != hash_dependencies(tmp_path, swapped).digest


class TestConfig:

    def test_only_listed_files(self, sample_project):
        result = hash_config_files(sample_project)
        assert result.file_count == 2  # vite.config.js and .gitignore
        assert result.digest == sha256_hex("export default {};\n" + SEPARATOR + "node_modules\ndist\n")


class TestBuildArtifacts:

    def test_sentinel_without_build_dirs(self, tmp_path):
        assert hash_build_artifacts(tmp_path).digest == sha256_hex(NO_BUILD_ARTIFACTS)

    def test_empty_build_differs_from_no_build(self, tmp_path):
        (tmp_path / "dist").mkdir()
        result = hash_build_artifacts(tmp_path)
        assert result.digest == sha256_hex("")
        assert result.digest != sha256_hex(NO_BUILD_ARTIFACTS)

    def test_dirs_concatenated_without_separator(self, tmp_path):
        write_tree(tmp_path, {
            "dist/b.js": "B",
            "dist/a.js": "A",
            "artifacts/x.json": "X",
        })
        expected = sha256_hex("A" + SEPARATOR + "B" + "X")
        result = hash_build_artifacts(tmp_path)
        assert result.digest == expected
        assert result.file_count == 3

    def test_includes_every_file_type(self, tmp_path):
        write_tree(tmp_path, {"dist/assets/logo.svg": "<svg/>"})
        assert hash_build_artifacts(tmp_path).digest == sha256_hex("<svg/>")

    def test_binary_tampering_is_detected(self, tmp_path):
        logo = tmp_path / "dist" / "logo.png"
        logo.parent.mkdir()
        logo.write_bytes(b"\x89PNG\r\n\x1a\n\xff\xd8\xff")
        before = hash_build_artifacts(tmp_path).digest
        logo.write_bytes(b"\x88PNG\r\n\x1a\n\xfe\xd9\xfe")
        assert hash_build_artifacts(tmp_path).digest != before


class TestDeploymentConfig:

    def test_sentinel_when_nothing_present(self, tmp_path):
        assert hash_deployment_config(tmp_path).digest == sha256_hex(NO_DEPLOYMENT_CONFIG)

    def test_files_and_directories(self, tmp_path):
        write_tree(tmp_path, {
            ".github/workflows/deploy.yml": "W",
            "scripts/deploy.js": "D",
            "scripts/verification/b.mjs": "ignored extension",
            "scripts/verification/a.js": "A",
            "scripts/verification/c.js": "C",
        })
        expected = sha256_hex("W" + "D" + "A" + SEPARATOR + "C")
        result = hash_deployment_config(tmp_path)
        assert result.digest == expected
        assert result.file_count == 4


class TestComputeCategoryDigests:

    def test_missing_root_is_fatal(self, tmp_path):
        with pytest.raises(FileCollectionError):
            compute_category_digests(tmp_path / "missing")

    def test_empty_project(self, tmp_path):
        digests = compute_category_digests(tmp_path)
        assert digests.source.digest == sha256_hex("")
        assert digests.dependencies.digest == sha256_hex("")
        assert digests.config.digest == sha256_hex("")
        assert digests.build.digest == sha256_hex(NO_BUILD_ARTIFACTS)
        assert digests.deployment.digest == sha256_hex(NO_DEPLOYMENT_CONFIG)

    def test_ordered_is_fixed(self, sample_project):
        digests = compute_category_digests(sample_project)
        assert digests.ordered() == [
            digests.source.digest,
            digests.dependencies.digest,
            digests.config.digest,
            digests.build.digest,
            digests.deployment.digest,
        ]


class TestDigestRules:

    def test_from_file_overrides_some_keys(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"source_extensions": [".py"]}), encoding="utf-8")
        rules = DigestRules.from_file(path)
        assert rules.source_extensions == (".py",)
        assert rules.dependency_files == DEFAULT_RULES.dependency_files

    def test_unknown_keys_rejected(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"sourceExtensions": [".py"]}), encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid digest rules"):
            DigestRules.from_file(path)

    def test_invalid_json_rejected(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ValueError):
            DigestRules.from_file(path)
