"""Category digesters: source, dependencies, config, build, deployment.

Each digester is a pure function of the filesystem at call time. File lists,
extension sets and exclusions are named constants bundled into a
``DigestRules`` value that callers pass in explicitly.

Encoding rules (kept byte-compatible with digests already anchored):
- Files are hashed as raw bytes; nothing is decoded
- Contents are joined by ``SEPARATOR``: the two characters backslash and "n",
  not a newline
- Source files contribute ``relpath (UTF-8) + ":" + content``; other categories
  contribute raw content
- Missing optional files are skipped, never an error
"""

import json
from pathlib import Path
from typing import List, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from codeanchor.kernel.collector import (
    FileCollectionError,
    collect_all_files,
    collect_files,
    read_content,
    relative_posix,
)
from codeanchor.kernel.hash_utils import sha256_hex


SEPARATOR = "\\n"
SEPARATOR_BYTES = SEPARATOR.encode("ascii")

NO_BUILD_ARTIFACTS = "no-build-artifacts"
NO_DEPLOYMENT_CONFIG = "no-deployment-config"

SOURCE_EXTENSIONS: Tuple[str, ...] = (
    ".js", ".jsx", ".ts", ".tsx", ".sol", ".json", ".md", ".yml", ".yaml",
)
EXCLUDED_DIRS: Tuple[str, ...] = (
    "node_modules", "dist", "build", ".git", "coverage", "artifacts", "cache",
)
EXCLUDED_FILES: Tuple[str, ...] = (
    "verification-report.json", "blockchain-verification-report.json",
)
DEPENDENCY_FILES: Tuple[str, ...] = (
    "package.json", "package-lock.json", "yarn.lock",
)
CONFIG_FILES: Tuple[str, ...] = (
    "vite.config.js",
    "hardhat.config.cjs",
    "tailwind.config.js",
    "postcss.config.js",
    "eslint.config.js",
    "netlify.toml",
    ".gitignore",
)
BUILD_DIRS: Tuple[str, ...] = ("dist", "build", "artifacts")
DEPLOYMENT_PATHS: Tuple[str, ...] = (
    ".github/workflows/deploy.yml",
    "scripts/deploy.js",
    "scripts/verification",
)


class DigestRules(BaseModel):
    """Selection rules for the five category digesters."""
    source_extensions: Tuple[str, ...] = SOURCE_EXTENSIONS
    excluded_dirs: Tuple[str, ...] = EXCLUDED_DIRS
    excluded_files: Tuple[str, ...] = EXCLUDED_FILES
    dependency_files: Tuple[str, ...] = DEPENDENCY_FILES
    config_files: Tuple[str, ...] = CONFIG_FILES
    build_dirs: Tuple[str, ...] = BUILD_DIRS
    deployment_paths: Tuple[str, ...] = DEPLOYMENT_PATHS

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "DigestRules":
        """Load rules from a JSON file; omitted keys keep their defaults.

        Raises:
            ValueError: If the file is not valid JSON or has unknown keys
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls(**data)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            raise ValueError(f"Invalid digest rules file {path}: {e}") from e


DEFAULT_RULES = DigestRules()


class CategoryDigest(BaseModel):
    """Digest of one category plus how many files went into it."""
    digest: str
    file_count: int

    model_config = ConfigDict(frozen=True)


class CategoryDigests(BaseModel):
    """The five category digests of one run."""
    source: CategoryDigest
    dependencies: CategoryDigest
    config: CategoryDigest
    build: CategoryDigest
    deployment: CategoryDigest

    model_config = ConfigDict(frozen=True)

    def ordered(self) -> List[str]:
        """Digests in the fixed order used for the final verification hash."""
        return [
            self.source.digest,
            self.dependencies.digest,
            self.config.digest,
            self.build.digest,
            self.deployment.digest,
        ]


def _existing(root: Path, names: Tuple[str, ...]) -> List[Path]:
    return [root / name for name in names if (root / name).exists()]


def _source_files(root: Path, rules: DigestRules) -> List[Path]:
    return collect_files(
        root,
        frozenset(rules.source_extensions),
        frozenset(rules.excluded_dirs),
        frozenset(rules.excluded_files),
    )


def _join_contents(paths: List[Path]) -> bytes:
    return SEPARATOR_BYTES.join(read_content(p) for p in paths)


def hash_source_code(root: Path, rules: DigestRules = DEFAULT_RULES) -> CategoryDigest:
    """Digest of all source files under root.

    An empty tree hashes the empty string.
    """
    root = Path(root)
    files = _source_files(root, rules)
    combined = SEPARATOR_BYTES.join(
        relative_posix(path, root).encode("utf-8") + b":" + read_content(path)
        for path in files
    )
    return CategoryDigest(digest=sha256_hex(combined), file_count=len(files))


def hash_dependencies(root: Path, rules: DigestRules = DEFAULT_RULES) -> CategoryDigest:
    """Digest of the dependency manifests that exist, in priority order."""
    files = _existing(Path(root), rules.dependency_files)
    return CategoryDigest(digest=sha256_hex(_join_contents(files)), file_count=len(files))


def hash_config_files(root: Path, rules: DigestRules = DEFAULT_RULES) -> CategoryDigest:
    """Digest of the configuration files that exist, in list order."""
    files = _existing(Path(root), rules.config_files)
    return CategoryDigest(digest=sha256_hex(_join_contents(files)), file_count=len(files))


def hash_build_artifacts(root: Path, rules: DigestRules = DEFAULT_RULES) -> CategoryDigest:
    """Digest of every file under the build output directories.

    With no output directory present the sentinel ``NO_BUILD_ARTIFACTS`` is
    hashed, so "never built" differs from an empty build.
    """
    root = Path(root)
    build_dirs = [p for p in _existing(root, rules.build_dirs) if p.is_dir()]
    if not build_dirs:
        return CategoryDigest(digest=sha256_hex(NO_BUILD_ARTIFACTS), file_count=0)

    combined = b""
    count = 0
    for build_dir in build_dirs:
        files = collect_all_files(build_dir)
        combined += _join_contents(files)
        count += len(files)
    return CategoryDigest(digest=sha256_hex(combined), file_count=count)


def hash_deployment_config(root: Path, rules: DigestRules = DEFAULT_RULES) -> CategoryDigest:
    """Digest of the deployment files and directories, in list order.

    Directories contribute their source files (same selection as
    ``hash_source_code``). With nothing present the sentinel
    ``NO_DEPLOYMENT_CONFIG`` is hashed.
    """
    root = Path(root)
    entries = _existing(root, rules.deployment_paths)
    if not entries:
        return CategoryDigest(digest=sha256_hex(NO_DEPLOYMENT_CONFIG), file_count=0)

    combined = b""
    count = 0
    for entry in entries:
        if entry.is_dir():
            files = _source_files(entry, rules)
            combined += _join_contents(files)
            count += len(files)
        else:
            combined += read_content(entry)
            count += 1
    return CategoryDigest(digest=sha256_hex(combined), file_count=count)


def compute_category_digests(root: Path, rules: DigestRules = DEFAULT_RULES) -> CategoryDigests:
    """Run the five digesters in order.

    Raises:
        FileCollectionError: If root is missing or any selected file is unreadable
    """
    root = Path(root)
    if not root.is_dir():
        raise FileCollectionError(f"Project root not found: {root}")
    return CategoryDigests(
        source=hash_source_code(root, rules),
        dependencies=hash_dependencies(root, rules),
        config=hash_config_files(root, rules),
        build=hash_build_artifacts(root, rules),
        deployment=hash_deployment_config(root, rules),
    )
