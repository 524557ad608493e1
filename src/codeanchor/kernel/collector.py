"""Deterministic file collection for digesting.

Every list returned here is sorted by POSIX relative path, so the order in
which the filesystem yields entries never reaches a digest.
"""

import os
from pathlib import Path
from typing import AbstractSet, List, Optional


class FileCollectionError(RuntimeError):
    """Raised when a tree cannot be fully read.

    A partial tree digest is worse than none, so this is always fatal.
    """
    pass


def relative_posix(path: Path, root: Path) -> str:
    """Relative path of ``path`` under ``root`` using ``/`` separators."""
    return path.relative_to(root).as_posix()


def _walk(
    root: Path,
    allowed_extensions: Optional[AbstractSet[str]],
    excluded_dir_names: AbstractSet[str],
    excluded_file_names: AbstractSet[str] = frozenset(),
    skip_hidden: bool = True,
) -> List[Path]:
    if not root.is_dir():
        raise FileCollectionError(f"Directory not found: {root}")

    def _on_error(err: OSError) -> None:
        raise FileCollectionError(f"Cannot read directory {err.filename}: {err.strerror}") from err

    files: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = [
            d for d in dirnames
            if d not in excluded_dir_names and not (skip_hidden and d.startswith("."))
        ]
        base = Path(dirpath)
        for name in filenames:
            if name in excluded_file_names:
                continue
            path = base / name
            if allowed_extensions is not None and path.suffix not in allowed_extensions:
                continue
            files.append(path)

    return sorted(files, key=lambda p: relative_posix(p, root))


def collect_files(
    root: Path,
    allowed_extensions: AbstractSet[str],
    excluded_dir_names: AbstractSet[str],
    excluded_file_names: AbstractSet[str] = frozenset(),
) -> List[Path]:
    """Collect files under root selected by extension.

    Rules:
    - Directories named in ``excluded_dir_names`` are skipped
    - Hidden directories (name starts with ".") are always skipped
    - A file is included iff its suffix is in ``allowed_extensions`` and its
      name is not in ``excluded_file_names``
    - Result is sorted lexicographically on the POSIX relative path

    Args:
        root: Directory to walk
        allowed_extensions: Suffixes including the dot, e.g. {".js", ".md"}
        excluded_dir_names: Directory names never descended into
        excluded_file_names: File names never collected (generated reports)

    Returns:
        Sorted list of absolute file paths

    Raises:
        FileCollectionError: If root is missing or any directory is unreadable
    """
    return _walk(Path(root), allowed_extensions, excluded_dir_names, excluded_file_names)


def collect_all_files(root: Path) -> List[Path]:
    """Collect every file under root: no extension filter, no exclusions."""
    return _walk(Path(root), None, frozenset(), skip_hidden=False)


def read_content(path: Path) -> bytes:
    """Read a file's raw bytes; nothing is decoded before hashing.

    Raises:
        FileCollectionError: If the file cannot be read
    """
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise FileCollectionError(f"Cannot read file {path}: {e}") from e
