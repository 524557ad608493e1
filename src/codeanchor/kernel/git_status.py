"""Git working-tree inspection.

Neither function raises: a report must still complete outside a repository.
Unknown state is treated as dirty.
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import Optional, Union

LOGGER = logging.getLogger(__name__)

UNKNOWN_COMMIT = "unknown"

_COMMIT_RE = re.compile(r"^[0-9a-f]{40}$")


def _run_git(args: list, root: Union[str, Path], git: str, timeout: float) -> Optional[str]:
    """Run a git command, returning stdout on exit 0 and None otherwise."""
    try:
        result = subprocess.run(
            [git, *args],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
        LOGGER.warning("git %s failed: %s", " ".join(args), e)
        return None
    if result.returncode != 0:
        LOGGER.warning("git %s exited %d: %s", " ".join(args), result.returncode, result.stderr.strip())
        return None
    return result.stdout


def get_commit_hash(root: Union[str, Path] = ".", git: str = "git", timeout: float = 10) -> str:
    """Current HEAD commit id, or ``"unknown"`` if it cannot be determined."""
    out = _run_git(["rev-parse", "HEAD"], root, git, timeout)
    if out is None:
        return UNKNOWN_COMMIT
    commit = out.strip().lower()
    if not _COMMIT_RE.match(commit):
        LOGGER.warning("Unexpected git rev-parse output: %r", out)
        return UNKNOWN_COMMIT
    return commit


def is_working_tree_clean(root: Union[str, Path] = ".", git: str = "git", timeout: float = 10) -> bool:
    """True iff git reports no pending changes. Any failure counts as dirty."""
    out = _run_git(["status", "--porcelain"], root, git, timeout)
    if out is None:
        return False
    pending = out.strip()
    if pending:
        LOGGER.warning("Working directory has uncommitted changes:\n%s", pending)
        return False
    return True
