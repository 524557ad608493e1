"""Security check runner.

Runs third-party audit/lint tools and records a pass/fail verdict per tool.
No vulnerability detection happens here.
"""

import logging
import subprocess
from pathlib import Path
from typing import Dict, Mapping, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from codeanchor.contracts import SecurityReport
from codeanchor.kernel.hash_utils import compact_json, keccak256_hex

LOGGER = logging.getLogger(__name__)

DEFAULT_TOOL_TIMEOUT = 300.0


class SecurityTool(BaseModel):
    """An external tool invoked once per run with fixed arguments."""
    name: str
    command: Tuple[str, ...]

    model_config = ConfigDict(frozen=True)


DEFAULT_SECURITY_TOOLS: Tuple[SecurityTool, ...] = (
    SecurityTool(name="npmAudit", command=("npm", "audit", "--audit-level=moderate")),
    SecurityTool(name="eslint", command=("npx", "eslint", "src/", "--max-warnings", "0")),
)


def run_tool(tool: SecurityTool, cwd: Union[str, Path], timeout: float = DEFAULT_TOOL_TIMEOUT) -> bool:
    """Run one tool; True iff it exits with status 0."""
    try:
        result = subprocess.run(
            list(tool.command),
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        LOGGER.warning("%s timed out after %ss", tool.name, timeout)
        return False
    except OSError as e:
        LOGGER.warning("%s could not be started: %s", tool.name, e)
        return False

    if result.returncode != 0:
        LOGGER.info("%s failed with exit code %d", tool.name, result.returncode)
        return False
    LOGGER.info("%s passed", tool.name)
    return True


def run_checks(
    tools: Sequence[SecurityTool] = DEFAULT_SECURITY_TOOLS,
    cwd: Union[str, Path] = ".",
    timeout: float = DEFAULT_TOOL_TIMEOUT,
) -> Dict[str, bool]:
    """Run every tool independently, once each.

    Returns:
        Tool name -> passed, in the order the tools were given
    """
    return {tool.name: run_tool(tool, cwd, timeout) for tool in tools}


def build_security_report(checks: Mapping[str, bool], is_git_clean: bool) -> SecurityReport:
    """Derive the on-chain security summary from a check map."""
    checks = dict(checks)
    return SecurityReport(
        vulnerabilities_found=sum(1 for passed in checks.values() if not passed),
        security_scan_hash=keccak256_hex(compact_json(checks)),
        security_tools=list(checks),
        is_passing=is_git_clean and all(checks.values()),
    )
