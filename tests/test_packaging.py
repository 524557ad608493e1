"""Packaging regression tests.

Tests that verify the source layout and the installed package surface.
"""

from pathlib import Path


def test_source_layout():
    """The package lives under src/ with its kernel and _internal subpackages."""
    here = Path(__file__).resolve().parent
    repo_root = here.parent
    src_pkg = repo_root / "src" / "codeanchor"

    assert src_pkg.exists(), "codeanchor package should exist in src/"
    assert (src_pkg / "kernel" / "__init__.py").exists(), "codeanchor.kernel should be a package"
    assert (src_pkg / "_internal" / "__init__.py").exists(), "codeanchor._internal should be a package"
    assert (src_pkg / "_internal" / "ledger" / "__init__.py").exists()


def test_import_boundary():
    import codeanchor
    import codeanchor.kernel  # noqa: F401

    # Version check: in dev mode it's "dev", in installed mode it's "1.0.0"
    assert codeanchor.__version__ in ("1.0.0", "dev")


def test_console_script_declared():
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    assert 'codeanchor = "codeanchor.cli:main"' in pyproject.read_text(encoding="utf-8")


def test_web3_pinned_below_8():
    """ws(s) endpoints use LegacyWebSocketProvider, which web3 8 no longer ships."""
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    assert '"web3>=7.0,<8"' in pyproject.read_text(encoding="utf-8")
