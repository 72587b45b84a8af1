"""Packaging regression tests.

Tests that verify the package structure and import boundary.
"""

from pathlib import Path


def test_source_layout():
    """Test that the src layout holds the package, kernel and _internal."""
    here = Path(__file__).resolve().parent
    repo_root = here.parent
    src_pkg = repo_root / "src" / "anchorlens"

    assert src_pkg.exists(), "anchorlens package should exist in src/"
    assert (src_pkg / "kernel").exists(), "anchorlens.kernel should exist in src/"
    assert (src_pkg / "_internal").exists(), "anchorlens._internal should exist"
    assert (src_pkg / "cli.py").exists(), "console script module should exist"


def test_import_boundary():
    """Test that the package and its kernel import without network access."""
    import anchorlens
    import anchorlens.kernel.decoder  # noqa: F401

    # Version: in dev mode it's "dev", in installed mode it's "1.0.0"
    assert anchorlens.__version__ in ("1.0.0", "dev")
