from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. Shared fixtures pointing at the example module tree and a built engine.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from multiverse.engine import Multiverse  # noqa: E402

EXAMPLE_ROOT = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures", "example")
EXAMPLE_VERSIONS = os.path.join(EXAMPLE_ROOT, "versions")


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture(scope="session")
def example_root() -> str:
    """
    Absolute path of the example module tree.

    Layout:
    /example
      /lib        index, helpers, objects, singleton, util/numbers
      /versions
        /v0.0.1   overrides lib/index
        /v0.0.2   overrides lib/helpers, lib/objects; adds lib/util/extra
        /v0.0.3   overrides lib/index, lib/singleton
    """
    return EXAMPLE_ROOT


@pytest.fixture(scope="session")
def example_versions() -> str:
    return EXAMPLE_VERSIONS


@pytest.fixture(scope="module")
def verse() -> Multiverse:
    """A Multiverse built once over the example tree."""
    return Multiverse(EXAMPLE_ROOT, EXAMPLE_VERSIONS, auto_build=True)


@pytest.fixture
def write_tree(tmp_path: Path):
    """
    Materialize a {relative_path: source} mapping under tmp_path.

    Returns:
        Callable returning the tmp_path root as a string.
    """
    def _write(files: Dict[str, Any]) -> str:
        for rel, content in files.items():
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return str(tmp_path)

    return _write
