from __future__ import annotations

"""
Tree Walk Filtering.

Regex-based exclusion rules for tree walks, with optional translation of a
root's .gitignore globs. Produces the `filter(name, path, is_dir)` hooks
consumed by the tree walker.
"""

import fnmatch
import logging
import os
import re
from typing import Iterable, List

from multiverse.domain.tree_models import FilterFunc

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# CONFIGURATION DEFAULTS
# -----------------------------------------------------------------------------

def default_exclude_patterns() -> List[str]:
    """
    Get the exclusion patterns applied to every walk by default.

    Returns:
        List[str]: Regexes for compiled artifacts and tooling directories.
    """
    return [
        r".*\.py[cod]$",
        r"^(__pycache__|\.git|\.idea|\.vscode|\.mypy_cache|\.pytest_cache)$",
        r"^\.",
    ]

# -----------------------------------------------------------------------------
# PATTERN COMPILATION AND MATCHING
# -----------------------------------------------------------------------------

def compile_patterns(patterns: Iterable[str]) -> List[re.Pattern]:
    """
    Transform raw regex strings into compiled Pattern objects.

    Malformed regexes are logged and discarded.

    Args:
        patterns: Raw regex strings.

    Returns:
        List[re.Pattern]: Compiled regex objects.
    """
    compiled: List[re.Pattern] = []
    for p in patterns:
        try:
            compiled.append(re.compile(p))
        except re.error as e:
            logger.warning(f"Discarding invalid exclude pattern '{p}': {e}")
    return compiled


def matches_any(name: str, compiled_patterns: List[re.Pattern]) -> bool:
    """Return True if the name matches at least one compiled pattern."""
    return any(rx.search(name) for rx in compiled_patterns)


def make_exclude_filter(patterns: Iterable[str]) -> FilterFunc:
    """
    Build a walk filter rejecting entries whose name matches any pattern.

    Args:
        patterns: Raw regex strings matched against entry names.

    Returns:
        FilterFunc: Predicate suitable for `WalkOptions.filter`.
    """
    compiled = compile_patterns(patterns)

    def _filter(name: str, path: str, is_dir: bool) -> bool:
        return not matches_any(name, compiled)

    return _filter

# -----------------------------------------------------------------------------
# GITIGNORE INTEGRATION
# -----------------------------------------------------------------------------

def load_gitignore_patterns(root_path: str) -> List[str]:
    """
    Parse a .gitignore file and translate its glob rules into regexes.

    Negations ('!pattern') are not supported and are skipped.

    Args:
        root_path: Directory containing the .gitignore file.

    Returns:
        List[str]: Equivalent regex strings (empty if there is no file).
    """
    gitignore_path = os.path.join(root_path, ".gitignore")
    if not os.path.isfile(gitignore_path):
        return []

    regex_patterns: List[str] = []
    try:
        with open(gitignore_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or line.startswith("!"):
                    continue
                regex_patterns.append(fnmatch.translate(line.rstrip("/")))
    except OSError as e:
        logger.warning(f"Cannot read {gitignore_path}: {e}")

    return regex_patterns
