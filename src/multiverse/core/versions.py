from __future__ import annotations

"""
Version Matching Service.

Matches a requested semantic-version range against the version directory
names found under the target root. Range semantics are those of npm, as
implemented by 'semantic_version.NpmSpec'; this module only adapts directory
names and the 'v' prefix to it.

Accepted range forms (any clause may carry a leading 'v'):
- Exact versions: '0.0.1'
- Comparators, space-separated for AND: '>=0.0.1 <0.0.3'
- Caret and tilde: '^0.0.1', '~0.0.2'
- X-ranges: '0.0.x', '0.*', '*'
- Hyphen ranges: '0.0.1 - 0.0.2'
- Alternatives: '0.0.1 || 0.0.2'
"""

import logging
import re
from typing import Iterable, List, Optional

from semantic_version import NpmSpec, Version

logger = logging.getLogger(__name__)

# Directory names: 'v1', '1.2', 'v1.2.3-rc.1+build.5'
_VERSION_NAME_RX = re.compile(
    r"^[vV]?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?P<suffix>(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$"
)
# A 'v' directly in front of a version number inside a range
_RANGE_V_PREFIX_RX = re.compile(r"(?<![0-9A-Za-z])[vV](?=\d)")
_MATCH_ALL = {"*", "x", "latest"}

# -----------------------------------------------------------------------------
# PARSING
# -----------------------------------------------------------------------------

def parse_version(name: str) -> Version:
    """
    Parse a version directory name such as 'v1.2.0', '1.2.0' or 'v1'.

    Missing minor/patch components are read as 0.

    Raises:
        ValueError: If the name is not a valid semantic version.
    """
    match = _VERSION_NAME_RX.match(name.strip())
    if not match:
        raise ValueError(f"Not a version name: '{name}'")
    return Version(
        f"{match.group('major')}.{match.group('minor') or 0}.{match.group('patch') or 0}"
        f"{match.group('suffix')}"
    )


def is_version(name: str) -> bool:
    """Return True if the name parses as a version."""
    try:
        parse_version(name)
    except ValueError:
        return False
    return True


def normalize_spec(spec: str) -> Optional[NpmSpec]:
    """
    Convert a user-facing range into an NpmSpec.

    Returns None for the match-everything forms ('*', 'x', 'latest').

    Raises:
        ValueError: If the range is malformed.
    """
    raw = spec.strip()
    if raw.lower() in _MATCH_ALL:
        return None
    return NpmSpec(_RANGE_V_PREFIX_RX.sub("", raw))

# -----------------------------------------------------------------------------
# MATCHING AND ORDERING
# -----------------------------------------------------------------------------

def satisfies(version: str, spec: str) -> bool:
    """
    Check whether a version name satisfies a range.

    Invalid version names and malformed ranges never match; a malformed
    range is logged at WARNING.
    """
    try:
        parsed = parse_version(version)
    except ValueError:
        return False

    try:
        specifier = normalize_spec(spec)
    except ValueError:
        logger.warning(f"Ignoring malformed version range: '{spec}'")
        return False

    return specifier is None or specifier.match(parsed)


def sort_versions(names: Iterable[str]) -> List[str]:
    """
    Sort version names from highest to lowest.

    Names that are not valid versions are dropped.
    """
    valid = [n for n in names if is_version(n)]
    return sorted(valid, key=parse_version, reverse=True)


def match_version(versions: Iterable[str], spec: Optional[str]) -> Optional[str]:
    """
    Pick the highest version satisfying `spec`.

    Args:
        versions: Candidate version names (any order).
        spec: Requested range; empty or None means no request.

    Returns:
        Optional[str]: The matching name, or None when nothing matches.
    """
    if not spec or not spec.strip():
        return None
    try:
        specifier = normalize_spec(spec)
    except ValueError:
        logger.warning(f"Ignoring malformed version range: '{spec}'")
        return None

    for name in sort_versions(versions):
        if specifier is None or specifier.match(parse_version(name)):
            return name
    return None
