from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides the directory listing, file reading and path arithmetic used by the
tree walker and the build pipeline. Acts as an abstraction over the 'os'
module so the engine never touches paths with ad hoc string slicing.
"""

import os
from typing import List, Optional

# -----------------------------------------------------------------------------
# GLOBAL CONSTANTS
# -----------------------------------------------------------------------------

SOURCE_ENCODING = "utf-8"

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a directory path string into an absolute filesystem path.

    Handles environment variable expansion ($VAR/%VAR%) and user home
    shortcuts (~/). Reverts to fallback if the input is empty.

    Args:
        path: Raw input path string.
        fallback: Default path to use if the input is empty.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.normpath(os.path.abspath(p))


def is_within(path: str, root: str) -> bool:
    """
    Check whether `path` is `root` itself or lies somewhere beneath it.

    Compares whole path segments, so '/a/versions2' is not within '/a/versions'.
    """
    path = os.path.normpath(path)
    root = os.path.normpath(root)
    if path == root:
        return True
    return path.startswith(root.rstrip(os.sep) + os.sep)


def rebase_path(path: str, old_root: str, new_root: str) -> str:
    """
    Replace the `old_root` prefix of `path` with `new_root`.

    Args:
        path: Absolute path located within old_root.
        old_root: Prefix to strip.
        new_root: Prefix to join the remainder under.

    Returns:
        str: The remapped absolute path.

    Raises:
        ValueError: If path does not lie within old_root.
    """
    if not is_within(path, old_root):
        raise ValueError(f"'{path}' is not located within '{old_root}'")
    rel = os.path.relpath(path, old_root)
    if rel == os.curdir:
        return os.path.normpath(new_root)
    return os.path.normpath(os.path.join(new_root, rel))

# -----------------------------------------------------------------------------
# FILESYSTEM ACCESS API
# -----------------------------------------------------------------------------

def is_directory(path: str) -> bool:
    """Return True if the path exists and is a directory."""
    return os.path.isdir(path)


def is_file(path: str) -> bool:
    """Return True if the path exists and is a regular file."""
    return os.path.isfile(path)


def list_dir(path: str) -> List[str]:
    """
    List the entry names of a directory in deterministic (sorted) order.

    Raises:
        OSError: If the directory cannot be read.
    """
    return sorted(os.listdir(path))


def read_text(path: str) -> str:
    """
    Read a source file as text.

    Raises:
        OSError: If the file cannot be read.
        UnicodeDecodeError: If the content is not valid UTF-8.
    """
    with open(path, "r", encoding=SOURCE_ENCODING) as f:
        return f.read()
