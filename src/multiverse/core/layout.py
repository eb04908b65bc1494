from __future__ import annotations

"""
Version Directory Layout.

Path arithmetic between the source root and the version directories under
the target root:

    <source_root>/lib/index.py
    <target_root>/<version>/lib/index.py
"""

import os
from dataclasses import dataclass
from typing import Optional

from multiverse.infra.fs import is_within, normalize_path, rebase_path


@dataclass(frozen=True)
class VersionLayout:
    """
    Normalized pair of roots with the mappings between them.

    Attributes:
        source_root: Root of the base (unversioned) module tree.
        target_root: Directory holding one subdirectory per version.
    """
    source_root: str
    target_root: str

    @classmethod
    def from_paths(cls, source_root: str, target_root: str) -> VersionLayout:
        return cls(
            source_root=normalize_path(source_root, os.getcwd()),
            target_root=normalize_path(target_root, os.getcwd()),
        )

    def is_versioned(self, path: str) -> bool:
        """Return True if the path lies under the target root."""
        return is_within(os.path.abspath(path), self.target_root)

    def version_of(self, path: str) -> Optional[str]:
        """Return the version segment of a path under the target root."""
        if not self.is_versioned(path):
            return None
        rel = os.path.relpath(os.path.abspath(path), self.target_root)
        if rel == os.curdir:
            return None
        return rel.split(os.sep)[0]

    def version_dir(self, version: str) -> str:
        return os.path.join(self.target_root, version)

    def relative_path(self, path: str) -> str:
        """
        Path of a versioned file relative to its version directory.

        '<target_root>/v1.0.0/lib/index.py' -> 'lib/index.py'
        """
        rel = os.path.relpath(os.path.abspath(path), self.target_root)
        parts = rel.split(os.sep)[1:]
        return os.path.join(*parts) if parts else ""

    def base_path(self, path: str) -> str:
        """Counterpart of a versioned path under the source root."""
        rel = self.relative_path(path)
        return os.path.normpath(os.path.join(self.source_root, rel)) if rel else self.source_root

    def remap(self, path: str, version: str) -> str:
        """
        Relocate a source-root path into a version directory.

        Raises:
            ValueError: If the path is not under the source root.
        """
        return rebase_path(os.path.abspath(path), self.source_root, self.version_dir(version))
