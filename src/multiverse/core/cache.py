from __future__ import annotations

"""
Module Path Cache.

Keyed store of module exports by absolute (logical) module path. A build
generation fills one cache and then freezes it; later lookups by path always
return the very object produced during the build, never a recomputed one.
"""

import logging
import os
from typing import Any, Dict, Iterator

from multiverse.core.sandbox import MODULE_SUFFIX, PACKAGE_INIT

logger = logging.getLogger(__name__)

_MISSING = object()


class PathCache:
    """
    Identity-stable mapping of module path -> exports.

    Entries are write-once. After `freeze()` the cache rejects writes, which
    marks the end of the build pass that populated it.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}
        self._frozen = False

    @staticmethod
    def normalize_key(path: str) -> str:
        return os.path.normcase(os.path.normpath(os.path.abspath(path)))

    def get_entry(self, path: str, default: Any = None) -> Any:
        """
        Retrieve the exports cached for an exact module path.

        Args:
            path: Module file path.
            default: Value returned on a miss.

        Returns:
            Any: The cached exports, or `default`.
        """
        return self._entries.get(self.normalize_key(path), default)

    def set_entry(self, path: str, exports: Any) -> Any:
        """
        Store exports for a module path unless an entry already exists.

        Returns:
            Any: The exports now cached for `path` (the existing ones win).

        Raises:
            RuntimeError: If the cache has been frozen.
        """
        if self._frozen:
            raise RuntimeError(f"PathCache is frozen; cannot store '{path}'")
        key = self.normalize_key(path)
        existing = self._entries.get(key, _MISSING)
        if existing is not _MISSING:
            return existing
        self._entries[key] = exports
        return exports

    def lookup(self, path: str, default: Any = None) -> Any:
        """
        Resolve a module reference that may omit its '.py' suffix.

        Tries `path`, `path.py` and `path/__init__.py`, in that order.

        Returns:
            Any: Cached exports, or `default` on a miss.
        """
        for candidate in (path, path + MODULE_SUFFIX, os.path.join(path, PACKAGE_INIT)):
            found = self._entries.get(self.normalize_key(candidate), _MISSING)
            if found is not _MISSING:
                return found
        return default

    def freeze(self) -> None:
        self._frozen = True
        logger.debug(f"PathCache frozen with {len(self._entries)} entries")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.normalize_key(path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
