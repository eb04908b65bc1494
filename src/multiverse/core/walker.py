from __future__ import annotations

"""
Export Tree Walker.

Recursively maps a directory onto a nested export tree: directories become
Branches and module files become Leaves holding their loaded exports. Files
under the target root are built through the versioned build pipeline, every
other file is loaded directly. Each node records the path it came from.
"""

import logging
import os
from typing import Any, Callable, Optional

from multiverse.core.layout import VersionLayout
from multiverse.core.sandbox import MODULE_SUFFIX
from multiverse.domain.errors import ConfigurationError
from multiverse.domain.tree_models import Branch, Leaf, WalkOptions
from multiverse.infra.fs import is_directory, list_dir

logger = logging.getLogger(__name__)

ModuleLoader = Callable[[str], Any]

# Entries that are never part of an export tree
_SKIPPED_DIRS = {"__pycache__"}


class TreeWalker:
    """
    Builds export trees for one source/target root pair.

    Loading is delegated to the two callables supplied by the orchestrator,
    so the walker never decides how modules are cached.
    """

    def __init__(
            self,
            layout: VersionLayout,
            load_direct: ModuleLoader,
            build_versioned: ModuleLoader,
    ) -> None:
        self.layout = layout
        self._load_direct = load_direct
        self._build_versioned = build_versioned

    def walk(self, root_dir: str, options: Optional[WalkOptions] = None) -> Branch:
        """
        Walk a directory into a Branch of Branches and Leaves.

        Args:
            root_dir: Directory to traverse.
            options: Filter and exports iterator hooks.

        Returns:
            Branch: Export tree tagged with `root_dir`.

        Raises:
            ConfigurationError: If `root_dir` is not a readable directory.
            ModuleLoadError: If a module fails to load (fatal for the walk).
        """
        opts = options or WalkOptions()
        root_dir = os.path.abspath(root_dir)

        if not is_directory(root_dir):
            raise ConfigurationError(f"Not a directory: '{root_dir}'")
        try:
            entries = list_dir(root_dir)
        except OSError as e:
            raise ConfigurationError(f"Cannot list '{root_dir}': {e}") from e

        versioned = self.layout.is_versioned(root_dir)
        branch = Branch(path=root_dir)

        for entry in entries:
            if entry.startswith(".") or entry in _SKIPPED_DIRS:
                continue

            fpath = os.path.join(root_dir, entry)
            is_dir = is_directory(fpath)

            if not opts.filter(entry, fpath, is_dir):
                logger.debug(f"Filtered out: {fpath}")
                continue

            if is_dir:
                self._attach(branch, entry, self.walk(fpath, opts))
                continue

            name, ext = os.path.splitext(entry)
            if ext != MODULE_SUFFIX:
                continue

            exports = self._build_versioned(fpath) if versioned else self._load_direct(fpath)
            exports = opts.iterator(name, fpath, exports)
            self._attach(branch, name, Leaf(value=exports, path=fpath))

        return branch

    @staticmethod
    def _attach(branch: Branch, name: str, node: Any) -> None:
        if name in branch:
            previous = branch[name]
            logger.warning(
                f"Name collision for '{name}' in {branch.path}: "
                f"'{_node_path(node)}' replaces '{_node_path(previous)}'"
            )
        branch[name] = node


def _node_path(node: Any) -> Optional[str]:
    return getattr(node, "path", None)
