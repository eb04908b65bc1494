from __future__ import annotations

"""
Multiverse Engine.

Orchestrates a version tree build for one source root / target root pair:

1. Walk the source root into the base export tree.
2. Walk every version directory into an override tree.
3. Deep-merge each override tree onto its own clone of the base tree.
4. Re-synthesize every inherited leaf at its version-correct path and record
   it in the path cache.
5. Strip provenance and publish the trees and cache in one step.

Also answers version queries and version-aware module lookups against the
last published build.
"""

import logging
import os
import pprint
import types
from typing import Any, Dict, Iterable, List, Optional

from multiverse.core.cache import PathCache
from multiverse.core.filters import load_gitignore_patterns, make_exclude_filter
from multiverse.core.layout import VersionLayout
from multiverse.core.merge import deep_clone, deep_merge
from multiverse.core.sandbox import ModuleResolver, new_module, run_file
from multiverse.core.synthesis import build_versioned_file
from multiverse.core.versions import is_version, match_version, sort_versions
from multiverse.core.walker import TreeWalker
from multiverse.domain.config import logging_config_from
from multiverse.domain.errors import (
    ConfigurationError,
    ModuleLoadError,
    MultiverseError,
)
from multiverse.domain.tree_models import (
    Branch,
    IteratorFunc,
    Leaf,
    VersionTree,
    WalkOptions,
    strip_provenance,
)
from multiverse.infra.fs import is_directory, is_file, is_within, list_dir
from multiverse.infra.logging import configure_logging
from multiverse.validate_config import validate_config

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# BUILD-GENERATION RESOLVER
# -----------------------------------------------------------------------------

class VersionedResolver(ModuleResolver):
    """
    Module resolver for one build generation.

    Sees version directories as complete trees: a module path under a
    version directory exists if either the version or the source root has
    the file. Every load goes through the generation's path cache, so each
    logical path yields a single module instance. A module that is still
    executing is handed out as is to the imports that cycle back to it,
    as `sys.modules` does. Once the cache is frozen, misses are still loaded
    but no longer stored.
    """

    def __init__(self, layout: VersionLayout, cache: PathCache) -> None:
        self.layout = layout
        self.cache = cache
        self._loading: Dict[str, types.ModuleType] = {}

    def is_module(self, path: str) -> bool:
        if is_file(path):
            return True
        return self._has_base_counterpart(path, is_file)

    def is_package(self, path: str) -> bool:
        if is_directory(path):
            return True
        return self._has_base_counterpart(path, is_directory)

    def load(self, path: str) -> Any:
        if self.layout.is_versioned(path):
            return self.build_versioned(path)
        return self.load_direct(path)

    def load_direct(self, path: str) -> Any:
        """Load a module at its own physical path."""
        return self._cached(path, lambda module: run_file(path, self, module=module))

    def build_versioned(self, path: str) -> Any:
        """Load a version-directory module combined with its base counterpart."""
        return self._cached(
            path, lambda module: build_versioned_file(self.layout.base_path(path), path, self, module=module)
        )

    def _has_base_counterpart(self, path: str, check: Any) -> bool:
        if not self.layout.version_of(path):
            return False
        return check(self.layout.base_path(path))

    def _cached(self, path: str, factory: Any) -> Any:
        key = PathCache.normalize_key(path)
        hit = self.cache.get_entry(key, _MISS)
        if hit is not _MISS:
            return hit

        in_flight = self._loading.get(key)
        if in_flight is not None:
            logger.debug(f"Import cycle reached {path}; using the partially initialised module")
            return in_flight

        module = new_module(path)
        self._loading[key] = module
        try:
            exports = factory(module)
        finally:
            del self._loading[key]

        if self.cache.frozen:
            return exports
        return self.cache.set_entry(key, exports)


_MISS = object()

# -----------------------------------------------------------------------------
# ORCHESTRATOR
# -----------------------------------------------------------------------------

class Multiverse:
    """
    Builds and serves the merged export trees of every version.

    Attributes:
        layout: Normalized source/target roots and the mapping between them.
    """

    def __init__(
            self,
            source_root: str,
            target_root: str,
            auto_build: bool = False,
            exclude_patterns: Optional[Iterable[str]] = None,
    ) -> None:
        self.layout = VersionLayout.from_paths(source_root, target_root)
        self._exclude_patterns: List[str] = list(exclude_patterns or [])

        self._tree: VersionTree = {}
        self._original: Dict[str, Any] = {}
        self._cache = PathCache()
        self._resolver: Optional[VersionedResolver] = None

        logger.debug(
            f"Multiverse created for source '{self.layout.source_root}' "
            f"and target '{self.layout.target_root}'"
        )
        if auto_build:
            self.build()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> Multiverse:
        """
        Create an engine from a configuration dict.

        Also initializes the logging subsystem from the `log_level` and
        `log_file` keys (a no-op when logging is already configured).

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        try:
            cfg, _ = validate_config(config, strict=True)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        configure_logging(logging_config_from(cfg))

        patterns = list(cfg["exclude_patterns"])
        if cfg["respect_gitignore"]:
            patterns.extend(load_gitignore_patterns(cfg["source_root"]))

        return cls(
            cfg["source_root"],
            cfg["target_root"],
            auto_build=cfg["auto_build"],
            exclude_patterns=patterns,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def source_root(self) -> str:
        return self.layout.source_root

    @property
    def target_root(self) -> str:
        return self.layout.target_root

    @property
    def is_built(self) -> bool:
        return self._resolver is not None

    @property
    def cache(self) -> PathCache:
        return self._cache

    # -------------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------------

    def build(
            self,
            base_options: Optional[WalkOptions] = None,
            version_options: Optional[WalkOptions] = None,
    ) -> VersionTree:
        """
        Build the merged export tree of every version.

        Nothing is published until the whole build succeeds; a failure leaves
        the previous generation in place.

        Args:
            base_options: Walk hooks for the source root.
            version_options: Walk hooks for each version directory.

        Returns:
            VersionTree: version id -> merged export tree.

        Raises:
            ConfigurationError: If a root is missing or unreadable.
            ModuleLoadError: If a module fails while walking a tree.
        """
        logger.info(f"Building version trees for {self.layout.source_root}")
        self._check_roots()

        resolver = VersionedResolver(self.layout, PathCache())
        walker = TreeWalker(self.layout, resolver.load_direct, resolver.build_versioned)

        defaults = self._default_options()
        base_opts = WalkOptions(filter=self._exclude_target_root).merged_with(defaults).merged_with(base_options)
        version_opts = defaults.merged_with(version_options)

        # 1. Base tree
        base_tree = walker.walk(self.layout.source_root, base_opts)

        # 2. Override trees, one per version directory
        override_trees: Dict[str, Branch] = {}
        for version in self._discover_versions():
            override_trees[version] = walker.walk(self.layout.version_dir(version), version_opts)

        # 3. Merge each override onto a private copy of the base
        merged: Dict[str, Branch] = {}
        for version, override in override_trees.items():
            merged[version] = deep_merge(deep_clone(base_tree), override)

        # 4. Cache pass
        for version, tree in merged.items():
            self._cache_leaves(resolver, tree, version, base_opts.iterator)

        # 5. Cleanup
        published: VersionTree = {v: strip_provenance(tree) for v, tree in merged.items()}
        original = strip_provenance(base_tree)
        resolver.cache.freeze()

        # 6. Publish
        self._tree, self._original, self._cache, self._resolver = (
            published, original, resolver.cache, resolver
        )
        logger.info(f"Build completed for {', '.join(self.get_versions()) or 'no versions'}")
        return self._tree

    def _check_roots(self) -> None:
        for label, root in (("Source", self.layout.source_root), ("Target", self.layout.target_root)):
            if not is_directory(root):
                raise ConfigurationError(f"{label} root is not a directory: '{root}'")
            if not os.access(root, os.R_OK | os.X_OK):
                raise ConfigurationError(f"{label} root is not readable: '{root}'")

    def _default_options(self) -> WalkOptions:
        if not self._exclude_patterns:
            return WalkOptions()
        return WalkOptions(filter=make_exclude_filter(self._exclude_patterns))

    def _exclude_target_root(self, name: str, path: str, is_dir: bool) -> bool:
        return os.path.normpath(path) != self.layout.target_root

    def _discover_versions(self) -> List[str]:
        try:
            entries = list_dir(self.layout.target_root)
        except OSError as e:
            raise ConfigurationError(f"Cannot list target root '{self.layout.target_root}': {e}") from e

        versions: List[str] = []
        for entry in entries:
            if entry.startswith(".") or not is_directory(os.path.join(self.layout.target_root, entry)):
                continue
            if not is_version(entry):
                logger.warning(f"Skipping '{entry}' in target root: not a version name")
                continue
            versions.append(entry)
        return sort_versions(versions)

    def _cache_leaves(
            self,
            resolver: VersionedResolver,
            node: Branch,
            version: str,
            iterator: IteratorFunc,
    ) -> None:
        """
        Relocate every inherited leaf of a merged tree into its version.

        Leaves already under the target root were built from the version's
        own files during the walk and are cached as they are.
        """
        for name, child in list(node.items()):
            if isinstance(child, Branch):
                self._cache_leaves(resolver, child, version, iterator)
                continue
            if not isinstance(child, Leaf):
                continue

            if self.layout.is_versioned(child.path):
                continue
            if not is_within(child.path, self.layout.source_root):
                logger.debug(f"Leaving '{child.path}' as is: outside the source root")
                continue

            vpath = self.layout.remap(child.path, version)
            try:
                exports = resolver.build_versioned(vpath)
            except ModuleLoadError as e:
                logger.warning(f"Could not synthesize {vpath} for {version}: {e}")
                continue

            node[name] = Leaf(value=iterator(name, vpath, exports), path=vpath)

    # -------------------------------------------------------------------------
    # Version queries
    # -------------------------------------------------------------------------

    def get_versions(self) -> List[str]:
        """Return the built version ids, highest first."""
        return sort_versions(self._tree.keys())

    def find_version(self, spec: Optional[str]) -> Optional[str]:
        """
        Find the highest built version satisfying `spec`.

        Returns:
            Optional[str]: The version id, or None when `spec` is empty or
            nothing satisfies it.
        """
        return match_version(self.get_versions(), spec)

    def get_version_tree(self, spec: Optional[str] = None) -> Dict[str, Any]:
        """
        Return the export tree of the version matching `spec`.

        Falls back to the original (unversioned) tree when nothing matches.
        """
        version = self.find_version(spec)
        return self._tree[version] if version else self._original

    # -------------------------------------------------------------------------
    # Version-aware lookup
    # -------------------------------------------------------------------------

    def require_version(
            self,
            relative_path: str,
            spec: Optional[str] = None,
            caller: Optional[str] = None,
    ) -> Any:
        """
        Load a module as of the version matching `spec`.

        Args:
            relative_path: Module path, with or without '.py'. Relative paths
                resolve against `caller`.
            spec: Version range; None or empty means the unversioned module.
            caller: Location of the calling code, a file (usually __file__)
                or a directory. Defaults to the current working directory.

        Returns:
            Any: The module exports.

        Raises:
            MultiverseError: If no build has completed yet.
            ModuleLoadError: If the module cannot be found or fails to load.
        """
        if self._resolver is None:
            raise MultiverseError("Multiverse has not been built; call build() first")

        version = self.find_version(spec)
        logical = os.path.normpath(os.path.join(_caller_dir(caller), relative_path))

        target = logical
        if version and not self.layout.is_versioned(logical) and is_within(logical, self.layout.source_root):
            target = self.layout.remap(logical, version)

        cached = self._cache.lookup(target, _MISS)
        if cached is not _MISS:
            return cached

        module_path = self._resolver.locate(target)
        if module_path is None:
            raise ModuleLoadError(target, "module not found")
        logger.debug(f"Cache miss for {target}; loading {module_path}")
        return self._resolver.load(module_path)

    require = require_version

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    @staticmethod
    def log(*values: Any) -> None:
        """Dump values at DEBUG level in a readable, fully expanded form."""
        for value in values:
            if callable(value) and hasattr(value, "__qualname__"):
                value = f"<callable {value.__qualname__}>"
            logger.debug("\n" + pprint.pformat(value, width=100) + "\n")


def _caller_dir(caller: Optional[str]) -> str:
    if not caller:
        return os.getcwd()
    caller = os.path.abspath(caller)
    if is_directory(caller):
        return caller
    return os.path.dirname(caller)
