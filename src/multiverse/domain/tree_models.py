from __future__ import annotations

"""
Export Tree Data Models.

Provides the recursive node types used while building version trees. Every
node carries the path it was loaded from; that provenance is bookkeeping for
the build pass only and is stripped before trees are published.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

# -----------------------------------------------------------------------------
# STRUCTURAL COMPONENTS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Leaf:
    """
    Represents a loaded module (file) in the export tree.

    Attributes:
        value: Opaque exports produced by loading the module.
        path: Absolute filesystem path the exports originate from.
    """
    value: Any
    path: str


class Branch(dict):
    """
    Named collection of child nodes mirroring a directory.

    Behaves as a plain dict of name -> node; the originating directory is
    kept in the `path` attribute.
    """

    def __init__(self, *args: Any, path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.path = path

    def __repr__(self) -> str:
        return f"Branch(path={self.path!r}, {dict.__repr__(self)})"


ExportNode = Union[Leaf, Branch]

# Published shape: version id -> nested plain dicts of exports
VersionTree = Dict[str, Dict[str, Any]]

# -----------------------------------------------------------------------------
# WALK OPTIONS
# -----------------------------------------------------------------------------

FilterFunc = Callable[[str, str, bool], bool]
IteratorFunc = Callable[[str, str, Any], Any]


def accept_all(name: str, path: str, is_dir: bool) -> bool:
    return True


def identity(name: str, path: str, exports: Any) -> Any:
    return exports


@dataclass(frozen=True)
class WalkOptions:
    """
    Per-walk hooks.

    Attributes:
        filter: Predicate `(name, path, is_dir)`; returning False skips the
            entry entirely (no recursion, no loading).
        iterator: Transform `(name, path, exports)` applied to loaded exports
            before they become a leaf.
    """
    filter: FilterFunc = accept_all
    iterator: IteratorFunc = identity

    def merged_with(self, other: Optional[WalkOptions]) -> WalkOptions:
        """
        Overlay the non-default hooks of `other` onto these options.

        When both sides define a filter, an entry must pass both.
        """
        if other is None:
            return self

        base_filter = self.filter
        other_filter = other.filter
        if other_filter is accept_all:
            combined_filter = base_filter
        elif base_filter is accept_all:
            combined_filter = other_filter
        else:
            def combined_filter(name: str, path: str, is_dir: bool) -> bool:
                return base_filter(name, path, is_dir) and other_filter(name, path, is_dir)

        iterator = other.iterator if other.iterator is not identity else self.iterator
        return WalkOptions(filter=combined_filter, iterator=iterator)


def strip_provenance(node: Any) -> Any:
    """
    Convert a built node into its published form.

    Branches become plain dicts and leaves collapse to their exports, so no
    provenance path survives in the result.
    """
    if isinstance(node, Leaf):
        return node.value
    if isinstance(node, dict):
        return {name: strip_provenance(child) for name, child in node.items()}
    return node
