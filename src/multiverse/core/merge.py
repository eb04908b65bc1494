from __future__ import annotations

"""
Deep Merge and Clone Utilities.

Generic operations over nested mappings used to overlay a version's override
tree onto a copy of the base tree. Mappings are combined recursively; every
other value, sequences included, is an atomic unit that the override replaces
wholesale.
"""

from typing import Any, Mapping, MutableMapping

from multiverse.domain.tree_models import Branch

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def is_mapping(value: Any) -> bool:
    """Return True if the value is a nested mapping (a tree branch)."""
    return isinstance(value, Mapping)


def deep_merge(base: MutableMapping[str, Any], override: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """
    Recursively overlay `override` onto `base`, mutating `base` in place.

    For each key of `override`: if its value is a mapping it is merged into
    `base[key]` (a fresh empty mapping replaces any non-mapping there);
    otherwise it replaces `base[key]` entirely. Leaves are never combined.

    Args:
        base: Destination mapping, modified in place.
        override: Mapping whose values win on every conflict.

    Returns:
        MutableMapping[str, Any]: The mutated `base`.
    """
    for key, value in override.items():
        if is_mapping(value):
            target = base.get(key)
            if not isinstance(target, MutableMapping):
                target = _empty_like(value)
                base[key] = target
            deep_merge(target, value)
        else:
            base[key] = value
    return base


def deep_clone(tree: Any) -> Any:
    """
    Copy the container topology of a tree.

    Mappings are cloned recursively (a Branch keeps its class and path),
    lists are copied shallowly, and every other value is shared
    by reference.

    Args:
        tree: Tree (or any value) to copy.

    Returns:
        Any: A copy whose containers can be mutated without touching `tree`.
    """
    if is_mapping(tree):
        clone = _empty_like(tree)
        for key, value in tree.items():
            clone[key] = deep_clone(value)
        return clone
    if isinstance(tree, list):
        return list(tree)
    return tree

# -----------------------------------------------------------------------------
# INTERNAL HELPERS
# -----------------------------------------------------------------------------

def _empty_like(mapping: Mapping[str, Any]) -> MutableMapping[str, Any]:
    if isinstance(mapping, Branch):
        return Branch(path=mapping.path)
    return {}
