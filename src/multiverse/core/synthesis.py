from __future__ import annotations

"""
Versioned Module Build Pipeline.

Splices a base module and its version override into a single module and
executes it through the sandbox. The override's statements run after the
base's, in the same top-level namespace, so an override file only has to
redefine the functions, classes or attributes that changed in its version.
"""

import ast
import logging
import os
import types
from typing import Any, List, Mapping, Optional

from multiverse.core.sandbox import ModuleResolver, run_source
from multiverse.domain.errors import SynthesisError
from multiverse.infra.fs import is_file, read_text

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# SOURCE COMBINATION
# -----------------------------------------------------------------------------

def combine_sources(
        base_source: str,
        override_source: str,
        filename: str,
        base_filename: Optional[str] = None,
) -> types.CodeType:
    """
    Combine two source fragments into one compiled module.

    Both fragments are parsed separately, so their statements can never run
    together into one expression. The statement lists are concatenated with
    the base first; `from __future__` imports of either fragment are hoisted
    to the top of the combined module, as the compiler requires.

    Args:
        base_source: Source text of the base module.
        override_source: Source text of the version override.
        filename: Logical filename the combined module is compiled under.
        base_filename: Path reported if the base fragment fails to parse.

    Returns:
        types.CodeType: Code object for the combined module.

    Raises:
        SynthesisError: If either fragment has invalid syntax.
    """
    base_tree = _parse(base_source, base_filename or filename)
    override_tree = _parse(override_source, filename)

    future_imports: List[ast.stmt] = []
    body: List[ast.stmt] = []
    for tree in (base_tree, override_tree):
        for node in tree.body:
            if isinstance(node, ast.ImportFrom) and node.module == "__future__":
                future_imports.append(node)
            else:
                body.append(node)

    combined = ast.Module(body=future_imports + body, type_ignores=[])
    try:
        return compile(combined, filename, "exec", dont_inherit=True)
    except (SyntaxError, ValueError) as e:
        raise SynthesisError(filename, f"cannot compile combined module ({e})") from e

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def build_versioned_file(
        base_path: str,
        override_path: str,
        resolver: Optional[ModuleResolver] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        module: Optional[types.ModuleType] = None,
) -> types.ModuleType:
    """
    Build the version of a module that combines a base file and its override.

    The override path is used as the logical path, so relative imports in
    either fragment resolve against the override's own directory. When the
    override file does not exist the base runs alone at that path (an
    untouched module relocated into a version); when the base does not exist
    the override runs alone (a module introduced by that version).

    Args:
        base_path: Path of the base module under the source root.
        override_path: Path of the module under a version directory.
        resolver: Module layout used for relative imports.
        overrides: Import overrides forwarded to the sandbox.
        module: Pre-created module object to execute into.

    Returns:
        types.ModuleType: The executed module.

    Raises:
        SynthesisError: If neither file exists, a file is unreadable, or the
            combination does not compile.
        ExecutionError: If the combined module raises while executing.
    """
    has_base = is_file(base_path)
    has_override = is_file(override_path)

    if not has_base and not has_override:
        raise SynthesisError(override_path, f"no module at '{override_path}' or base '{base_path}'")

    base_source = _read(base_path) if has_base else ""
    override_source = _read(override_path) if has_override else ""

    if has_base and has_override:
        logger.debug(f"Combining {base_path} with {os.path.basename(override_path)} override")
        code = combine_sources(base_source, override_source, override_path, base_filename=base_path)
    else:
        source = base_source if has_base else override_source
        code = _compile_single(source, override_path, base_path if has_base else override_path)

    return run_source(code, override_path, resolver, overrides, module)

# -----------------------------------------------------------------------------
# INTERNAL HELPERS
# -----------------------------------------------------------------------------

def _read(path: str) -> str:
    try:
        return read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        raise SynthesisError(path, f"cannot read source ({e})") from e


def _parse(source: str, filename: str) -> ast.Module:
    try:
        return ast.parse(source, filename=filename)
    except SyntaxError as e:
        raise SynthesisError(filename, f"invalid syntax: {e.msg} (line {e.lineno})") from e


def _compile_single(source: str, filename: str, origin: str) -> types.CodeType:
    """Compile one fragment under `filename`, blaming `origin` on failure."""
    try:
        return compile(source, filename, "exec", dont_inherit=True)
    except SyntaxError as e:
        raise SynthesisError(origin, f"invalid syntax: {e.msg} (line {e.lineno})") from e
