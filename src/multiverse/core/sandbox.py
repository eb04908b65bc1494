from __future__ import annotations

"""
Execution Sandbox.

Runs a unit of Python source inside a fresh module namespace that behaves as
if the file lived at a chosen logical path. The namespace gets its own
builtins whose '__import__' resolves relative imports against the logical
path's directory instead of a package in sys.modules. This is what lets a
synthesized (base + override) module import its siblings from a version
directory it was never physically written to.

Nothing executed here is registered in sys.modules and no binding leaks into
the caller's globals.
"""

import builtins
import logging
import os
import types
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from multiverse.domain.errors import ExecutionError, ModuleLoadError, SynthesisError
from multiverse.infra.fs import is_directory, is_file, read_text

logger = logging.getLogger(__name__)

Source = Union[str, types.CodeType]

MODULE_SUFFIX = ".py"
PACKAGE_INIT = "__init__.py"
SANDBOX_LOGGER_PREFIX = "multiverse.sandbox"

# -----------------------------------------------------------------------------
# MODULE RESOLUTION
# -----------------------------------------------------------------------------

class ModuleResolver:
    """
    View of the module layout used to satisfy relative imports.

    The default implementation reflects the physical filesystem and executes
    every requested module afresh. The engine substitutes a resolver that
    also sees the virtual files of each version directory and serves loads
    from its path cache.
    """

    def is_module(self, path: str) -> bool:
        """Return True if a module file exists (logically) at `path`."""
        return is_file(path)

    def is_package(self, path: str) -> bool:
        """Return True if a directory exists (logically) at `path`."""
        return is_directory(path)

    def load(self, path: str) -> Any:
        """Produce the exports of the module at `path`."""
        return run_file(path, self)

    def locate(self, target: str) -> Optional[str]:
        """
        Map an extensionless module location to the file that implements it.

        Tries '<target>.py', then '<target>/__init__.py', then `target`
        itself when it already names a module file.
        """
        candidates = (
            target + MODULE_SUFFIX,
            os.path.join(target, PACKAGE_INIT),
            target,
        )
        for candidate in candidates:
            if candidate.endswith(MODULE_SUFFIX) and self.is_module(candidate):
                return os.path.normpath(candidate)
        return None

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def run_source(
        source: Source,
        logical_path: str,
        resolver: Optional[ModuleResolver] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        module: Optional[types.ModuleType] = None,
) -> types.ModuleType:
    """
    Execute source code as a module located at `logical_path`.

    The module namespace starts empty apart from the standard dunders and
    two injected bindings: a private builtins dict (with the sandboxed
    import) and `logger`, a logger named after the module.

    Args:
        source: Source text or an already compiled code object.
        logical_path: Absolute path the module pretends to live at.
        resolver: Module layout used for relative imports. Defaults to the
            physical filesystem without caching.
        overrides: Import name -> object consulted before any resolution.
            Relative names keep their leading dots (e.g. '.helpers').
        module: Module object to execute into, created beforehand with
            `new_module` so that import cycles can reach it while it is
            still executing. A fresh one is created when omitted.

    Returns:
        types.ModuleType: The executed module (its namespace is the exports).

    Raises:
        SynthesisError: If the source text does not compile.
        ExecutionError: If the module's code raises.
    """
    logical_path = os.path.abspath(logical_path)
    if module is None:
        module = new_module(logical_path)
    importer = SandboxImporter(logical_path, resolver or ModuleResolver(), overrides)

    namespace = module.__dict__
    namespace["__builtins__"] = importer.builtins()
    namespace["logger"] = logging.getLogger(f"{SANDBOX_LOGGER_PREFIX}.{module.__name__}")

    code = _compile(source, logical_path)
    try:
        exec(code, namespace)
    except ModuleLoadError:
        # A dependency failed to load; keep its own path on the error
        raise
    except Exception as e:
        raise ExecutionError(logical_path, f"{type(e).__name__}: {e}") from e

    logger.debug(f"Executed module at {logical_path}")
    return module


def run_file(
        path: str,
        resolver: Optional[ModuleResolver] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        module: Optional[types.ModuleType] = None,
) -> types.ModuleType:
    """
    Read a module file and execute it at its own path.

    Raises:
        SynthesisError: If the file cannot be read or compiled.
        ExecutionError: If the module's code raises.
    """
    try:
        source = read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        raise SynthesisError(path, f"cannot read source ({e})") from e
    return run_source(source, path, resolver, overrides, module)

# -----------------------------------------------------------------------------
# IMPORT HOOK
# -----------------------------------------------------------------------------

class SandboxImporter:
    """
    Replacement for `__import__` bound to one logical module path.

    Resolution order: the override mapping (by requested name), then
    absolute names through the ambient import system, then relative names
    against the logical path's directory through the resolver.
    """

    def __init__(
            self,
            logical_path: str,
            resolver: ModuleResolver,
            overrides: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._logical_path = logical_path
        self._resolver = resolver
        self._overrides: Dict[str, Any] = dict(overrides or {})

    def builtins(self) -> Dict[str, Any]:
        """Build a private builtins dict whose `__import__` is this hook."""
        namespace = dict(vars(builtins))
        namespace["__import__"] = self
        return namespace

    def __call__(
            self,
            name: str,
            globals: Optional[Mapping[str, Any]] = None,
            locals: Optional[Mapping[str, Any]] = None,
            fromlist: Optional[Sequence[str]] = (),
            level: int = 0,
    ) -> Any:
        requested = "." * level + name
        if requested in self._overrides:
            return self._overrides[requested]
        if level == 0:
            return builtins.__import__(name, globals, locals, fromlist or (), 0)
        return self._import_relative(name, tuple(fromlist or ()), level)

    def _import_relative(self, name: str, fromlist: Tuple[str, ...], level: int) -> Any:
        anchor = self._anchor_dir(level)
        target = os.path.join(anchor, *name.split(".")) if name else anchor

        module, package_dir = self._load_location(target, allow_file=bool(name))
        if module is None:
            raise ImportError(
                f"No module named '{'.' * level}{name}' relative to '{self._logical_path}'"
            )

        # 'from .pkg import sub' may name submodules rather than attributes
        if package_dir:
            for item in fromlist:
                if item == "*" or hasattr(module, item):
                    continue
                sub_path = self._resolver.locate(os.path.join(package_dir, item))
                if sub_path:
                    setattr(module, item, self._resolver.load(sub_path))
        return module

    def _anchor_dir(self, level: int) -> str:
        anchor = os.path.dirname(self._logical_path)
        for _ in range(level - 1):
            anchor = os.path.dirname(anchor)
        return anchor

    def _load_location(self, target: str, allow_file: bool = True) -> Tuple[Any, Optional[str]]:
        """
        Load whatever implements `target`.

        Returns (module, package_dir); package_dir is set when the target is a
        directory, so names in the fromlist may refer to its submodules.
        `allow_file` is False for the bare package form (`from . import x`).
        """
        module_file = os.path.normpath(target + MODULE_SUFFIX)
        if allow_file and self._resolver.is_module(module_file):
            return self._resolver.load(module_file), None

        init_file = os.path.normpath(os.path.join(target, PACKAGE_INIT))
        if init_file != self._logical_path and self._resolver.is_module(init_file):
            return self._resolver.load(init_file), target

        if self._resolver.is_package(target):
            namespace = types.ModuleType(os.path.basename(target))
            namespace.__path__ = [target]  # type: ignore[attr-defined]
            return namespace, target

        return None, None

# -----------------------------------------------------------------------------
# MODULE OBJECTS
# -----------------------------------------------------------------------------

def new_module(logical_path: str) -> types.ModuleType:
    """Create the empty module object that `run_source` executes into."""
    logical_path = os.path.abspath(logical_path)
    stem = os.path.splitext(os.path.basename(logical_path))[0]
    if stem == "__init__":
        stem = os.path.basename(os.path.dirname(logical_path))
    module = types.ModuleType(stem)
    module.__file__ = logical_path
    return module

# -----------------------------------------------------------------------------
# INTERNAL HELPERS
# -----------------------------------------------------------------------------

def _compile(source: Source, logical_path: str) -> types.CodeType:
    if isinstance(source, types.CodeType):
        return source
    try:
        return compile(source, logical_path, "exec", dont_inherit=True)
    except SyntaxError as e:
        raise SynthesisError(logical_path, f"invalid syntax: {e.msg} (line {e.lineno})") from e
