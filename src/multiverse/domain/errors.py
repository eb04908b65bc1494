from __future__ import annotations

"""
Multiverse Error Taxonomy.

Distinguishes fatal configuration problems from per-module load failures.
Load failures carry the logical path of the module that failed so callers
can decide whether to abort or skip-and-log.
"""

from typing import Optional

# -----------------------------------------------------------------------------
# BASE ERRORS
# -----------------------------------------------------------------------------

class MultiverseError(Exception):
    """Root of every error raised by the multiverse engine."""


class ConfigurationError(MultiverseError):
    """Source or target root is missing, unreadable or malformed."""

# -----------------------------------------------------------------------------
# MODULE LOADING ERRORS
# -----------------------------------------------------------------------------

class ModuleLoadError(MultiverseError):
    """
    A module could not be produced for a given logical path.

    Attributes:
        path: Logical path of the module being loaded.
    """

    def __init__(self, path: str, message: Optional[str] = None) -> None:
        self.path = path
        detail = f": {message}" if message else ""
        super().__init__(f"{path}{detail}")


class SynthesisError(ModuleLoadError):
    """Combining or compiling the base and override sources failed."""


class ExecutionError(ModuleLoadError):
    """The module's own code raised while executing in the sandbox."""
