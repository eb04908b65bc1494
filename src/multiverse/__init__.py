from __future__ import annotations

from .domain.errors import (
    ConfigurationError,
    ExecutionError,
    ModuleLoadError,
    MultiverseError,
    SynthesisError,
)
from .domain.tree_models import WalkOptions
from .engine import Multiverse

__version__ = "0.1.0"

__all__ = [
    "Multiverse",
    "WalkOptions",
    "MultiverseError",
    "ConfigurationError",
    "ModuleLoadError",
    "SynthesisError",
    "ExecutionError",
]
