from __future__ import annotations

"""
Configuration Domain Management.

Dict-based engine configuration: defaults, target root resolution and the
derived logging settings. Raw dicts are normalized by `validate_config`
before they reach the engine.
"""

import os
from typing import Any, Dict

from multiverse.core.filters import default_exclude_patterns
from multiverse.infra.logging import LoggingConfig

# -----------------------------------------------------------------------------
# Constants & Defaults
# -----------------------------------------------------------------------------
DEFAULT_VERSIONS_DIRNAME = "versions"


def get_default_config() -> Dict[str, Any]:
    """
    Generate the default engine configuration.

    An empty `target_root` means '<source_root>/versions'.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # Layout
        "source_root": os.getcwd(),
        "target_root": "",
        "auto_build": False,

        # Walk filtering
        "exclude_patterns": default_exclude_patterns(),
        "respect_gitignore": False,

        # Diagnostics
        "log_level": "INFO",
        "log_file": None,
    }


def resolve_target_root(config: Dict[str, Any]) -> str:
    """Return the configured target root, defaulting under the source root."""
    target = (config.get("target_root") or "").strip()
    if target:
        return target
    return os.path.join(config["source_root"], DEFAULT_VERSIONS_DIRNAME)


def logging_config_from(config: Dict[str, Any]) -> LoggingConfig:
    """Derive the logging subsystem settings from an engine configuration."""
    return LoggingConfig(
        level=str(config.get("log_level") or "INFO"),
        log_file=config.get("log_file") or None,
    )

