from __future__ import annotations

"""
Configuration Validation.

Normalizes a raw configuration dict so the engine can operate without
repeated defensive checks. Never touches the filesystem: whether the roots
exist is decided by the engine at build time.
"""

import logging
from typing import Any, Dict, List, Tuple

from multiverse.domain.config import get_default_config, resolve_target_root
from multiverse.infra.fs import normalize_path
from multiverse.infra.logging.config import _LEVEL_MAP

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------
def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize an engine configuration.

    strict=False:
      - corrects invalid values, reporting each correction as a warning.
      - a non-dict config falls back to defaults.

    strict=True:
      - raises TypeError/ValueError on the first invalid value.

    Args:
        config: Raw configuration (usually loaded from JSON).
        strict: Whether to raise instead of correcting.

    Returns:
        Tuple[Dict[str, Any], List[str]]: (normalized config, warnings)
    """
    warnings: List[str] = []
    defaults = get_default_config()

    if not isinstance(config, dict):
        msg = f"Invalid config: expected dict, got {type(config).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(msg + " Using defaults.")
        logger.warning(msg)
        config = {}

    merged: Dict[str, Any] = dict(defaults)
    merged.update(config)

    # 1) Layout paths
    source = _as_str(merged.get("source_root"), defaults["source_root"], "source_root", warnings, strict)
    merged["source_root"] = normalize_path(source, defaults["source_root"])
    merged["target_root"] = _as_str(merged.get("target_root"), "", "target_root", warnings, strict)
    merged["target_root"] = normalize_path(resolve_target_root(merged), merged["source_root"])

    # 2) Flags
    merged["auto_build"] = _as_bool(merged.get("auto_build"), defaults["auto_build"], "auto_build", warnings, strict)
    merged["respect_gitignore"] = _as_bool(
        merged.get("respect_gitignore"), defaults["respect_gitignore"], "respect_gitignore", warnings, strict
    )

    # 3) Lists
    merged["exclude_patterns"] = _as_list_str(
        merged.get("exclude_patterns"), defaults["exclude_patterns"], "exclude_patterns", warnings, strict
    )

    # 4) Diagnostics
    merged["log_level"] = _as_level(merged.get("log_level"), defaults["log_level"], warnings, strict)
    log_file = merged.get("log_file")
    if log_file is not None and not isinstance(log_file, str):
        _fail(f"log_file must be a string, got {type(log_file).__name__}.", TypeError, warnings, strict)
        log_file = None
    merged["log_file"] = log_file or None

    for w in warnings:
        logger.debug(f"Config correction: {w}")

    return merged, warnings

# -----------------------------------------------------------------------------
# Internal helpers
# -----------------------------------------------------------------------------
def _fail(msg: str, exc: type, warnings: List[str], strict: bool) -> None:
    if strict:
        raise exc(msg)
    warnings.append(msg)


def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    if value is None:
        return fallback
    if isinstance(value, str):
        return value
    _fail(f"'{field}' must be a string, got {type(value).__name__}. Using default.", TypeError, warnings, strict)
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0", "yes", "no"):
        return value.strip().lower() in ("true", "1", "yes")
    _fail(f"'{field}' must be a boolean, got {value!r}. Using default.", TypeError, warnings, strict)
    return fallback


def _as_list_str(value: Any, fallback: List[str], field: str, warnings: List[str], strict: bool) -> List[str]:
    if value is None:
        return list(fallback)
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    _fail(f"'{field}' must be a list of strings. Using default.", TypeError, warnings, strict)
    return list(fallback)


def _as_level(value: Any, fallback: str, warnings: List[str], strict: bool) -> str:
    if isinstance(value, str) and value.strip().upper() in _LEVEL_MAP:
        return value.strip().upper()
    _fail(f"'log_level' must be one of {sorted(_LEVEL_MAP)}, got {value!r}.", ValueError, warnings, strict)
    return fallback
