from __future__ import annotations

"""
Engine Logging Settings.

The engine logs through the standard 'logging' tree:
- 'multiverse.engine' reports build milestones at INFO, skipped target-root
  entries at WARNING and resolver cache traffic at DEBUG.
- 'multiverse.core.*' warns about name collisions and malformed ranges or
  exclude patterns, and logs each executed module at DEBUG.
- 'multiverse.sandbox.<module>' is the 'logger' bound inside every executed
  module, so messages from the versioned code share the same handlers.

LoggingConfig is what 'Multiverse.from_config' derives from the 'log_level'
and 'log_file' keys before building.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

# Accepted 'log_level' spellings
_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(frozen=True)
class LoggingConfig:
    """
    Root logger settings applied once per process.

    Formats include the logger name so sandbox output can be told apart
    from engine output.

    Attributes:
        level: Root level; 'log_level' in the engine config.
        console: Write records to stderr.
        log_file: Rotating log file; 'log_file' in the engine config.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files kept next to the log file.
        console_fmt: stderr format.
        file_fmt: Log file format.
        datefmt: Timestamp format for the log file.
    """
    level: str = "INFO"
    console: bool = True
    log_file: Optional[str] = None

    max_bytes: int = 1024 * 1024  # Default: 1MB
    backup_count: int = 3

    console_fmt: str = "%(levelname)s | %(name)s | %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
