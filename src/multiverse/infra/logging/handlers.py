from __future__ import annotations

"""
Logging Handlers and Low-Level Utilities.

Provides handler factories and the tagging mechanism that lets the engine
tell its own logging infrastructure apart from handlers installed by the
host application.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

# Internal attribute used to tag and identify our own handlers
_HANDLER_TAG_ATTR: str = "_multiverse_handler"


def _tag_handler(handler: logging.Handler) -> None:
    """Mark a handler as managed by the multiverse logging subsystem."""
    setattr(handler, _HANDLER_TAG_ATTR, True)


def _is_our_handler(handler: logging.Handler) -> bool:
    """Return True if the handler carries our internal tag."""
    return bool(getattr(handler, _HANDLER_TAG_ATTR, False))


def _create_rotating_file_handler(
        log_file: str,
        level_int: int,
        formatter: logging.Formatter,
        max_bytes: int,
        backup_count: int,
) -> Optional[RotatingFileHandler]:
    """
    Initialize a RotatingFileHandler, reporting I/O failures on stderr.

    Args:
        log_file: Target path for the log file.
        level_int: Numeric logging level.
        formatter: Pre-configured logging formatter.
        max_bytes: Rollover threshold in bytes.
        backup_count: Number of archived files to keep.

    Returns:
        Optional[RotatingFileHandler]: Configured handler or None if I/O fails.
    """
    try:
        parent = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(parent, exist_ok=True)
        fh = RotatingFileHandler(
            log_file,
            maxBytes=int(max_bytes),
            backupCount=int(backup_count),
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"WARNING: Cannot open log file '{log_file}': {e}\n")
        return None

    fh.setLevel(level_int)
    fh.setFormatter(formatter)
    _tag_handler(fh)
    return fh
