from __future__ import annotations

"""
Root Logger Lifecycle.

'Multiverse.from_config' calls configure_logging before its first build;
embedding applications that construct Multiverse directly keep their own
logging setup. Configuration is idempotent, so building several engines from
config in one process installs the handlers once.

Engine and sandbox loggers only reach a QueueHandler on the root. Stream and
file handlers run on the QueueListener thread, so a build never waits on
log file I/O. shutdown_logging drains the queue and detaches the handlers,
which tests use to reset the root between cases.
"""

import atexit
import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener
from typing import List, Optional

from multiverse.infra.logging.config import _LEVEL_MAP, LoggingConfig
from multiverse.infra.logging.handlers import (
    _create_rotating_file_handler,
    _is_our_handler,
    _tag_handler,
)

# Internal state flags for idempotency and lifecycle tracking
_CONFIGURED_FLAG_ATTR: str = "_multiverse_configured"
_QUEUE_LISTENER_ATTR: str = "_multiverse_queue_listener"


# ==============================================================================
# PUBLIC API
# ==============================================================================

def configure_logging(cfg: LoggingConfig, *, force: bool = False) -> logging.Logger:
    """
    Execute idempotent configuration of the root logger using non-blocking I/O.

    Checks internal flags to avoid redundant handler attachments unless
    explicit re-configuration is requested.

    Args:
        cfg: Structural configuration for the logging system.
        force: If True, bypass idempotency checks and re-initialize handlers.

    Returns:
        logging.Logger: The initialized root logger instance.
    """
    root = logging.getLogger()

    already_configured = bool(getattr(root, _CONFIGURED_FLAG_ATTR, False))
    if already_configured and not force:
        return root

    try:
        level_int = _parse_level(cfg.level)
        root.setLevel(level_int)

        # Cleanup existing infrastructure to prevent handler leakage
        _remove_our_handlers(root)
        _stop_existing_listener(root)

        handlers_list: List[logging.Handler] = []

        if cfg.console:
            sh = logging.StreamHandler(sys.stderr)
            sh.setLevel(level_int)
            sh.setFormatter(logging.Formatter(cfg.console_fmt))
            _tag_handler(sh)
            handlers_list.append(sh)

        if cfg.log_file:
            fh = _create_rotating_file_handler(
                cfg.log_file,
                level_int,
                logging.Formatter(cfg.file_fmt, datefmt=cfg.datefmt),
                cfg.max_bytes,
                cfg.backup_count,
            )
            if fh:
                handlers_list.append(fh)

        if not handlers_list:
            return root

        log_queue: queue.Queue[logging.LogRecord] = queue.Queue(-1)
        queue_handler = QueueHandler(log_queue)
        _tag_handler(queue_handler)

        listener = QueueListener(log_queue, *handlers_list, respect_handler_level=True)
        listener.start()
        root.addHandler(queue_handler)

        setattr(root, _QUEUE_LISTENER_ATTR, listener)
        setattr(root, _CONFIGURED_FLAG_ATTR, True)

        # Flush pending records on interpreter shutdown
        atexit.register(_safe_stop_listener, listener)
        return root

    # Fallback to emergency console logging if the infrastructure fails
    except (OSError, ValueError, TypeError) as e:
        _remove_our_handlers(root)
        _stop_existing_listener(root)

        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(logging.Formatter("CRITICAL FALLBACK | %(levelname)s | %(message)s"))
        _tag_handler(sh)
        root.addHandler(sh)
        root.warning(f"Logging setup failed ({e}). Switched to emergency console.")
        return root


def shutdown_logging() -> None:
    """
    Detach our handlers and stop the queue listener, flushing pending records.
    """
    root = logging.getLogger()
    _stop_existing_listener(root)
    _remove_our_handlers(root)
    if hasattr(root, _CONFIGURED_FLAG_ATTR):
        delattr(root, _CONFIGURED_FLAG_ATTR)


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _parse_level(level: str) -> int:
    """Convert a string-based logging level to its numeric constant."""
    if not level:
        return logging.INFO
    return _LEVEL_MAP.get(str(level).strip().upper(), logging.INFO)


def _remove_our_handlers(root: logging.Logger) -> None:
    """Identify and detach all internally-managed handlers from the root."""
    for h in list(root.handlers):
        if _is_our_handler(h):
            root.removeHandler(h)
            h.close()


def _stop_existing_listener(root: logging.Logger) -> None:
    """Terminate and release the existing QueueListener to reset state."""
    listener = getattr(root, _QUEUE_LISTENER_ATTR, None)
    if listener:
        _safe_stop_listener(listener)
        setattr(root, _QUEUE_LISTENER_ATTR, None)


def _safe_stop_listener(listener: Optional[QueueListener]) -> None:
    """
    Stop a QueueListener, tolerating listeners that were already stopped.

    A stopped listener has its internal thread reset to None; calling stop()
    again would fail, so that case is skipped.
    """
    if not listener:
        return
    if getattr(listener, "_thread", None) is not None:
        listener.stop()
