from __future__ import annotations

"""
Integration tests for Logging Infrastructure.

Verifies the asynchronous QueueListener architecture, idempotency
of configuration, log file rotation and the engine's own records reaching
the configured file.
"""

import logging
import time
from logging.handlers import QueueHandler
from pathlib import Path

import pytest

from multiverse import Multiverse
from multiverse.domain.config import get_default_config, logging_config_from
from multiverse.infra.logging import (
    _CONFIGURED_FLAG_ATTR,
    _HANDLER_TAG_ATTR,
    _QUEUE_LISTENER_ATTR,
    LoggingConfig,
    configure_logging,
    shutdown_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Clean up our root logger handlers before and after each test."""
    shutdown_logging()
    yield
    shutdown_logging()


def _our_handlers() -> list:
    return [h for h in logging.getLogger().handlers if getattr(h, _HANDLER_TAG_ATTR, False)]


def test_logging_idempotency() -> None:
    """Repeated configuration does not duplicate handlers."""
    cfg = LoggingConfig(level="INFO", console=True)

    configure_logging(cfg)
    initial = len(_our_handlers())

    configure_logging(cfg)
    assert len(_our_handlers()) == initial, "Handlers were duplicated."


def test_force_reconfigures_level() -> None:
    configure_logging(LoggingConfig(level="INFO"))
    configure_logging(LoggingConfig(level="DEBUG"), force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert len(_our_handlers()) == 1


def test_queue_listener_architecture() -> None:
    """The root logger writes through a QueueHandler drained by a listener."""
    configure_logging(LoggingConfig(level="INFO", console=True))

    handlers = _our_handlers()
    assert len(handlers) == 1
    assert isinstance(handlers[0], QueueHandler)
    assert getattr(logging.getLogger(), _QUEUE_LISTENER_ATTR) is not None


def test_no_outputs_configures_nothing() -> None:
    configure_logging(LoggingConfig(console=False, log_file=None))
    assert _our_handlers() == []
    assert not getattr(logging.getLogger(), _CONFIGURED_FLAG_ATTR, False)


def test_log_rotation(tmp_path: Path) -> None:
    """File rotation happens once the size limit is exceeded."""
    log_file = tmp_path / "test_rotate.log"
    cfg = LoggingConfig(
        level="DEBUG",
        console=False,
        log_file=str(log_file),
        max_bytes=100,
        backup_count=1,
    )

    configure_logging(cfg)
    logger = logging.getLogger("test_rotate")
    for _ in range(10):
        logger.debug("This is a long log message to trigger rotation." * 5)

    shutdown_logging()

    assert log_file.exists()
    assert (tmp_path / "test_rotate.log.1").exists(), "Rotation backup file was not created."


def test_build_records_reach_log_file(tmp_path: Path, example_root: str, example_versions: str) -> None:
    """Engine and sandboxed module records are written to the configured file."""
    log_file = tmp_path / "build.log"
    cfg = get_default_config()
    cfg.update({"log_level": "DEBUG", "log_file": str(log_file)})
    configure_logging(logging_config_from(cfg), force=True)

    engine = Multiverse(example_root, example_versions, auto_build=True)
    engine.get_version_tree("0.0.2")["lib"]["objects"].Foo().one()
    time.sleep(0.1)
    shutdown_logging()

    content = log_file.read_text(encoding="utf-8")
    assert "Build completed for v0.0.3, v0.0.2, v0.0.1" in content
    assert "multiverse.sandbox.objects" in content


def test_from_config_applies_logging_keys(tmp_path: Path, example_root: str, example_versions: str) -> None:
    """'log_level' and 'log_file' from an engine configuration drive the logging setup."""
    log_file = tmp_path / "from_config.log"

    engine = Multiverse.from_config({
        "source_root": example_root,
        "target_root": example_versions,
        "auto_build": True,
        "log_level": "debug",
        "log_file": str(log_file),
    })
    shutdown_logging()

    assert engine.is_built
    assert logging.getLogger().level == logging.DEBUG
    content = log_file.read_text(encoding="utf-8")
    assert "Building version trees for" in content
    assert "Executed module at" in content


def test_repeated_from_config_installs_handlers_once(example_root: str, example_versions: str) -> None:
    """A second engine built from config reuses the logging setup of the first."""
    config = {"source_root": example_root, "target_root": example_versions, "log_level": "INFO"}

    Multiverse.from_config(config)
    Multiverse.from_config(dict(config, log_level="DEBUG"))

    assert len(_our_handlers()) == 1
    assert logging.getLogger().level == logging.INFO
