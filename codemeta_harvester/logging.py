"""Logging utilities for harvester runs."""

from __future__ import annotations

import logging
import logging.handlers
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

_LOGGER_NAME = "codemeta_harvester"
_BUFFER_CAPACITY = 2000


class _DiagnosticsBuffer(logging.handlers.MemoryHandler):
    """Keeps the most recent records instead of flushing when full."""

    def shouldFlush(self, record: logging.LogRecord) -> bool:
        if len(self.buffer) > self.capacity:
            del self.buffer[0]
        return False


_diagnostics: _DiagnosticsBuffer | None = None


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the harvester hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(*, debug: bool = False) -> logging.Logger:
    """Configure the harvester logger with console output and a diagnostics buffer."""
    global _diagnostics

    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[harvester] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    _diagnostics = None
    if not debug:
        # Debug records are only replayed when a fatal error ends the run.
        target = logging.StreamHandler(sys.stderr)
        target.setFormatter(
            logging.Formatter("[harvester] (diagnostics) %(levelname)s %(name)s: %(message)s")
        )
        buffer = _DiagnosticsBuffer(_BUFFER_CAPACITY, target=target, flushOnClose=False)
        buffer.setLevel(logging.DEBUG)
        logger.addHandler(buffer)
        _diagnostics = buffer

    return logger


def flush_diagnostics() -> None:
    """Write buffered debug records to stderr, used right before a fatal exit."""
    if _diagnostics is None:
        return
    _diagnostics.flush()


@contextmanager
def project_log(log_file: Path | None) -> Iterator[None]:
    """Mirror all harvester output into ``log_file`` while the block runs."""
    if log_file is None:
        yield
        return

    logger = logging.getLogger(_LOGGER_NAME)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    previous_level = logger.level
    if logger.getEffectiveLevel() > logging.DEBUG:
        logger.setLevel(logging.DEBUG)
    try:
        yield
    finally:
        logger.setLevel(previous_level)
        logger.removeHandler(handler)
        handler.close()


__all__ = ["configure_logging", "flush_diagnostics", "get_logger", "project_log"]
