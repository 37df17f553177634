"""structlog configuration for the API process.

Development gets the colourised console renderer; every other environment
emits one JSON object per line so log shippers can parse it.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

import structlog

from interior_api.config import settings

_LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class _TeeWriter:
    """Mirror log output to stdout and an append-only file.

    A file that cannot be opened or written is dropped and logging carries
    on to stdout only.
    """

    def __init__(self, file_path: str) -> None:
        self._path = file_path
        self._file: IO[str] | None = None
        try:
            self._file = open(file_path, "a")  # noqa: SIM115
        except OSError as exc:
            # structlog is not configured yet
            print(
                f"WARNING: Could not open log file {file_path!r}: {exc}. "
                "Logging to stdout only.",
                file=sys.stderr,
            )

    def _disable(self, operation: str) -> None:
        self._file = None
        print(
            f"WARNING: Log file {operation} failed for {self._path!r}. File logging disabled.",
            file=sys.stderr,
        )

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._file is None:
            return
        try:
            self._file.write(data)
            self._file.flush()
        except (OSError, ValueError):
            self._disable("write")

    def flush(self) -> None:
        sys.stdout.flush()
        if self._file is None:
            return
        try:
            self._file.flush()
        except (OSError, ValueError):
            self._disable("flush")


def resolve_level(name: str) -> int:
    """Map a LOG_LEVEL string to a logging level, defaulting to INFO."""
    return _LOG_LEVEL_MAP.get(name.upper(), logging.INFO)


def configure_logging() -> None:
    """Configure structlog once at import of the app module.

    When LOG_FILE is set, output goes to both stdout and the file.
    """
    development = settings.environment == "development"
    renderer = (
        structlog.dev.ConsoleRenderer()
        if development
        else structlog.processors.JSONRenderer()
    )

    logger_factory: structlog.types.WrappedLogger
    if settings.log_file:
        # PrintLoggerFactory only uses write() and flush() from the file object
        logger_factory = structlog.PrintLoggerFactory(file=_TeeWriter(settings.log_file))  # type: ignore[arg-type]
    else:
        logger_factory = structlog.PrintLoggerFactory()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if not development:
        processors.append(structlog.processors.dict_tracebacks)
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(settings.log_level)),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )
