"""Structured logging for the loader.

Log levels:
- INFO (20): Load start, step and completion summaries (default)
- DEBUG (10): Registration, fetch attempts and graph traversal results

The HTTP client libraries log every request at INFO; they are held at WARNING
unless the loader itself logs at DEBUG.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from ..config import LoggingConfig

# Loggers of the HTTP stack, quiet unless debugging
HTTP_LOGGERS = ("httpx", "httpcore")


class LogContext:
    """
    Bind key/values to every log line emitted inside the block.

    Values are bound through structlog's context variables, so they follow
    the asyncio task that entered the block.

    Usage:
        with LogContext(step=2):
            logger.info("Loading step")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.values = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.values)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


def get_context() -> dict[str, Any]:
    """Return the key/values currently bound by LogContext."""
    return structlog.contextvars.get_contextvars()


def get_log_level(level: str) -> int:
    """
    Get numeric log level from a standard level name.

    Returns:
        Numeric log level, INFO for unknown names
    """
    log_level = logging.getLevelName(level.upper())
    return log_level if isinstance(log_level, int) else logging.INFO


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure structured logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format
        log_file: Optional path to write logs to file
    """
    log_level = get_log_level(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path))

    logging.basicConfig(format="%(message)s", level=log_level, handlers=handlers, force=True)
    logging.getLogger().setLevel(log_level)

    http_level = log_level if log_level <= logging.DEBUG else max(log_level, logging.WARNING)
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_from_config(
    config: LoggingConfig,
    level: str | None = None,
    json_logs: bool = False,
) -> None:
    """
    Configure logging from the `logging` section of a LoaderConfig.

    Args:
        config: Logging section
        level: Level overriding `config.level` (e.g. from the command line)
        json_logs: Force JSON output regardless of `config.format`
    """
    configure_logging(
        level=level or config.level,
        json_logs=json_logs or config.format == "json",
        log_file=config.file,
    )
