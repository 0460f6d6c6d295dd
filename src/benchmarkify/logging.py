"""Centralized logging configuration using loguru.

Console lines carry the bound run context, so interleaved batches from
a long benchmark can be told apart:

    12:00:01.250 | INFO     | benchmark [create benchmarkify-1700000000000-k3x9q2] - ...
    12:00:01.410 | DEBUG    | benchmark [delete #17] - Operation failed after 4 attempt(s): ...

httpx request logs are routed through the same handlers and kept at
WARNING unless DEBUG is requested.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Stdlib loggers that emit one record per HTTP request
_HTTP_LOGGERS = ("httpx", "httpcore")

_configured = False


class InterceptHandler(logging.Handler):
    """Route standard library records (httpx, httpcore) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        from types import FrameType

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # Walk back to the frame that issued the stdlib call
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None:
            if frame.f_code.co_filename != logging.__file__:
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def resolve_level(level: LogLevel, *, verbose: bool = False, quiet: bool = False) -> LogLevel:
    """Apply CLI flags to the configured level. verbose wins over quiet."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def format_context(extra: dict[str, Any]) -> str:
    """Render bound run context as ``[kind session]`` or ``[kind #index]``."""
    if "kind" not in extra:
        return ""
    parts = [str(extra["kind"])]
    if "operation" in extra:
        parts.append(f"#{extra['operation']}")
    elif "session" in extra:
        parts.append(str(extra["session"]))
    return f"[{' '.join(parts)}]"


def _console_format(record: Record) -> str:
    # Records from intercepted stdlib loggers have no bound name
    source = "{extra[name]}" if "name" in record["extra"] else "{name}"
    context = format_context(record["extra"])
    # Escape braces so loguru does not treat the context as a field
    if context:
        context = " <magenta>" + context.replace("{", "{{").replace("}", "}}") + "</magenta>"
    return (
        "<dim>{time:HH:mm:ss.SSS}</dim> | "
        "<level>{level: <8}</level> | "
        f"<cyan>{source}</cyan>{context} - "
        "<level>{message}</level>\n{exception}"
    )


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure logging for the application.

    Args:
        level: Base log level from config
        verbose: If True, use DEBUG level (overrides level and quiet)
        quiet: If True, use WARNING level (overrides level)
        log_file: Optional path for file logging with rotation
        rotation: When to rotate log file (e.g., "10 MB", "1 day")
        retention: How long to keep rotated logs
        serialize: If True, write JSON records to the file

    Returns:
        Configured logger instance
    """
    global _configured

    effective_level = resolve_level(level, verbose=verbose, quiet=quiet)

    logger.remove()
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_console_format,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",  # Full run history regardless of console level
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[name]}:{function}:{line} | "
                "{extra} | "
                "{message}"
            ),
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
            filter=lambda record: "name" in record["extra"],
        )

    _intercept_stdlib_logging(effective_level)

    _configured = True
    return logger


def _intercept_stdlib_logging(level: LogLevel) -> None:
    """Send stdlib logging through loguru.

    httpx logs one INFO line per request, which drowns out batch progress
    during a large run, so it stays at WARNING unless DEBUG is requested.
    """
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    http_level = logging.DEBUG if level in ("TRACE", "DEBUG") else logging.WARNING
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)


def get_logger(name: str) -> Logger:
    """Get a logger with the given name bound as context.

    Usage:
        from benchmarkify.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Calibrated at {} points/sec", leak_rate)
    """
    return logger.bind(name=name)


def bind_run(kind: str, session_tag: str) -> Logger:
    """Logger for one benchmark run.

    Args:
        kind: Operation kind being benchmarked (create/update/delete)
        session_tag: Tag identifying the benchmark session
    """
    return logger.bind(name="benchmark", kind=kind, session=session_tag)


def bind_operation(kind: str, index: int) -> Logger:
    """Logger for a single operation, by its position within the run."""
    return logger.bind(name="benchmark", kind=kind, operation=index)


class LogContext:
    """Context manager for temporary log context binding.

    Everything logged inside the block, including from the scheduler and
    client, carries the given fields.

    Usage:
        with LogContext(kind="create", session=session.tag):
            await scheduler.run(...)
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._token: Any = None

    def __enter__(self) -> Logger:
        self._token = logger.contextualize(**self._context)
        self._token.__enter__()
        return logger

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._token:
            self._token.__exit__(exc_type, exc_val, exc_tb)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Remove all handlers (primarily for testing)."""
    global _configured
    logger.remove()
    _configured = False
