"""
Structured logging for clientgen.

Provides:
- structlog configuration with a console or JSON renderer
- Run context (run_id, phase, variant) propagated via contextvars
- ``log_phase`` for timing a generation phase

Configuration is read from environment variables unless given explicitly:
- CLIENTGEN_LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: INFO)
- CLIENTGEN_LOG_FORMAT: json | console (default: console)

Usage:
    from clientgen.logging import configure_logging, get_logger, log_phase

    configure_logging()
    log = get_logger(__name__)

    with log_phase("common", run_id="1700000000000"):
        ...

Context is held in a ContextVar, so each worker thread that runs a variant
phase carries its own variant tag.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Any, Literal

import structlog
from structlog.types import Processor

_configured = False


@dataclass(frozen=True)
class LogContext:
    """Run context attached to all log entries."""

    run_id: str | None = None
    phase: str | None = None
    variant: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs: Any) -> LogContext:
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("clientgen_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def bind_context(**kwargs: Any) -> LogContext:
    """Merge values into the current context and return it."""
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Reset the current context to empty."""
    _log_context.set(LogContext())


@contextmanager
def scoped_context(**kwargs: Any) -> Iterator[LogContext]:
    """Bind context values for the duration of a block."""
    token = _log_context.set(get_context().merge(**kwargs))
    try:
        yield get_context()
    finally:
        _log_context.reset(token)


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that adds the run context to every log entry."""
    for key, value in get_context().to_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    force: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Should be called once at startup (the CLI does it). Subsequent calls are
    no-ops unless ``force=True``.

    Args:
        level: Log level (overrides CLIENTGEN_LOG_LEVEL)
        format: Output format (overrides CLIENTGEN_LOG_FORMAT)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    log_level = (level or os.environ.get("CLIENTGEN_LOG_LEVEL", "INFO")).upper()
    log_format = (format or os.environ.get("CLIENTGEN_LOG_FORMAT", "console")).lower()

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_context_processor,
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    logging.getLogger("clientgen").setLevel(getattr(logging, log_level))

    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger that includes the run context."""
    return structlog.get_logger(name)


@contextmanager
def log_phase(phase: str, **context: Any) -> Iterator[LogContext]:
    """
    Log the start and end of a generation phase with its duration.

    The phase name and any extra context (run_id, variant) are bound for
    everything logged inside the block. Failures are logged with the elapsed
    time and re-raised.
    """
    log = get_logger("clientgen.phase")
    started = time.perf_counter()
    with scoped_context(phase=phase, **context) as ctx:
        log.debug(f"{phase}.start")
        try:
            yield ctx
        except Exception as e:
            log.error(
                f"{phase}.error",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise
        log.info(f"{phase}.end", duration_ms=round((time.perf_counter() - started) * 1000, 2))
