# src/zapforge/core/logging.py
"""Structured logging configuration for zapforge.

Configures BOTH structlog and stdlib logging so that modules using
logging.getLogger(__name__) (uvicorn, SQLAlchemy) and modules using
structlog.get_logger() produce the same output format.

Console output goes to stderr: stdout is reserved for machine-parsed lines
such as the ``url: ...`` line emitted in headless server mode. An optional
log file receives the same records rendered as JSON.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Third-party loggers that are excessively verbose at DEBUG level.
_NOISY_LOGGERS: tuple[str, ...] = (
    "uvicorn.access",
    "uvicorn.error",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove internal structlog fields from output.

    ProcessorFormatter always adds _record and _from_structlog when processing
    log records. KeyError here would indicate a bug in the structlog wiring.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    log_file: Path | None = None,
) -> None:
    """Configure structlog and stdlib logging for zapforge.

    Args:
        json_output: If True, console output is JSON. If False, human-readable.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional file that additionally receives JSON records.
            Parent directories are created.
    """
    log_level = getattr(logging, level.upper())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    json_processors: list[Any] = [
        _remove_internal_fields,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]
    if json_output:
        console_processors = json_processors
    else:
        console_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    # Disable caching to allow reconfiguration in tests
    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        ProcessorFormatter(
            processors=console_processors,
            foreign_pre_chain=shared_processors,
        )
    )
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            ProcessorFormatter(
                processors=json_processors,
                foreign_pre_chain=shared_processors,
            )
        )
        handlers.append(file_handler)

    root = logging.getLogger()
    for old in root.handlers:
        old.close()
    root.handlers = handlers
    root.setLevel(log_level)

    # Never make noisy loggers less restrictive than the configured root level.
    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Bound structlog logger.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
