"""
Structured logging for flightlog readers.

Readers log through structlog with key/value context (format names,
message ids, byte positions). Output goes through the standard library
root handler, rendered either for a terminal or as JSON lines.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

LOG_FORMATS = ("console", "json")
LOG_OUTPUTS = ("stdout", "stderr")


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_output: str = "stderr",
) -> None:
    """
    Configure structured logging for the reader.
    
    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_output: Output destination (stdout or stderr)
    
    Raises:
        ValueError: If any argument names an unknown level, format or output
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level!r}")
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {log_format!r}")
    if log_output not in LOG_OUTPUTS:
        raise ValueError(f"Unknown log output: {log_output!r}")
    
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout if log_output == "stdout" else sys.stderr,
        level=level,
        force=True,
    )
    
    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_config(config: Any) -> None:
    """Apply the "logging" section of a Config."""
    configure_logging(
        log_level=config.get("logging.level", "INFO"),
        log_format=config.get("logging.format", "console"),
        log_output=config.get("logging.output", "stderr"),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.
    
    Args:
        name: Logger name (typically __name__)
    
    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
