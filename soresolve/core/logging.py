"""Structured logging configuration — structlog + stdlib logging."""

from __future__ import annotations

import logging
import logging.config
import os
import sys

import structlog


def _processors(detailed: bool) -> list[structlog.types.Processor]:
    """Level always; logger name and timestamp only when they help debugging."""
    processors: list[structlog.types.Processor] = [structlog.stdlib.add_log_level]
    if detailed:
        processors += [
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ]
    processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(level: str | None = None) -> None:
    """Configure structlog and stdlib logging for the CLI.

    Reads from environment variables:
        SORESOLVE_LOG_LEVEL  — log level when ``level`` is not given (default: WARNING)
        SORESOLVE_LOG_FORMAT — console | json (default: console)

    Everything goes to stderr; stdout is reserved for prompts and the report.
    At DEBUG (``soresolve -v``) console lines also carry the logger name and a
    timestamp; JSON lines always do. Colors only when stderr is a terminal.
    """
    log_level = (level or os.environ.get("SORESOLVE_LOG_LEVEL", "WARNING")).upper()
    log_format = os.environ.get("SORESOLVE_LOG_FORMAT", "console").lower()

    if log_format == "json":
        shared_processors = _processors(detailed=True)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        shared_processors = _processors(detailed=log_level == "DEBUG")
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            # third-party loggers stay at WARNING even under -v
            "root": {
                "handlers": ["stderr"],
                "level": "WARNING",
            },
            "loggers": {
                "soresolve": {"level": log_level},
            },
        }
    )
