"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

import structlog

_LOGGING_INITIALISED = False


def configure_logging(verbose: bool = False, log_file: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger.

    The console handler writes to stderr so it never mixes with the report on
    stdout. It stays at WARNING unless ``verbose`` is set, which keeps the
    progress line readable during a normal run.
    """

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "WARNING"
        handlers: dict[str, dict] = {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": level,
                "formatter": "plain",
            },
        }
        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers["run_file"] = {
                "class": "logging.FileHandler",
                "level": "DEBUG" if verbose else "INFO",
                "filename": str(log_file),
                "encoding": "utf-8",
                "formatter": "plain",
            }
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": handlers,
                "loggers": {
                    "cs_client_map": {
                        "handlers": list(handlers),
                        "level": "DEBUG",
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("cs_client_map")


def component_logger(component: str) -> structlog.BoundLogger:
    """Return a logger for one engine component, named under the app logger."""

    return structlog.get_logger(f"cs_client_map.{component}").bind(component=component)


__all__ = ["component_logger", "configure_logging"]
