"""structlog setup for the readiness controller.

Log records go through the standard library to stderr so that command output
on stdout (``wellknown sync -o json``) stays machine readable.
"""

import logging
import os
import sys
from typing import Any, Optional, TextIO

import structlog

# httpx logs every request at INFO, which is one line per endpoint per pass
QUIET_LOGGERS = ("httpx", "httpcore", "kubernetes.client.rest")


def setup_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> None:
    """Route structlog through stdlib logging onto ``stream`` (stderr by default).

    ``LOG_LEVEL`` picks the level unless ``verbose`` forces DEBUG, and
    ``LOG_FORMAT=json`` switches to one JSON object per line.
    """
    stream = sys.stderr if stream is None else stream
    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO").upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _get_renderer(stream),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).debug("Logging configured", log_level=log_level, verbose=verbose)


def _get_renderer(stream: TextIO) -> Any:
    if os.getenv("LOG_FORMAT", "console").lower() == "json":
        return structlog.processors.JSONRenderer()
    isatty = getattr(stream, "isatty", None)
    return structlog.dev.ConsoleRenderer(
        colors=bool(isatty and isatty()),
        exception_formatter=structlog.dev.plain_traceback,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_function_entry(logger: structlog.stdlib.BoundLogger, func_name: str, **kwargs: Any) -> None:
    logger.debug("Function entry", function=func_name, **kwargs)


def log_function_exit(logger: structlog.stdlib.BoundLogger, func_name: str, **kwargs: Any) -> None:
    logger.debug("Function exit", function=func_name, **kwargs)


def log_k8s_operation(logger: structlog.stdlib.BoundLogger, operation: str, resource: str, **kwargs: Any) -> None:
    """Log a cluster API call.

    Args:
        logger: The logger instance
        operation: get, create, delete or update_status
        resource: Resource kind and name, e.g. ``route/oauth-openshift``
        **kwargs: Additional operation details
    """
    logger.debug("Kubernetes operation", operation=operation, resource=resource, **kwargs)


def log_sync_event(logger: structlog.stdlib.BoundLogger, event_type: str, **kwargs: Any) -> None:
    """Log a milestone of a sync pass (route created, conditions published, ...)."""
    logger.info("Sync event", event_type=event_type, **kwargs)
