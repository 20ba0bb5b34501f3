"""Structured logging configuration using structlog.

Every event is one JSON object on stderr carrying ``service``, ``version``
and the emitting ``component``. Chatty third-party stdlib loggers (uvicorn,
aiohttp, kubernetes_asyncio) are held at WARNING unless debug is requested.
"""

from __future__ import annotations

import logging
import sys

import structlog

SERVICE_NAME = "cluster-reflector"

_LIBRARY_LOGGERS = ("uvicorn", "uvicorn.error", "aiohttp", "kubernetes_asyncio")


def _resolve_level(level: str) -> int:
    name = level.upper()
    if name == "WARN":
        name = "WARNING"
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr at *level*."""
    from cluster_reflector import __version__

    log_level = _resolve_level(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME, version=__version__)

    library_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    logging.basicConfig(stream=sys.stderr, level=library_level, format="%(name)s %(levelname)s %(message)s")
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
