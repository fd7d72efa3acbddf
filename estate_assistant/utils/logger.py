"""
Structured logging setup and operation timing.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator

import structlog


logger = structlog.get_logger("estate_assistant")


# Upper bounds in milliseconds for the "good" and "acceptable" categories
PERFORMANCE_THRESHOLDS = {
    "ai-chat": (2000, 5000),
    "voice-synthesis": (3000, 8000),
    "database-query": (100, 500),
    "conversation-processing": (1000, 3000),
    "broker-service": (500, 2000),
    "default": (1000, 3000),
}


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog and the stdlib root logger used by uvicorn and SQLAlchemy."""
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def categorize_performance(operation: str, duration_ms: float) -> str:
    good, acceptable = PERFORMANCE_THRESHOLDS.get(operation, PERFORMANCE_THRESHOLDS["default"])
    if duration_ms <= good:
        return "EXCELLENT"
    if duration_ms <= acceptable:
        return "ACCEPTABLE"
    return "POOR"


@contextmanager
def performance_timer(operation: str, component: str, **metadata: Any) -> Iterator[Dict[str, Any]]:
    """
    Time a block and log its outcome.

    The yielded dict can be filled with extra metadata while the block runs.
    Exceptions are logged with the elapsed time and re-raised unchanged.
    """
    start = time.perf_counter()
    try:
        yield metadata
    except Exception as e:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.error(
            f"{operation} failed",
            component=component,
            operation=operation,
            duration_ms=duration_ms,
            error=str(e),
            **metadata,
        )
        raise

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    logger.info(
        f"{operation} completed",
        component=component,
        operation=operation,
        duration_ms=duration_ms,
        performance_category=categorize_performance(operation, duration_ms),
        **metadata,
    )
