"""Structured logging: structlog rendering on top of stdlib handlers.

LOG_FORMAT=json emits one JSON object per line for log shipping; any other
value renders aligned console lines. Request-scoped values bound through
structlog.contextvars (the request id) are merged into every event.
"""

import logging
import sys
from pathlib import Path
from typing import List

import structlog

from core.config import Settings


def _handlers(settings: Settings) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    return handlers


def _processors(settings: Settings) -> list:
    json_output = settings.log_format == "json"

    processors = [structlog.contextvars.merge_contextvars]
    if json_output:
        processors += [structlog.stdlib.add_logger_name,
                       structlog.processors.TimeStamper(fmt="iso")]
    else:
        processors.append(structlog.processors.TimeStamper(fmt="%H:%M:%S"))

    processors += [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(
            colors=False,
            pad_event=35,
            exception_formatter=structlog.dev.plain_traceback
        ))
    return processors


def configure_logging(settings: Settings) -> None:
    """Route structlog events through stdlib handlers at LOG_LEVEL."""
    level = logging.getLevelName(settings.log_level.upper())
    logging.basicConfig(level=level, handlers=_handlers(settings), format="%(message)s")

    structlog.configure(
        processors=_processors(settings),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def log_execution_time(logger: structlog.BoundLogger, operation: str,
                       start_time: float, end_time: float, **kwargs) -> None:
    """Log how long a store query took."""
    logger.info(
        "Operation completed",
        operation=operation,
        execution_time_seconds=round(end_time - start_time, 4),
        **kwargs
    )


def log_cache_operation(logger: structlog.BoundLogger, operation: str,
                        key: str, hit: bool = None, **kwargs) -> None:
    """Debug-level trace of a cache get/set/delete; `hit` only for reads."""
    if hit is not None:
        kwargs["cache_hit"] = hit
    logger.debug("Cache operation", operation=operation, cache_key=key, **kwargs)
