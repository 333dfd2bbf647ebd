"""Structured logging for sync runs.

Every unit of work (a bulk export batch, a single record export or delete,
an index provisioning) runs inside ``unit_of_work``, which binds its index,
class, offset and record id to the context. Log lines emitted anywhere below
it, paginator and resolver included, carry that context without passing it
around explicitly.
"""

import functools
import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import structlog
import colorlog
from structlog.typing import Processor

from ..config.settings import get_settings


# Marks handlers installed here so repeated setup replaces them
_HANDLER_MARK = "_indexsync_handler"


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """Configure structlog and the root handlers.

    Arguments override the ``LOG_*`` settings. Calling this again replaces
    the handlers of the previous call.
    """
    settings = get_settings().logging

    level = getattr(logging, (log_level or settings.level).upper())
    format_type = log_format or settings.format
    file_path = log_file or settings.file_path

    root = logging.getLogger()
    root.setLevel(level)
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format_type == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if file_path:
        _install(root, _file_handler(file_path, settings.file_max_bytes, settings.file_backup_count), level)
    _install(root, _console_handler(), level)


def _install(root: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    setattr(handler, _HANDLER_MARK, True)
    root.addHandler(handler)


def _file_handler(file_path: str, max_bytes: int, backup_count: int) -> logging.Handler:
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(file_path, maxBytes=max_bytes, backupCount=backup_count)
    # The message is already rendered by structlog
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _console_handler() -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        reset=True,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))
    return handler


def get_logger(name: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, optionally bound to fixed context."""
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


@contextmanager
def unit_of_work(operation: str, **context: Any) -> Iterator[None]:
    """Bind a unit of work's identity to every log line emitted inside it.

    ``None`` values are left out. Context is per asyncio task, so
    concurrently scheduled jobs do not see each other's bindings.
    """
    bound = {key: value for key, value in context.items() if value is not None}
    with structlog.contextvars.bound_contextvars(operation=operation, **bound):
        yield


def _log_timing(func_name: str, start_time: float, error: Optional[Exception] = None) -> None:
    logger = get_logger(func_name)
    elapsed = f"{time.time() - start_time:.4f}s"
    if error is None:
        logger.debug("Call finished", function=func_name, execution_time=elapsed)
    else:
        logger.error("Call failed", function=func_name, execution_time=elapsed, error=str(error))


def log_execution_time(func):
    """Decorator to log function execution time."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _log_timing(func.__name__, start_time, e)
            raise
        _log_timing(func.__name__, start_time)
        return result

    return wrapper


def log_async_execution_time(func):
    """Decorator to log coroutine execution time."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            _log_timing(func.__name__, start_time, e)
            raise
        _log_timing(func.__name__, start_time)
        return result

    return wrapper
