"""
Logging utilities for token import operations.

This module configures structlog for the import engine and provides helpers
for tracking import operations, their timing and their outcome.
"""

import functools
import logging
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


class OperationType(Enum):
    """Types of import operations for logging."""
    VALIDATION = "validation"
    ORIGIN_LOOKUP = "origin_lookup"
    ACCOUNT_RESOLUTION = "account_resolution"
    TOKEN_IMPORT = "token_import"
    BATCH_IMPORT = "batch_import"
    ADMINISTRATION = "administration"


class LogLevel(Enum):
    """Log levels for import operations."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def configure_logging(level: str = "INFO", json_output: bool = False):
    """
    Configure structlog processors for the import engine.

    Args:
        level: Minimum log level name
        json_output: Render JSON lines instead of console output
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )


def _operation_data(operation_type: OperationType, operation_name: str, operation_id: str,
                    status: str) -> Dict[str, Any]:
    return {
        "operation_id": operation_id,
        "operation_type": operation_type.value,
        "operation_name": operation_name,
        "status": status,
    }


def _failure_data(operation_type: OperationType, operation_name: str, operation_id: str,
                  error: Exception, execution_time: float) -> Dict[str, Any]:
    data = _operation_data(operation_type, operation_name, operation_id, "failed")
    data.update({
        "success": False,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "execution_time_seconds": execution_time,
        "performance_category": _categorize_performance(execution_time),
    })
    return data


def log_import_operation(
    operation_type: OperationType,
    operation_name: str,
    level: LogLevel = LogLevel.INFO,
    include_performance: bool = True
):
    """
    Decorator for logging import operations with timing.

    Works for both coroutine functions and plain functions.

    Args:
        operation_type: Type of import operation
        operation_name: Name of the operation
        level: Log level for start and completion records
        include_performance: Whether to include timing on completion
    """
    def decorator(func: Callable) -> Callable:
        def started(args, kwargs) -> tuple:
            start_time = time.time()
            operation_id = f"{operation_name}_{int(start_time * 1000)}"
            log_data = _operation_data(operation_type, operation_name, operation_id, "started")
            log_data["kwargs_keys"] = list(kwargs.keys())
            getattr(logger, level.value)("Import operation started", **log_data)
            return start_time, operation_id

        def completed(start_time: float, operation_id: str):
            data = _operation_data(operation_type, operation_name, operation_id, "completed")
            data["success"] = True
            if include_performance:
                execution_time = time.time() - start_time
                data["execution_time_seconds"] = execution_time
                data["performance_category"] = _categorize_performance(execution_time)
            getattr(logger, level.value)("Import operation completed", **data)

        def failed(start_time: float, operation_id: str, error: Exception):
            logger.error(
                "Import operation failed",
                **_failure_data(operation_type, operation_name, operation_id,
                                error, time.time() - start_time)
            )

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time, operation_id = started(args, kwargs)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                failed(start_time, operation_id, e)
                raise
            completed(start_time, operation_id)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time, operation_id = started(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                failed(start_time, operation_id, e)
                raise
            completed(start_time, operation_id)
            return result

        if hasattr(func, '__code__') and func.__code__.co_flags & 0x80:  # CO_COROUTINE
            return async_wrapper
        return sync_wrapper

    return decorator


@contextmanager
def log_operation_context(
    operation_type: OperationType,
    operation_name: str,
    context_data: Optional[Dict[str, Any]] = None,
    level: LogLevel = LogLevel.INFO
):
    """
    Context manager for logging a block of import work.

    Yields the operation id so callers can attach it to their own records.
    """
    start_time = time.time()
    operation_id = f"{operation_name}_{int(start_time * 1000)}"
    context_data = context_data or {}

    getattr(logger, level.value)(
        "Import operation context started",
        **_operation_data(operation_type, operation_name, operation_id, "started"),
        **context_data
    )

    try:
        yield operation_id
    except Exception as e:
        logger.error(
            "Import operation context failed",
            **_failure_data(operation_type, operation_name, operation_id,
                            e, time.time() - start_time),
            **context_data
        )
        raise

    execution_time = time.time() - start_time
    getattr(logger, level.value)(
        "Import operation context completed",
        **_operation_data(operation_type, operation_name, operation_id, "completed"),
        success=True,
        execution_time_seconds=execution_time,
        performance_category=_categorize_performance(execution_time),
        **context_data
    )


def log_import_event(
    event_type: str,
    origin_tag: str,
    registry_address: str,
    additional_data: Optional[Dict[str, Any]] = None,
    level: LogLevel = LogLevel.INFO
):
    """
    Log a single-record import event.

    Args:
        event_type: Type of import event (imported, failed, cleared)
        origin_tag: Origin tag of the record
        registry_address: Destination registry address
        additional_data: Additional event data
        level: Log level
    """
    log_data = {
        "event_type": "import_event",
        "import_event_type": event_type,
        "origin_tag": origin_tag,
        "registry_address": registry_address,
        "timestamp": time.time()
    }

    if additional_data:
        log_data.update(additional_data)

    getattr(logger, level.value)("Token import event", **log_data)


def _categorize_performance(execution_time: float) -> str:
    """
    Categorize performance based on execution time.

    Args:
        execution_time: Execution time in seconds

    Returns:
        Performance category string
    """
    if execution_time < 0.1:
        return "excellent"
    elif execution_time < 0.5:
        return "good"
    elif execution_time < 2.0:
        return "acceptable"
    elif execution_time < 10.0:
        return "slow"
    else:
        return "very_slow"
