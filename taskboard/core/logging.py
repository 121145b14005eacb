"""Logfire setup and the structured logging helpers used by the services.

Modules log through ``logging.getLogger(__name__)``. ``configure_logfire`` hangs
a Logfire handler on the ``taskboard`` package logger, so those records end up
next to the service spans.

    logger = logging.getLogger(__name__)
    with span("task_service.delete_task", task_id=task_id):
        log_with_task_context(logger, "info", "Task deleted", task_id=task_id, comments=2)
"""

import logging

import logfire
from fastapi import FastAPI

from taskboard.core.config import settings


PACKAGE_LOGGER = "taskboard"

logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Logfire and route the package's standard log records to it.

    Safe to call more than once; the handler is attached only once.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="taskboard",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not any(isinstance(h, logfire.LogfireLoggingHandler) for h in package_logger.handlers):
        package_logger.addHandler(logfire.LogfireLoggingHandler())
    package_logger.setLevel(logging.INFO)

    logger.info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by ``app``."""
    logfire.instrument_fastapi(app)
    logger.info("FastAPI instrumentation configured")


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a span around a service call, tagged with the ids it works on.

    Attributes that are None are left off the span.
    """
    return logfire.span(name, **{key: value for key, value in attributes.items() if value is not None})


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log ``message`` at ``level`` with ``context`` as structured extra fields."""
    getattr(logger, level.lower())(message, extra=context)


def log_with_task_context(
    logger: logging.Logger,
    level: str,
    message: str,
    task_id: str | None = None,
    **extra: object,
) -> None:
    """Like ``log_with_context``, with the task id first when there is one."""
    context = {"task_id": task_id, **extra} if task_id else extra
    log_with_context(logger, level, message, **context)
