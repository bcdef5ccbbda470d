"""Request-scoped logging for MedTrack.

Every record carries the id of the HTTP request that produced it (``-`` for
startup and background work). Dose record writes also emit one line on the
``medtrack.audit`` logger, which stays at INFO whatever ``LOG_LEVEL`` says.
"""

from __future__ import annotations

import contextvars
import logging

from medtrack.config import Settings, settings

LOGGER_NAMESPACE = "medtrack"
AUDIT_LOGGER_NAME = f"{LOGGER_NAMESPACE}.audit"
NO_REQUEST_ID = "-"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "medtrack_request_id",
    default=None,
)

_factory_installed = False


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST_ID


class RequestIdFilter(logging.Filter):
    """Fill in request_id for records built before the factory was installed."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = get_request_id()
        return True


def _install_record_factory() -> None:
    global _factory_installed
    if _factory_installed:
        return
    base_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = base_factory(*args, **kwargs)
        record.request_id = get_request_id()
        return record

    logging.setLogRecordFactory(record_factory)
    _factory_installed = True


def _parse_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(config: Settings = settings) -> None:
    """Set up handlers and levels for the ``medtrack`` logger tree.

    Safe to call more than once: the record factory is wrapped a single time
    and the root handler is only added when none exists.
    """
    _install_record_factory()

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
    for handler in root_logger.handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())

    level = _parse_level(config.log_level)
    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)
    logging.getLogger(AUDIT_LOGGER_NAME).setLevel(min(level, logging.INFO))


def log_dose_record_operation(operation: str, actor_type: str, count: int = 1) -> None:
    """Emit an audit line for dose record writes."""
    logging.getLogger(AUDIT_LOGGER_NAME).info(
        "dose_record operation=%s actor=%s count=%d",
        operation,
        actor_type,
        count,
    )
