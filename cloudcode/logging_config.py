"""
Logging configuration for the Cloud Code API.

Sets the root format and level, tags every record with the current request id,
and suppresses verbose DEBUG logs from HTTP and hashing libraries.
"""

import logging
from contextvars import ContextVar

# Request ID context for structured logging
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach the current request id (or '-') to each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or "-"
        return True


def configure_logging(level: str = "INFO") -> None:
    """
    Configure logging levels for all services.

    Safe to call more than once; the request id filter is only installed once
    per handler.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not root.handlers:
        root.addHandler(logging.StreamHandler())

    for handler in root.handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Suppress DEBUG logs from httpcore and httpx to reduce terminal noise
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
