"""JSON log records for the ordering API.

Every record is a single JSON object. Order context passed through
``extra=`` (restaurant, user, order, route, status, latency) lands in
top-level keys so log queries can filter on them; customer contact details
that slip into a message are masked.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from ..middlewares.request_id import request_id_ctx

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+", re.I)
PHONE_RE = re.compile(r"(?<!\d)(?:\+?91[\s-]?)?\d{10}(?!\d)")
UPI_RE = re.compile(r"\b[\w.-]+@(?:ok\w+|ybl|paytm|upi|ibl|axl)\b", re.I)

CONTEXT_FIELDS = ("restaurant", "user", "order", "route", "status", "latency_ms")

# third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")


def mask_contact_details(text: str) -> str:
    """Mask UPI handles, emails and Indian mobile numbers in ``text``."""
    for pattern in (UPI_RE, EMAIL_RE, PHONE_RE):
        text = pattern.sub("***", text)
    return text


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.req_id = request_id_ctx.get(None)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "req_id": getattr(record, "req_id", None),
        }
        for name in CONTEXT_FIELDS:
            data[name] = getattr(record, name, None)
        data["msg"] = mask_contact_details(record.getMessage())
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    """Send every record to stderr as JSON, replacing existing root handlers."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
