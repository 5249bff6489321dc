from .http_errors import HttpErrorCounterMiddleware
from .idempotency import IdempotencyMiddleware
from .logging import LoggingMiddleware
from .request_id import RequestIdMiddleware

__all__ = [
    "RequestIdMiddleware",
    "LoggingMiddleware",
    "IdempotencyMiddleware",
    "HttpErrorCounterMiddleware",
]
