"""Request correlation ids."""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

HEADER = "X-Request-ID"
# ids supplied by clients or the load balancer are echoed only when sane
_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def resolve_request_id(candidate: str | None) -> str:
    if candidate and _VALID_ID.match(candidate):
        return candidate
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the context for log records and error envelopes."""

    async def dispatch(self, request: Request, call_next):
        req_id = resolve_request_id(request.headers.get(HEADER))
        request.state.request_id = req_id
        token = request_id_ctx.set(req_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[HEADER] = req_id
        return response
