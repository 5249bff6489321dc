"""Access log for the ordering API."""

import json
import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..utils.responses import err
from .request_id import HEADER, request_id_ctx, resolve_request_id

# body keys carrying customer contact details, compared lowercased
PII_KEYS = {"customername", "customerphone", "email", "phone"}
BODY_METHODS = {"POST", "PUT", "PATCH"}

logger = logging.getLogger("tableorder.access")


def redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: "***" if k.lower() in PII_KEYS else redact(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [redact(v) for v in obj]
    return obj


def _json_body(raw: bytes) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return "<non-json body>"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log one access record per request with order context.

    Bodies of order writes are included with contact details masked. An
    exception escaping the handlers becomes a 500 envelope carrying an
    ``error_id`` that is also written to the log.
    """

    async def dispatch(self, request: Request, call_next):
        req_id = getattr(request.state, "request_id", None)
        token = None
        if req_id is None:
            # running without RequestIdMiddleware, e.g. in isolated app tests
            req_id = resolve_request_id(request.headers.get(HEADER))
            token = request_id_ctx.set(req_id)

        record: dict[str, Any] = {"method": request.method, "path": request.url.path}
        if request.query_params:
            record["query"] = dict(request.query_params)
        if request.method in BODY_METHODS:
            body = _json_body(await request.body())
            if body is not None:
                record["body"] = redact(body)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            record["error_id"] = uuid.uuid4().hex
            logger.exception("unhandled error %s", record["error_id"])
            payload = err(500, "Internal Server Error")
            payload["error_id"] = record["error_id"]
            response = JSONResponse(payload, status_code=500)

        latency_ms = int((time.perf_counter() - start) * 1000)
        extra = {
            "route": request.url.path,
            "status": response.status_code,
            "latency_ms": latency_ms,
            "user": request.headers.get("X-User-ID"),
            "restaurant": request.path_params.get("restaurant_slug"),
        }
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(level, json.dumps(record, default=str), extra=extra)

        response.headers[HEADER] = req_id
        if token is not None:
            request_id_ctx.reset(token)
        return response
