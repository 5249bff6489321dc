from __future__ import annotations

import base64
import hashlib
import json
import re

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from config import get_settings

from ..routes_metrics import idempotency_hits_total
from ..utils.responses import err

KEY_RE = re.compile(r"^[A-Za-z0-9_.:-]{8,128}$")
LOCK_TTL_SECS = 60


class IdempotencyMiddleware(BaseHTTPMiddleware):
    """Cache order placement responses keyed by ``Idempotency-Key``.

    Keys are stored in Redis so that a client retrying after a timeout gets
    the original response instead of creating a duplicate order. Responses
    with a 5xx status are not cached since those failures are retryable.
    """

    async def dispatch(self, request: Request, call_next):
        key = request.headers.get("Idempotency-Key")
        if request.method != "POST" or not request.url.path.startswith("/order/") or not key:
            return await call_next(request)

        if not KEY_RE.match(key):
            return JSONResponse(
                err("BAD_IDEMPOTENCY_KEY", "Invalid Idempotency-Key header"),
                status_code=400,
            )

        redis = request.app.state.redis
        key_hash = hashlib.sha256(key.encode()).hexdigest()
        cache_key = f"idem:{request.url.path}:{key_hash}"
        lock_key = f"{cache_key}:lock"
        body = await request.body()
        fingerprint = hashlib.sha256(body).hexdigest()

        cached = await redis.get(cache_key)
        if cached:
            data = json.loads(cached)
            if data["fingerprint"] != fingerprint:
                return JSONResponse(
                    err(
                        "IDEMPOTENCY_CONFLICT",
                        "Idempotency-Key was already used with a different request",
                    ),
                    status_code=409,
                )
            idempotency_hits_total.inc()
            return Response(
                content=base64.b64decode(data["body"]),
                status_code=data["status"],
                headers=data.get("headers"),
                media_type=data.get("media_type", "application/json"),
            )

        if not await redis.set(lock_key, "1", nx=True, ex=LOCK_TTL_SECS):
            return JSONResponse(
                err("IDEMPOTENCY_CONFLICT", "A request with this key is in progress"),
                status_code=409,
            )
        try:
            response = await call_next(request)
            content = b"".join([section async for section in response.body_iterator])
            headers = dict(response.headers)
            if response.status_code < 500:
                payload = {
                    "status": response.status_code,
                    "body": base64.b64encode(content).decode(),
                    "headers": headers,
                    "media_type": response.media_type,
                    "fingerprint": fingerprint,
                }
                await redis.set(
                    cache_key,
                    json.dumps(payload),
                    ex=get_settings().idempotency_ttl_secs,
                )
        finally:
            await redis.delete(lock_key)
        return Response(
            content=content,
            status_code=response.status_code,
            headers=headers,
            media_type=response.media_type,
        )
