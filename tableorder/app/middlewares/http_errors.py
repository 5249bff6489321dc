from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..routes_metrics import http_errors_total


def _route_label(request: Request) -> str:
    # path template keeps restaurant slugs and order ids out of label values
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class HttpErrorCounterMiddleware(BaseHTTPMiddleware):
    """Count 4xx/5xx responses per status code and route template."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if response.status_code >= 400:
            http_errors_total.labels(
                status=str(response.status_code), route=_route_label(request)
            ).inc()
        return response
