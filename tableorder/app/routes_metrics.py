# routes_metrics.py

"""Prometheus metrics and /metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

orders_created_total = Counter("orders_created_total", "Total orders created")
orders_created_total.inc(0)

order_transitions_total = Counter(
    "order_transitions_total", "Order status transitions applied", ["status"]
)

order_rollbacks_total = Counter(
    "order_rollbacks_total", "Order transactions rolled back", ["reason"]
)

payment_gateway_failures_total = Counter(
    "payment_gateway_failures_total", "Failed remote payment order creations"
)
payment_gateway_failures_total.inc(0)

notifier_failures_total = Counter(
    "notifier_failures_total", "Real-time notifications that could not be emitted"
)
notifier_failures_total.inc(0)

idempotency_hits_total = Counter(
    "idempotency_hits_total", "Order requests answered from the idempotency cache"
)
idempotency_hits_total.inc(0)

http_errors_total = Counter(
    "http_errors_total", "HTTP error responses by status and route", ["status", "route"]
)

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
