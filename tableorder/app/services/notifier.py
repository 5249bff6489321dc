"""Real-time push to restaurant staff and customers.

Events are published on Redis channels ``rt:<room>``; the websocket gateway
fans them out to the sockets that joined ``<room>``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Protocol, Tuple

from ..routes_metrics import notifier_failures_total

logger = logging.getLogger("tableorder.realtime")


def staff_room(restaurant_id: str) -> str:
    return f"restaurant_{restaurant_id}_staff"


def owner_room(restaurant_id: str) -> str:
    return f"restaurant_{restaurant_id}_owner"


def order_room(order_id: str) -> str:
    return f"order_{order_id}"


class Notifier(Protocol):
    async def emit(self, room: str, event: str, payload: Dict[str, Any]) -> None: ...


class RedisNotifier:
    """Publish events through Redis pub/sub."""

    def __init__(self, redis) -> None:
        self._redis = redis

    async def emit(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        message = json.dumps({"event": event, "payload": payload}, default=str)
        await self._redis.publish(f"rt:{room}", message)


class RecordingNotifier:
    """Keep emitted events in memory so tests can introspect them."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []

    async def emit(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((room, event, payload))


async def emit_safely(
    notifier: Notifier, rooms: List[str], event: str, payload: Dict[str, Any]
) -> None:
    """Emit ``event`` to ``rooms`` without ever raising.

    Delivery is best effort: the order is already committed, so a failed
    push is logged and counted but must not fail the request.
    """

    for room in rooms:
        try:
            await notifier.emit(room, event, payload)
        except Exception as exc:
            notifier_failures_total.inc()
            logger.warning("failed to emit %s to %s: %s", event, room, exc)


__all__ = [
    "Notifier",
    "RedisNotifier",
    "RecordingNotifier",
    "emit_safely",
    "staff_room",
    "owner_room",
    "order_room",
]
