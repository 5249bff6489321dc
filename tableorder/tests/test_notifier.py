import json

import anyio
import fakeredis
import fakeredis.aioredis
import pytest

from tableorder.app.services.notifier import RedisNotifier, emit_safely, staff_room
from tableorder.tests._seed import FailingNotifier


@pytest.mark.anyio
async def test_redis_notifier_publishes_on_room_channel():
    redis = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer())
    pubsub = redis.pubsub()
    await pubsub.subscribe("rt:restaurant_rest-1_staff")
    await pubsub.get_message(timeout=1)  # subscribe confirmation

    await RedisNotifier(redis).emit(staff_room("rest-1"), "newOrder", {"order": {"orderNo": 3}})

    message = None
    with anyio.fail_after(2):
        while message is None:
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.1)
    assert json.loads(message["data"]) == {"event": "newOrder", "payload": {"order": {"orderNo": 3}}}
    await pubsub.aclose()


@pytest.mark.anyio
async def test_emit_safely_swallows_delivery_errors(caplog):
    await emit_safely(FailingNotifier(), ["order_1", "order_2"], "orderStatusUpdated", {})
    assert sum("failed to emit" in r.getMessage() for r in caplog.records) == 2
