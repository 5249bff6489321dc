import json
import logging

import pytest
from sqlalchemy import text

from tableorder.app.db import build_engine
from tableorder.app.middlewares.logging import redact
from tableorder.app.obs.logging import JsonFormatter, mask_contact_details
from tableorder.app.obs.queries import add_query_logger


def _record(msg, **extra) -> logging.LogRecord:
    record = logging.LogRecord("tableorder.orders", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_masks_contact_details():
    line = JsonFormatter().format(
        _record("order placed by 9876543210 (ravi@example.com)", restaurant="rest-1", order="o-1")
    )
    data = json.loads(line)
    assert data["msg"] == "order placed by *** (***)"
    assert data["restaurant"] == "rest-1"
    assert data["order"] == "o-1"
    assert data["logger"] == "tableorder.orders"
    assert data["level"] == "INFO"
    assert data["status"] is None


def test_mask_upi_and_prefixed_numbers():
    assert mask_contact_details("paid by ravi@okhdfc") == "paid by ***"
    assert mask_contact_details("call +91 9876543210") == "call ***"
    assert mask_contact_details("order #1234 total 210") == "order #1234 total 210"


def test_redact_request_body():
    body = {
        "foodItems": [{"id": "item-paneer", "quantity": 1}],
        "customerName": "Ravi",
        "customerPhone": "9876543210",
    }
    assert redact(body) == {
        "foodItems": [{"id": "item-paneer", "quantity": 1}],
        "customerName": "***",
        "customerPhone": "***",
    }

@pytest.mark.anyio
async def test_slow_queries_are_logged_without_parameters(caplog):
    engine = build_engine("sqlite+aiosqlite://")
    add_query_logger(engine, "probe", threshold_ms=-1)
    try:
        with caplog.at_level(logging.WARNING, logger="tableorder.obs"):
            async with engine.connect() as conn:
                await conn.execute(text("SELECT :phone"), {"phone": "9876543210"})
    finally:
        await engine.dispose()
    messages = [r.getMessage() for r in caplog.records if r.name == "tableorder.obs"]
    assert any("db=probe" in m and "SELECT ?" in m for m in messages)
    assert not any("9876543210" in m for m in messages)
