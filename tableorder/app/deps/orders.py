from __future__ import annotations

"""Dependency helpers wiring the order service from application state."""

from fastapi import Request

from config import get_settings

from ..services.orders import OrderService


def get_order_service(request: Request) -> OrderService:
    """Build an :class:`OrderService` from the collaborators on ``app.state``."""

    state = request.app.state
    return OrderService(
        state.sessionmaker,
        state.gateway,
        state.notifier,
        get_settings(),
    )


def get_sessionmaker(request: Request):
    """Return the application's ``async_sessionmaker``."""

    return request.app.state.sessionmaker
