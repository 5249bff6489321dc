# main.py

"""FastAPI application for table ordering and the kitchen order lifecycle."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.asyncio import from_url
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings

from .db import build_engine, build_sessionmaker
from .domain.errors import OrderError
from .middlewares import (
    HttpErrorCounterMiddleware,
    IdempotencyMiddleware,
    LoggingMiddleware,
    RequestIdMiddleware,
)
from .obs import configure_logging
from .providers import build_gateway
from .routes_metrics import router as metrics_router
from .routes_orders import router as orders_router
from .routes_payments import router as payments_router
from .services.notifier import RedisNotifier
from .utils.responses import err

settings = get_settings()
configure_logging(getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("tableorder.api")

app = FastAPI(
    title="TableOrder API",
    version="1.0.0",
    servers=[{"url": "/"}],
    openapi_url="/openapi.json",
)

app.state.engine = build_engine(settings.database_url)
app.state.sessionmaker = build_sessionmaker(app.state.engine)
app.state.redis = from_url(settings.redis_url, decode_responses=True)
app.state.notifier = RedisNotifier(app.state.redis)
app.state.gateway = build_gateway(settings)

app.add_middleware(HttpErrorCounterMiddleware)
app.add_middleware(IdempotencyMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIdMiddleware)


def _log_extra(request: Request, status: int) -> dict:
    return {
        "status": status,
        "route": request.url.path,
        "restaurant": request.path_params.get("restaurant_slug"),
        "user": request.headers.get("X-User-ID"),
    }


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    logger.info("%s: %s", exc.code, exc.message, extra=_log_extra(request, exc.status_code))
    return JSONResponse(err(exc.code, exc.message), status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(exc.detail, extra=_log_extra(request, exc.status_code))
    return JSONResponse(err(exc.status_code, exc.detail), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
    else:
        message = "Invalid request"
    logger.info("validation failed: %s", message, extra=_log_extra(request, 400))
    return JSONResponse(err("VALIDATION", message), status_code=400)


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", extra=_log_extra(request, 500))
    return JSONResponse(err(500, "Internal Server Error"), status_code=500)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(metrics_router)
