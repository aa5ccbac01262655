from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from messaging.dispatcher import DispatchError
from models.schema import ErrorResponse
from ops.structured_logger import setup_logging
from utils.request_context import bind_request_id, new_request_id, reset_request_id

from app.routers.health import router as health_router
from app.routers.messaging import router as messaging_router

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="WhatsApp Outbound Gateway", version="1.0.0")
log = logging.getLogger("outbound.api")

# Browser clients call send-message directly. Every response, preflight included,
# carries these headers; there is no origin/header negotiation.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}
NO_STORE = {**CORS_HEADERS, "Cache-Control": "no-store"}


def _get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or ""


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = new_request_id(request.headers.get("x-request-id"))
    request.state.request_id = rid
    token = bind_request_id(rid)
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers["X-Request-Id"] = rid
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError):
    body = ErrorResponse(error=exc.error, message=exc.message, request_id=_get_request_id(request))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=NO_STORE)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    rid = _get_request_id(request)
    log.warning(
        "http_exception",
        extra={
            "extra": {
                "event": "http_exception",
                "status_code": exc.status_code,
                "detail": exc.detail,
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
    )
    headers = {**(exc.headers or {}), **NO_STORE}
    if exc.status_code == 405:
        return JSONResponse(status_code=405, content={"error": "method_not_allowed"}, headers=headers)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
        headers=headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _get_request_id(request)
    log.error(
        "internal_unhandled_exception",
        extra={
            "extra": {
                "event": "internal_unhandled_exception",
                "error_type": type(exc).__name__,
                "message": str(exc),
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_unhandled_exception", "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
        headers=NO_STORE,
    )


app.include_router(health_router, tags=["health"])
app.include_router(messaging_router, tags=["whatsapp"])
