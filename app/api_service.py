from __future__ import annotations

import logging
import os
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cloudfunctions.callable_client import FunctionCallFailed
from config.settings import settings
from notifications.broadcast import NotificationValidationError
from ops.structured_logger import setup_logging
from review.errors import (
    AlreadyProcessed,
    RejectionReasonRequired,
    ReviewError,
    SubmissionNotFound,
    WriteFailed,
    WriteFailureKind,
)
from utils.request_context import clear_request_context, set_request_id

from app.routers.applications import router as applications_router
from app.routers.health import router as health_router
from app.routers.notifications import router as notifications_router
from app.routers.search import router as search_router
from app.routers.users import router as users_router

setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

app = FastAPI(title="Marketplace Admin API", version="1.0.0")
log = logging.getLogger("console.api")

_WRITE_FAILED_STATUS = {
    WriteFailureKind.PERMISSION: 403,
    WriteFailureKind.NETWORK: 503,
    WriteFailureKind.OTHER: 500,
}


def _get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or ""


def _error_body(request: Request, detail, **extra) -> dict:
    return {"detail": detail, **extra, "request_id": _get_request_id(request), "revision": os.getenv("K_REVISION") or ""}


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    set_request_id(rid)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    log.warning(
        "http_exception",
        extra={
            "extra": {
                "event": "http_exception",
                "status_code": exc.status_code,
                "detail": exc.detail,
                "path": request.url.path,
                "method": request.method,
                "request_id": _get_request_id(request),
            }
        },
    )
    return JSONResponse(status_code=exc.status_code, content=_error_body(request, exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    log.warning(
        "validation_error",
        extra={
            "extra": {
                "event": "validation_error",
                "path": request.url.path,
                "method": request.method,
                "request_id": _get_request_id(request),
            }
        },
    )
    return JSONResponse(status_code=422, content=_error_body(request, exc.errors()))


@app.exception_handler(ReviewError)
async def review_error_handler(request: Request, exc: ReviewError):
    # Every decision failure ends in one blocking, human-readable message.
    if isinstance(exc, SubmissionNotFound):
        status_code, detail = 404, exc.code
    elif isinstance(exc, AlreadyProcessed):
        status_code, detail = 409, exc.code
    elif isinstance(exc, RejectionReasonRequired):
        status_code, detail = 400, exc.code
    elif isinstance(exc, WriteFailed):
        status_code, detail = _WRITE_FAILED_STATUS[exc.kind], exc.detail
    else:
        status_code, detail = 500, exc.code
    return JSONResponse(
        status_code=status_code,
        content=_error_body(request, detail, message=exc.message, submission_id=exc.submission_id),
    )


@app.exception_handler(NotificationValidationError)
async def notification_validation_handler(request: Request, exc: NotificationValidationError):
    return JSONResponse(status_code=400, content=_error_body(request, str(exc)))


@app.exception_handler(FunctionCallFailed)
async def function_call_failed_handler(request: Request, exc: FunctionCallFailed):
    log.error(
        "function_call_failed",
        extra={"extra": {"event": "function_call_failed", "function": exc.name, "status_code": exc.status_code, "message": exc.message}},
    )
    return JSONResponse(
        status_code=502,
        content=_error_body(request, "function_call_failed", function=exc.name, message=exc.message),
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
    )


# Browser admin console calls the API cross-origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["health"])
app.include_router(applications_router, prefix="/admin", tags=["applications"])
app.include_router(notifications_router, prefix="/admin", tags=["notifications"])
app.include_router(users_router, prefix="/admin", tags=["users"])
app.include_router(search_router, prefix="/admin", tags=["search"])
