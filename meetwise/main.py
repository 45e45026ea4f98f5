# meetwise/main.py
from __future__ import annotations

# Load .env early so settings and os.getenv agree everywhere
from dotenv import load_dotenv
load_dotenv()

import asyncio
import time
from typing import Optional

import sqlalchemy as sa
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.config import settings
from meetwise.core.errors import (
    ErrorCode,
    ErrorSeverity,
    HTTP_STATUS,
    SchedulingError,
    error_aggregator,
    log_error,
)
from meetwise.core.logging import LoggingMiddleware, get_logger, setup_logging
from meetwise.db.session import AsyncSessionLocal, get_session
from meetwise.services.notifications import dispatcher
from meetwise.services.tasks import maintenance_loop

# Routers
from meetwise.api.routes.availability import router as availability_router
from meetwise.api.routes.event_types import router as event_types_router
from meetwise.api.routes.meetings import router as meetings_router
from meetwise.api.routes.slots import router as slots_router

# Set up structured logging
setup_logging(debug=settings.is_development, max_log_length=settings.MAX_LOG_LENGTH, level=settings.LOG_LEVEL)
logger = get_logger(__name__)

error_aggregator.log_threshold = settings.ERROR_AGGREGATION_THRESHOLD

app = FastAPI(title="Meetwise", description="Availability and slot-booking engine")

app.middleware("http")(
    LoggingMiddleware(
        log_requests=settings.LOG_REQUESTS or settings.is_development,
        slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
    )
)


# -------- Error mapping --------
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.code == ErrorCode.INTERNAL:
        log_error(exc, {"endpoint": request.url.path}, ErrorSeverity.HIGH)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=HTTP_STATUS[ErrorCode.INVALID_INPUT],
        content={
            "success": False,
            "error": ErrorCode.INVALID_INPUT.value,
            "message": message,
            "details": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors],
        },
    )


# -------- Health / readiness (public) --------
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"ok": True}


@app.get("/readyz", include_in_schema=False)
async def readyz(db: AsyncSession = Depends(get_session)):
    await db.execute(sa.text("SELECT 1"))
    return {"db": "ok"}


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Internal metrics endpoint for monitoring."""
    return {
        "status": "healthy",
        "notifications": dispatcher.stats(),
        "errors": error_aggregator.get_error_summary(),
        "timestamp": time.time(),
    }


# -------- Include routers --------
app.include_router(slots_router)
app.include_router(meetings_router)
app.include_router(event_types_router)
app.include_router(availability_router)


# -------- Application startup/shutdown events --------
_maintenance_task: Optional[asyncio.Task] = None


@app.on_event("startup")
async def startup_event():
    global _maintenance_task
    logger.info("application_startup", env=settings.APP_ENV)
    if settings.MAINTENANCE_INTERVAL_SECONDS > 0 and not settings.is_testing:
        _maintenance_task = asyncio.create_task(maintenance_loop(AsyncSessionLocal))


@app.on_event("shutdown")
async def shutdown_event():
    global _maintenance_task
    logger.info("application_shutdown")
    if _maintenance_task is not None:
        _maintenance_task.cancel()
        try:
            await _maintenance_task
        except asyncio.CancelledError:
            pass
        _maintenance_task = None
    await dispatcher.drain()
    error_aggregator.cleanup_old_patterns()
