from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import logging

from app.api.v1.router import router as api_v1_router
from app.core.config import settings as app_settings
from app.core.database import dispose_engine
from app.core.exceptions import (
    ChannelDeliveryError,
    ChannelNotConfiguredError,
    InvalidFollowUpIntervalError,
    LeadNotFoundError,
    NotificationDataError,
    OrganizationNotFoundError,
    TaskNotFoundError,
    UserNotFoundError,
)
from app.core.rate_limit import limiter
from app.dependencies import (
    build_lead_follow_up_dispatcher,
    build_task_notification_scheduler,
    get_redis_client,
)

# Configure logging
logging.basicConfig(level=app_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the dispatchers and their background loops for the app's lifetime."""
    redis_client = await get_redis_client()
    scheduler = build_task_notification_scheduler(redis_client)
    follow_ups = build_lead_follow_up_dispatcher()
    app.state.task_notification_scheduler = scheduler
    app.state.lead_follow_up_dispatcher = follow_ups

    if app_settings.ENABLE_BACKGROUND_DISPATCHERS:
        scheduler.start()
        follow_ups.start()
    else:
        logger.info("Background dispatchers disabled; use the process endpoints")
    yield
    # Shutdown: stop loops before closing the pool they use
    await scheduler.stop()
    await follow_ups.stop()
    if redis_client is not None:
        await redis_client.aclose()
    await dispose_engine()


app = FastAPI(
    title="Pro Field Manager Notifications",
    description="Task due-date reminders and automatic lead follow-ups",
    version="0.1.0",
    lifespan=lifespan,
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.exception_handler(TaskNotFoundError)
async def task_not_found_handler(request: Request, exc: TaskNotFoundError):
    logger.warning("Task not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "task_not_found"},
    )


@app.exception_handler(UserNotFoundError)
async def user_not_found_handler(request: Request, exc: UserNotFoundError):
    logger.warning("User not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "user_not_found"},
    )


@app.exception_handler(LeadNotFoundError)
async def lead_not_found_handler(request: Request, exc: LeadNotFoundError):
    logger.warning("Lead not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "lead_not_found"},
    )


@app.exception_handler(OrganizationNotFoundError)
async def organization_not_found_handler(
    request: Request, exc: OrganizationNotFoundError
):
    logger.warning("Organization not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "organization_not_found"},
    )


@app.exception_handler(InvalidFollowUpIntervalError)
async def invalid_follow_up_interval_handler(
    request: Request, exc: InvalidFollowUpIntervalError
):
    logger.warning("Invalid follow-up interval: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_follow_up_interval"},
    )


@app.exception_handler(NotificationDataError)
async def notification_data_handler(request: Request, exc: NotificationDataError):
    logger.warning("Notification data error: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "notification_data_error"},
    )


@app.exception_handler(ChannelNotConfiguredError)
async def channel_not_configured_handler(
    request: Request, exc: ChannelNotConfiguredError
):
    logger.error("Channel not configured: %s", exc.detail)
    return JSONResponse(
        status_code=503,
        content={"detail": exc.detail, "type": "channel_not_configured"},
    )


@app.exception_handler(ChannelDeliveryError)
async def channel_delivery_handler(request: Request, exc: ChannelDeliveryError):
    logger.error("Channel delivery failed: %s", exc.detail)
    return JSONResponse(
        status_code=503,
        content={"detail": exc.detail, "type": "channel_delivery_failed"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": exc.errors(),
            "type": "validation_error",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )
