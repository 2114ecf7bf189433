import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from booking_engine.api.routes import admin, bookings, services, slots
from booking_engine.core.config import settings, _ENV_FILE
from booking_engine.core.db import async_session_maker
from booking_engine.services.lifecycle_service import expire_stale_payment_reviews
from booking_engine.services.notification_service import send_lifecycle_events

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


async def _run_payment_review_expiry() -> None:
    """Cancel payment_review bookings older than payment_review_expiry_hours."""
    try:
        async with async_session_maker() as session:
            try:
                events = await expire_stale_payment_reviews(session, settings.payment_review_expiry_hours)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        if events:
            logger.info(
                "Payment review expiry: cancelled %d booking(s) older than %d hours",
                len(events),
                settings.payment_review_expiry_hours,
            )
            await send_lifecycle_events(events)
    except Exception as e:
        logger.exception("Payment review expiry failed: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info(
        "Business timezone: %s; payment review expiry: %d hours (checked every %ds)",
        settings.business_timezone,
        settings.payment_review_expiry_hours,
        settings.expiry_check_interval_seconds,
    )
    if not settings.notifications_enabled:
        logger.warning("Lifecycle notifications: NOT configured. Set NOTIFICATION_WEBHOOK_URL in %s", _ENV_FILE)
    await _run_payment_review_expiry()
    task = asyncio.create_task(_expiry_loop())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


async def _expiry_loop() -> None:
    while True:
        await asyncio.sleep(settings.expiry_check_interval_seconds)
        await _run_payment_review_expiry()


app = FastAPI(
    title="Booking Engine API",
    description="Slot availability and reservations for recovery sessions",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(services.router, prefix="/api/v1")
app.include_router(slots.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 with CORS headers so the browser does not mask the failure."""
    origin = request.headers.get("origin")
    headers = _cors_headers(origin)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Something went wrong. Please try again."},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
