# backend/salon/main.py

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .redis_client import redis_client
from .routers import admin, bookings, hairdressers, integrations, internal, profile, services, slots
from .services.calendar_sync import calendar_sync_loop
from .services.errors import SalonError, SlotUnavailableError
from .services.past_sweeper import past_sweeper_loop

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    tasks: list[asyncio.Task] = []
    if settings.run_background_jobs:
        tasks.append(asyncio.create_task(past_sweeper_loop()))
        tasks.append(asyncio.create_task(calendar_sync_loop(settings.redis_url)))
        logger.info("Background jobs started")

    yield

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


app = FastAPI(title="Salon Booking API", lifespan=lifespan)


@app.exception_handler(SalonError)
async def salon_error_handler(request: Request, exc: SalonError) -> JSONResponse:
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, SlotUnavailableError) and exc.conflicts:
        content["conflicting_booking_ids"] = [c.booking_id for c in exc.conflicts]
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(profile.router)
app.include_router(slots.router)
app.include_router(bookings.router)
app.include_router(admin.router)
app.include_router(hairdressers.router)
app.include_router(services.router)
app.include_router(internal.router)
app.include_router(integrations.router)


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except Exception:
        redis_ok = False
    return {"status": "ok", "redis": redis_ok}
