from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import appointments, blocked_slots, calendar, health, schedules, simulation
from app.core.config import get_settings
from app.core.exceptions import AppError
from app.core.middleware import RequestSizeLimitMiddleware
from app.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    yield


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(schedules.router, prefix=settings.api_prefix, tags=["schedules"])
app.include_router(calendar.router, prefix=f"{settings.api_prefix}/calendar", tags=["calendar"])
app.include_router(appointments.router, prefix=f"{settings.api_prefix}/appointments", tags=["appointments"])
app.include_router(blocked_slots.router, prefix=f"{settings.api_prefix}/blocked-slots", tags=["blocked-slots"])
app.include_router(simulation.router, prefix=f"{settings.api_prefix}/simulation", tags=["simulation"])
