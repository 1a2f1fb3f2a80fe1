"""FastAPI application for the VICIdial dashboard backend."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .deps import get_sync_runner
from .logging_config import configure_logging
from .scheduler import SyncScheduler
from .vicidial.errors import InvalidArgument, MissingParameterError, RemoteError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Auto-create tables for SQLite (local dev); other databases use Alembic migrations
    if "sqlite" in settings.database_url:
        from .database import engine
        from .models import Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    scheduler = SyncScheduler(get_sync_runner())
    scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()


app = FastAPI(title=settings.app_title, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MissingParameterError)
@app.exception_handler(InvalidArgument)
async def bad_request_handler(request: Request, exc: MissingParameterError | InvalidArgument):
    return JSONResponse({"success": False, "error": exc.message}, status_code=400)


@app.exception_handler(RemoteError)
async def remote_error_handler(request: Request, exc: RemoteError):
    logger.error("VICIdial error on %s: %s", request.url.path, exc.message)
    return JSONResponse({"success": False, "error": exc.message}, status_code=500)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse({"success": False, "error": str(exc)}, status_code=500)


@app.get("/")
async def root():
    return {"success": True, "data": "VICIdial API connected"}


# Import and register routers
from .routers import (  # noqa: E402
    agents, calls, campaigns, dashboard, health, hopper, lists,
)

app.include_router(agents.router)
app.include_router(calls.router)
app.include_router(hopper.router)
app.include_router(lists.router)
app.include_router(dashboard.router)
app.include_router(campaigns.router)
app.include_router(health.router)
