# companion/main.py
from __future__ import annotations

from contextlib import asynccontextmanager

# Load .env early so settings and os.getenv agree
from dotenv import load_dotenv
load_dotenv()

import sqlalchemy as sa
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from companion.core.config import settings
from companion.core.errors import CompanionError
from companion.core.logging import LoggingMiddleware, get_logger, setup_logging

setup_logging(debug=settings.is_development, max_log_length=settings.MAX_LOG_LENGTH, level=settings.LOG_LEVEL)
logger = get_logger(__name__)

# Routers
from companion.api.routes.auth import router as auth_router
from companion.api.routes.profiles import router as profiles_router
from companion.api.routes.patients import router as patients_router
from companion.api.routes.appointments import router as appointments_router
from companion.api.routes.assistant import router as assistant_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("application_startup", app_env=settings.APP_ENV, database=settings.database_configured)
    if settings.database_configured:
        from companion.db.base import init_db

        # Alembic owns migrations; create_all only fills in a fresh database
        await init_db()
    yield
    logger.info("application_shutdown")


app = FastAPI(
    title="Companion Practice",
    description="Practice management for solo clinicians",
    lifespan=lifespan,
)

app.middleware("http")(
    LoggingMiddleware(
        log_requests=settings.LOG_REQUESTS or settings.is_development,
        log_responses=settings.LOG_RESPONSES or settings.is_development,
        slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
    )
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CompanionError)
async def companion_error_handler(request: Request, exc: CompanionError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message, error_type=type(exc).__name__)
    else:
        logger.info("request_rejected", path=request.url.path, status_code=exc.status_code, error=exc.message)
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


# -------- Health / readiness (public) --------
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"ok": True}


@app.get("/readyz", include_in_schema=False)
async def readyz():
    if not settings.database_configured:
        return {"db": "memory"}
    from companion.db.session import get_session_factory

    async with get_session_factory()() as db:
        await db.execute(sa.text("SELECT 1"))
    return {"db": "ok"}


# -------- Include routers --------
app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(patients_router)
app.include_router(appointments_router)
app.include_router(assistant_router)

