"""
Join Request Admission API - Main Application Entry Point

Capacity-aware admission for event join requests:
- Holds seats for pending requests and expires them after a TTL
- Host approve / decline / waitlist decisions with no overbooking
- Per-event serialization (optimistic, in-process lock, or Redis lock)
- Structured logging with request correlation and Prometheus metrics
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admission.api.deps import get_clock, get_notifier, get_repository
from admission.api.errors import register_exception_handlers
from admission.api.middleware import RequestLoggingMiddleware
from admission.api.router import api_router
from admission.core.config import get_settings
from admission.core.logging import get_logger, setup_logging
from admission.core.metrics import metrics_endpoint
from admission.db.session import dispose_engine
from admission.services.expiry_service import HoldExpiryService
from admission.services.strategy_factory import close_admission, get_admission
from admission.services.sweeper import run_sweeper

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        admission_strategy=settings.ADMISSION_STRATEGY,
        repository=settings.REPOSITORY_BACKEND,
    )

    sweeper = None
    if settings.EXPIRY_SWEEP_INTERVAL_SECONDS > 0:
        expiry = HoldExpiryService(
            get_repository(),
            clock=get_clock(),
            strategy=get_admission(),
            notifier=get_notifier(),
        )
        sweeper = asyncio.create_task(run_sweeper(expiry, settings.EXPIRY_SWEEP_INTERVAL_SECONDS))

    yield

    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
    await close_admission()
    if settings.REPOSITORY_BACKEND == "sqlalchemy":
        await dispose_engine()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Capacity-aware join request admission with expiring holds",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)

# Routes
app.include_router(api_router)
app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Health"], include_in_schema=False)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "admission_strategy": settings.ADMISSION_STRATEGY,
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
