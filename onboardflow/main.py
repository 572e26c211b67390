"""FastAPI application entry point.

Configures CORS, structured logging, lifespan events (configuration
validation and APScheduler), and router registration.
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onboardflow.core.config import settings
from onboardflow.core.logging import setup_logging
from onboardflow.core.validation import validate_configuration
from onboardflow.routers import candidates, health, workflow
from onboardflow.scheduler.jobs import shutdown_scheduler, start_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: startup and shutdown hooks.

    Invalid configuration raises here and aborts startup before the
    scheduler runs a single tick.
    """
    setup_logging()
    logger.info("Application starting up")
    validate_configuration(settings)
    start_scheduler()
    yield
    shutdown_scheduler()
    logger.info("Application shutting down")


app = FastAPI(
    title="Candidate Onboarding API",
    description="Onboarding workflow: offers, document collection, reconciliation and reminders",
    version="0.1.0",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS Configuration
# ---------------------------------------------------------------------------
_raw_origins = settings.ALLOWED_ORIGINS.strip()
if _raw_origins == "*":
    _allowed_origins: list[str] = ["*"]
else:
    _allowed_origins = [o.strip() for o in _raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Router Registration
# ---------------------------------------------------------------------------
app.include_router(health.router, tags=["Health"])
app.include_router(candidates.router, prefix="/api/v1/candidates", tags=["Candidates"])
app.include_router(workflow.router, prefix="/api/v1/workflow", tags=["Workflow"])
