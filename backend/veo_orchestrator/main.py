from __future__ import annotations
"""Veo orchestrator — FastAPI application entry point.

Mounts the video job, credential and metrics routes plus the job WebSocket.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from veo_orchestrator.api.router import api_router
from veo_orchestrator.api.ws import router as ws_router
from veo_orchestrator.config import get_settings
from veo_orchestrator.services.video_jobs import get_runtime, shutdown_runtime

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: build the job runtime on startup, abandon jobs on shutdown."""
    logger.info("%s starting up...", settings.APP_NAME)
    logger.info("USE_MOCK_API: %s", settings.USE_MOCK_API)
    logger.info("Veo model: %s (poll every %ss)", settings.VEO_MODEL, settings.POLL_INTERVAL_SECONDS)
    if not settings.GEMINI_API_KEY and not settings.USE_MOCK_API:
        logger.warning("No GEMINI_API_KEY set, jobs will wait for key selection")

    get_runtime()

    yield

    # Local teardown only; remote operations are left to finish on their own.
    await shutdown_runtime()
    logger.info("%s shut down", settings.APP_NAME)


app = FastAPI(
    title="Veo Orchestrator API",
    description="Educational video generation jobs on Gemini Veo: key gate → submit → poll → resolve",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)
app.include_router(ws_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": settings.APP_NAME,
        "status": "running",
        "mock_mode": settings.USE_MOCK_API,
    }


@app.get("/health")
async def health():
    """Detailed health check."""
    runtime = get_runtime()
    return {
        "status": "healthy",
        "model": settings.VEO_MODEL,
        "mock_mode": settings.USE_MOCK_API,
        "credential_selected": runtime.credentials.has_key,
        "active_jobs": runtime.jobs.active_count,
    }
