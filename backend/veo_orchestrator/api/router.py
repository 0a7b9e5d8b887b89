from __future__ import annotations
"""Master API router — mounts all sub-routers."""

from fastapi import APIRouter

from veo_orchestrator.api.credentials import router as credentials_router
from veo_orchestrator.api.metrics import router as metrics_router
from veo_orchestrator.api.videos import router as videos_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(videos_router, prefix="/videos", tags=["Video Jobs"])
api_router.include_router(credentials_router, prefix="/credentials", tags=["Credentials"])
api_router.include_router(metrics_router, prefix="/metrics", tags=["Metrics"])
