from __future__ import annotations
"""Metrics API — generation job statistics."""

from fastapi import APIRouter, Depends

from veo_orchestrator.services.job_manager import JobManager
from veo_orchestrator.services.video_jobs import get_job_manager

router = APIRouter()


@router.get("/generation")
async def generation_metrics(jobs: JobManager = Depends(get_job_manager)):
    """Return usage statistics for the video job orchestrator."""
    metrics = jobs.orchestrator.get_metrics()
    metrics["active_jobs"] = jobs.active_count
    return {"services": [metrics]}
