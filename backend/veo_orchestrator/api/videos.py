from __future__ import annotations
"""Video jobs API — start, inspect and abandon generation jobs."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from veo_orchestrator.models.job import GenerationRequest
from veo_orchestrator.services.job_manager import JobManager
from veo_orchestrator.services.video_jobs import get_job_manager

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class VideoJobCreate(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)


class VideoJobCreated(BaseModel):
    job_id: str


class VideoJobFailure(BaseModel):
    kind: str
    message: str


class VideoJobRead(BaseModel):
    job_id: str
    state: str
    view: dict
    operation_ref: str | None = None
    submitted_at: str | None = None
    result_ref: str | None = None
    failure: VideoJobFailure | None = None
    poll_count: int = 0


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("", response_model=VideoJobCreated, status_code=202)
async def create_video_job(body: VideoJobCreate, jobs: JobManager = Depends(get_job_manager)):
    """Start a generation job and return its id immediately."""
    if not body.prompt.strip():
        raise HTTPException(status_code=422, detail="Prompt must not be blank")
    job = jobs.start(GenerationRequest(prompt=body.prompt))
    return VideoJobCreated(job_id=job.handle.job_id)


@router.get("/{job_id}", response_model=VideoJobRead)
async def get_video_job(job_id: str, jobs: JobManager = Depends(get_job_manager)):
    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return VideoJobRead(**job.handle.to_dict(), view=job.slot.view)


@router.delete("/{job_id}", status_code=204)
async def cancel_video_job(job_id: str, jobs: JobManager = Depends(get_job_manager)):
    """Abandon a job locally. The remote operation keeps running and its result is discarded.

    The job stays readable as CANCELLED until it is evicted from the registry.
    """
    if not jobs.cancel(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    logger.info("Job %s cancelled via API", job_id)
