"""In-process registry of running generation jobs.

Each job runs as its own asyncio task. Nothing is persisted: a finished job
stays readable for `retention_seconds` and is then evicted, so the registry
only grows with the number of recent jobs.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from veo_orchestrator.models.job import GenerationRequest, JobHandle
from veo_orchestrator.services.cancellation import CancelToken
from veo_orchestrator.services.errors import JobCancelledError
from veo_orchestrator.services.job_orchestrator import JobOrchestrator
from veo_orchestrator.services.job_slot import JobSlot

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 600.0


@dataclass
class ManagedJob:
    handle: JobHandle
    slot: JobSlot
    cancel: CancelToken
    task: asyncio.Task | None = None


class JobManager:
    def __init__(
        self,
        orchestrator: JobOrchestrator,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
    ) -> None:
        self.orchestrator = orchestrator
        self.retention_seconds = retention_seconds
        self._jobs: dict[str, ManagedJob] = {}
        self._evictions: dict[str, asyncio.TimerHandle] = {}

    def start(self, request: GenerationRequest) -> ManagedJob:
        """Schedule a new job on the running loop and return immediately."""
        handle = JobHandle(request=request)
        job = ManagedJob(
            handle=handle,
            slot=JobSlot(handle.job_id),
            cancel=CancelToken(handle.job_id),
        )
        self._jobs[handle.job_id] = job
        job.task = asyncio.create_task(self._run(job), name=f"veo-job-{handle.job_id[:8]}")
        job.task.add_done_callback(lambda _task: self._schedule_eviction(job))
        logger.info("Job %s scheduled (active=%d)", handle.job_id, self.active_count)
        return job

    def get(self, job_id: str) -> ManagedJob | None:
        return self._jobs.get(job_id)

    def cancel(self, job_id: str) -> bool:
        """Abandon a job locally. The remote operation is not notified.

        The job stays readable (as CANCELLED) until it is evicted.
        """
        job = self._jobs.get(job_id)
        if job is None:
            return False
        job.cancel.cancel()
        return True

    @property
    def active_count(self) -> int:
        return sum(1 for job in self._jobs.values() if job.task is not None and not job.task.done())

    @property
    def job_count(self) -> int:
        return len(self._jobs)

    async def shutdown(self) -> None:
        """Cancel every job and wait for their tasks to unwind."""
        tasks = []
        for job in self._jobs.values():
            job.cancel.cancel()
            if job.task is not None:
                tasks.append(job.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for timer in self._evictions.values():
            timer.cancel()
        self._evictions.clear()
        self._jobs.clear()

    def _schedule_eviction(self, job: ManagedJob) -> None:
        job_id = job.handle.job_id
        if self._jobs.get(job_id) is not job:
            return
        loop = asyncio.get_running_loop()
        self._evictions[job_id] = loop.call_later(self.retention_seconds, self._evict, job)

    def _evict(self, job: ManagedJob) -> None:
        job_id = job.handle.job_id
        self._evictions.pop(job_id, None)
        if self._jobs.get(job_id) is job:
            del self._jobs[job_id]
            logger.debug("Job %s evicted (state=%s)", job_id, job.handle.state.value)

    async def _run(self, job: ManagedJob) -> None:
        try:
            await self.orchestrator.generate(
                job.handle.request,
                cancel=job.cancel,
                slot=job.slot,
                handle=job.handle,
            )
        except JobCancelledError:
            logger.info("Job %s abandoned by caller", job.handle.job_id)
        except Exception:
            logger.exception("Job %s crashed", job.handle.job_id)
