"""Generation job orchestrator.

Runs one job end to end:
  IDLE → CHECKING_ENTITLEMENT → SUBMITTING → POLLING → RESOLVING → SUCCEEDED | FAILED

Every stage failure is classified before it is surfaced. The only recovery
performed here is re-opening key selection after an entitlement failure;
the job itself is never resubmitted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from veo_orchestrator.models.job import (
    VALID_TRANSITIONS,
    ErrorKind,
    GenerationRequest,
    JobHandle,
    JobState,
)
from veo_orchestrator.services.cancellation import CancelToken
from veo_orchestrator.services.entitlement import EntitlementGate
from veo_orchestrator.services.error_classifier import USER_MESSAGES, ClassifiedError, classify
from veo_orchestrator.services.errors import (
    JobCancelledError,
    PollError,
    ResolutionError,
    SubmissionError,
)
from veo_orchestrator.services.job_slot import JobSlot
from veo_orchestrator.services.job_submitter import DEFAULT_PROMPT_PREFIX, JobSubmitter
from veo_orchestrator.services.poller import DEFAULT_POLL_INTERVAL, Poller
from veo_orchestrator.services.providers.base import VideoConfig, VideoGenerationClient
from veo_orchestrator.services.result_resolver import resolve

logger = logging.getLogger(__name__)


class JobOrchestrator:
    """The only component callers talk to.

    Usage:
        orchestrator = JobOrchestrator(EntitlementGate(selector), client)
        handle = await orchestrator.generate(GenerationRequest("..."))
        handle.result_ref or handle.failure
    """

    def __init__(
        self,
        gate: EntitlementGate,
        client: VideoGenerationClient,
        *,
        config: VideoConfig | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        prompt_prefix: str = DEFAULT_PROMPT_PREFIX,
    ) -> None:
        self.gate = gate
        self._client = client
        self._submitter = JobSubmitter(client, config, prompt_prefix)
        self._poller = Poller(client, poll_interval)
        self._total_jobs = 0
        self._succeeded = 0
        self._failed: dict[ErrorKind, int] = {kind: 0 for kind in ErrorKind}
        self._cancelled = 0
        self._total_polls = 0

    async def generate(
        self,
        request: GenerationRequest,
        *,
        cancel: CancelToken | None = None,
        slot: JobSlot | None = None,
        handle: JobHandle | None = None,
    ) -> JobHandle:
        """Run a fresh job to a terminal state and return its handle.

        The returned handle is always SUCCEEDED or FAILED. An unexpected
        exception in any stage fails the job as FATAL instead of escaping.

        Raises:
            JobCancelledError: if `cancel` fires; nothing is pushed to `slot` afterwards.
        """
        handle = handle or JobHandle(request=request)
        if handle.state is not JobState.IDLE or handle.operation_ref is not None:
            raise ValueError(f"Job {handle.job_id} has already run; start a new job instead")
        cancel = cancel or CancelToken(handle.job_id)

        self._total_jobs += 1
        if slot is not None:
            slot.set_loading()

        try:
            try:
                return await self._run_stages(request, handle, cancel, slot)
            except (JobCancelledError, asyncio.CancelledError):
                raise
            except Exception as e:
                if handle.is_terminal:
                    raise
                logger.exception(
                    "Job %s crashed in state %s", handle.job_id, handle.state.value,
                )
                return await self._fail(handle, e, cancel, slot, kind=ErrorKind.FATAL)
        except (JobCancelledError, asyncio.CancelledError):
            self._mark_cancelled(handle)
            raise

    async def _run_stages(
        self,
        request: GenerationRequest,
        handle: JobHandle,
        cancel: CancelToken,
        slot: JobSlot | None,
    ) -> JobHandle:
        handle.transition(JobState.CHECKING_ENTITLEMENT)
        await self.gate.ensure_entitled(cancel, slot)

        handle.transition(JobState.SUBMITTING)
        try:
            await cancel.run(self._submitter.submit(request, handle))
        except SubmissionError as e:
            return await self._fail(handle, e, cancel, slot)

        handle.transition(JobState.POLLING)
        try:
            operation = await self._poller.poll_until_done(handle, cancel)
        except PollError as e:
            return await self._fail(handle, e, cancel, slot)
        finally:
            self._total_polls += handle.poll_count

        handle.transition(JobState.RESOLVING)
        try:
            result_ref = resolve(operation, self._client.access_key())
        except ResolutionError as e:
            return await self._fail(handle, e, cancel, slot)

        handle.succeed(result_ref)
        self._succeeded += 1
        logger.info("Job %s succeeded (operation=%s)", handle.job_id, handle.operation_ref)
        if slot is not None:
            slot.set_result(result_ref)
        return handle

    async def _fail(
        self,
        handle: JobHandle,
        error: Exception,
        cancel: CancelToken,
        slot: JobSlot | None,
        kind: ErrorKind | None = None,
    ) -> JobHandle:
        """Classify `error` and move the job to FAILED.

        A forced `kind` skips classification and the corrective reselect.
        """
        if kind is None:
            classified = classify(error)
        else:
            classified = ClassifiedError(kind=kind, user_message=USER_MESSAGES[kind])
        stage = getattr(error, "stage", handle.state.value.lower())
        logger.error(
            "Job %s failed at %s stage (%s): %s",
            handle.job_id, stage, classified.kind.value, error,
        )

        if kind is None and classified.kind is ErrorKind.ENTITLEMENT:
            await self.gate.reselect(cancel, slot)

        cancel.raise_if_cancelled()
        handle.fail(classified.kind, classified.user_message)
        self._failed[classified.kind] += 1
        if slot is not None:
            slot.set_error(classified.user_message, classified.kind.value)
        return handle

    def _mark_cancelled(self, handle: JobHandle) -> None:
        self._cancelled += 1
        if not handle.is_terminal and JobState.CANCELLED in VALID_TRANSITIONS[handle.state]:
            handle.transition(JobState.CANCELLED)
        logger.info(
            "Job %s cancelled locally (operation=%s left running remotely)",
            handle.job_id, handle.operation_ref,
        )

    def get_metrics(self) -> dict[str, Any]:
        """Return usage statistics for this orchestrator."""
        failed_total = sum(self._failed.values())
        return {
            "service": "veo_video",
            "total_jobs": self._total_jobs,
            "succeeded": self._succeeded,
            "failed": failed_total,
            "failed_by_kind": {kind.value: count for kind, count in self._failed.items()},
            "cancelled": self._cancelled,
            "total_polls": self._total_polls,
            "selector_opens": self.gate.selector_opens,
            "error_rate": round(failed_total / max(self._total_jobs, 1), 3),
        }
