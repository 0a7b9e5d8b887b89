"""Operation poller.

Queries the operation at a fixed cadence until it reports done. There is
no attempt cap or overall deadline; callers bound the wait through the
cancel token.
"""

from __future__ import annotations

import logging

from veo_orchestrator.models.job import JobHandle, OperationHandle
from veo_orchestrator.services.cancellation import CancelToken
from veo_orchestrator.services.errors import PollError
from veo_orchestrator.services.providers.base import VideoGenerationClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class Poller:
    def __init__(self, client: VideoGenerationClient, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._client = client
        self.interval = interval

    async def poll_until_done(
        self,
        handle: JobHandle,
        cancel: CancelToken,
        interval: float | None = None,
    ) -> OperationHandle:
        """Return the final operation snapshot, success or embedded failure.

        Raises:
            PollError: on the first failed status query.
            JobCancelledError: if the token fires during a wait.
        """
        if handle.operation is None:
            raise PollError(f"Job {handle.job_id} has no operation to poll")

        delay = self.interval if interval is None else interval
        operation = handle.operation

        while not operation.done:
            await cancel.sleep(delay)
            logger.debug("Polling job %s operation %s...", handle.job_id, handle.operation_ref)
            try:
                operation = await cancel.run(self._client.get_status(operation))
            except Exception as e:
                cancel.raise_if_cancelled()
                raise PollError(f"Status query failed: {e}", cause=e) from e
            finally:
                handle.poll_count += 1
            handle.operation = operation

        logger.info(
            "Job %s operation finished after %d poll(s)", handle.job_id, handle.poll_count,
        )
        return operation
