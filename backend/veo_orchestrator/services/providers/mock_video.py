"""Mock Veo provider used when USE_MOCK_API is enabled.

Each operation reports `done` after a fixed number of status queries.
"""

from __future__ import annotations

import logging
import uuid

from veo_orchestrator.models.job import OperationHandle
from veo_orchestrator.services.providers.base import VideoConfig

logger = logging.getLogger(__name__)


class MockVideoClient:
    def __init__(self, polls_until_done: int = 2, model: str = "veo-mock") -> None:
        self.model = model
        self.polls_until_done = polls_until_done
        self._remaining: dict[str, int] = {}

    def access_key(self) -> str:
        return "mock-key"

    async def submit(self, prompt: str, config: VideoConfig) -> OperationHandle:
        name = f"models/{self.model}/operations/mock-{uuid.uuid4().hex[:12]}"
        self._remaining[name] = self.polls_until_done
        logger.info("Mock Veo operation started: %s", name)
        return OperationHandle(name=name, done=False)

    async def get_status(self, operation: OperationHandle) -> OperationHandle:
        remaining = self._remaining.get(operation.name, 0) - 1
        self._remaining[operation.name] = remaining
        if remaining > 0:
            return OperationHandle(name=operation.name, done=False)

        self._remaining.pop(operation.name, None)
        file_id = operation.name.rsplit("/", 1)[-1]
        return OperationHandle(
            name=operation.name,
            done=True,
            result_uri=f"https://mock.local/v1beta/files/{file_id}:download?alt=media",
        )
