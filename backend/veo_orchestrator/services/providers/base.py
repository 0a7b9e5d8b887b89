"""Provider protocol shared by the real and mock video generation clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from veo_orchestrator.models.job import OperationHandle


@dataclass(frozen=True)
class VideoConfig:
    number_of_videos: int = 1
    resolution: str = "720p"
    aspect_ratio: str = "16:9"


@runtime_checkable
class VideoGenerationClient(Protocol):
    """Operation-based generation service."""

    async def submit(self, prompt: str, config: VideoConfig) -> OperationHandle:
        ...

    async def get_status(self, operation: OperationHandle) -> OperationHandle:
        ...

    def access_key(self) -> str:
        """Credential appended to result URIs so they can be fetched independently."""
        ...
