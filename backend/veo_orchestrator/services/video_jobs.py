"""Process-wide wiring of the video job pipeline.

Builds the credential store, key selector, provider client, orchestrator
and job manager once, from settings.
"""

from __future__ import annotations

import logging

from veo_orchestrator.config import Settings, get_settings
from veo_orchestrator.services.entitlement import (
    CredentialStore,
    EntitlementGate,
    InteractiveKeySelector,
)
from veo_orchestrator.services.job_manager import JobManager
from veo_orchestrator.services.job_orchestrator import JobOrchestrator
from veo_orchestrator.services.providers.base import VideoConfig, VideoGenerationClient
from veo_orchestrator.services.providers.gemini_video import GeminiVideoClient
from veo_orchestrator.services.providers.mock_video import MockVideoClient

logger = logging.getLogger(__name__)


class VideoJobRuntime:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.credentials = CredentialStore(settings.GEMINI_API_KEY)
        self.selector = InteractiveKeySelector(self.credentials)
        self.client = self._build_client(settings)
        self.orchestrator = JobOrchestrator(
            EntitlementGate(None if settings.USE_MOCK_API else self.selector),
            self.client,
            config=VideoConfig(
                number_of_videos=settings.VIDEO_COUNT,
                resolution=settings.VIDEO_RESOLUTION,
                aspect_ratio=settings.VIDEO_ASPECT_RATIO,
            ),
            poll_interval=settings.POLL_INTERVAL_SECONDS,
            prompt_prefix=settings.PROMPT_PREFIX,
        )
        self.jobs = JobManager(self.orchestrator, retention_seconds=settings.JOB_RETENTION_SECONDS)

    def _build_client(self, settings: Settings) -> VideoGenerationClient:
        if settings.USE_MOCK_API:
            logger.info("Using mock Veo provider (polls_until_done=%d)", settings.MOCK_POLLS_UNTIL_DONE)
            return MockVideoClient(polls_until_done=settings.MOCK_POLLS_UNTIL_DONE)
        return GeminiVideoClient(
            model=settings.VEO_MODEL,
            api_key_provider=self.credentials.get_key,
            base_url=settings.GEMINI_ENDPOINT,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )


_runtime: VideoJobRuntime | None = None


def get_runtime() -> VideoJobRuntime:
    """Lazy-init the module-level runtime singleton."""
    global _runtime
    if _runtime is None:
        _runtime = VideoJobRuntime(get_settings())
    return _runtime


def get_job_manager() -> JobManager:
    return get_runtime().jobs


def get_key_selector() -> InteractiveKeySelector:
    return get_runtime().selector


async def shutdown_runtime() -> None:
    global _runtime
    if _runtime is not None:
        await _runtime.jobs.shutdown()
        _runtime = None
