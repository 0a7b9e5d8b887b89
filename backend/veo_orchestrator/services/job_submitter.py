"""Job submission: prompt enrichment and the initial generation request."""

from __future__ import annotations

import logging

from veo_orchestrator.models.job import GenerationRequest, JobHandle
from veo_orchestrator.services.errors import SubmissionError
from veo_orchestrator.services.providers.base import VideoConfig, VideoGenerationClient

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_PREFIX = (
    "Cinematic medical animation, 8k resolution, photorealistic textures, "
    "professional studio lighting, detailed anatomy, slow motion camera: "
)


def enhance_prompt(prompt: str, prefix: str = DEFAULT_PROMPT_PREFIX) -> str:
    """Prepend the fixed presentation directives to a raw prompt."""
    return f"{prefix}{prompt}"


class JobSubmitter:
    """Starts one remote operation per call. Never retries."""

    def __init__(
        self,
        client: VideoGenerationClient,
        config: VideoConfig | None = None,
        prompt_prefix: str = DEFAULT_PROMPT_PREFIX,
    ) -> None:
        self._client = client
        self._config = config or VideoConfig()
        self._prompt_prefix = prompt_prefix

    async def submit(self, request: GenerationRequest, handle: JobHandle | None = None) -> JobHandle:
        """Start the operation and bind it to `handle` (a fresh one if omitted).

        Raises:
            SubmissionError: wrapping whatever the client raised.
        """
        handle = handle or JobHandle(request=request)
        prompt = enhance_prompt(request.prompt, self._prompt_prefix)
        logger.info("Submitting job %s: %.80s", handle.job_id, prompt)

        try:
            operation = await self._client.submit(prompt, self._config)
        except Exception as e:
            raise SubmissionError(f"Generation request failed: {e}", cause=e) from e

        handle.assign_operation(operation)
        return handle
