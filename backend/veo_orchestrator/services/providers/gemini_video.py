"""Gemini Veo video generation provider.

Supports Veo 3.1 / 3.0 / 2.0 models via the Google AI long-running
operation API (`predictLongRunning` + operation polling).
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from veo_orchestrator.models.job import OperationHandle
from veo_orchestrator.services.errors import GenerationServiceError
from veo_orchestrator.services.providers.base import VideoConfig

logger = logging.getLogger(__name__)

_DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"


def mask_key(key: str) -> str:
    """Mask an API key for safe logging: show first 8 and last 4 chars."""
    if len(key) <= 16:
        return "***"
    return f"{key[:8]}...{key[-4:]}"


class GeminiVideoClient:
    """Thin async client for Veo operations.

    The API key is read through `api_key_provider` on every call so a key
    selected while a job is waiting is picked up by the next request.
    """

    def __init__(
        self,
        *,
        model: str,
        api_key_provider: Callable[[], str],
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.model = model
        self.endpoint = (base_url or _DEFAULT_ENDPOINT).rstrip("/")
        self._api_key_provider = api_key_provider
        self._http_client = http_client
        self._timeout = timeout

    def access_key(self) -> str:
        return self._api_key_provider()

    async def submit(self, prompt: str, config: VideoConfig) -> OperationHandle:
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": config.number_of_videos,
                "resolution": config.resolution,
                "aspectRatio": config.aspect_ratio,
            },
        }
        url = f"{self.endpoint}/models/{self.model}:predictLongRunning"
        data = await self._request("POST", url, json=body)

        if not data.get("name"):
            raise GenerationServiceError(f"Veo returned no operation name: {data}")

        operation = parse_operation(data)
        logger.info("Veo operation started: %s (model=%s)", operation.name, self.model)
        return operation

    async def get_status(self, operation: OperationHandle) -> OperationHandle:
        url = f"{self.endpoint}/{operation.name}"
        data = await self._request("GET", url)
        return parse_operation(data, fallback_name=operation.name)

    async def _request(self, method: str, url: str, json: dict | None = None) -> dict[str, Any]:
        key = self._api_key_provider()
        if not key:
            raise GenerationServiceError(
                "Gemini API key is required (UNAUTHENTICATED)", status="UNAUTHENTICATED",
            )

        headers = {"x-goog-api-key": key, "Content-Type": "application/json"}
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        own_client = self._http_client is None

        try:
            logger.debug("Veo %s %s key=%s", method, url, mask_key(key))
            resp = await client.request(method, url, headers=headers, json=json)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise _service_error(e.response) from e
        except httpx.TimeoutException as e:
            raise GenerationServiceError(f"Veo request timed out: {method} {url}") from e
        except httpx.TransportError as e:
            raise GenerationServiceError(
                f"Network error talking to Veo ({type(e).__name__}): {e}"
            ) from e
        finally:
            if own_client:
                await client.aclose()


def parse_operation(data: dict[str, Any], fallback_name: str = "") -> OperationHandle:
    """Convert a raw operation payload into an OperationHandle."""
    done = bool(data.get("done"))
    return OperationHandle(
        name=data.get("name") or fallback_name,
        done=done,
        result_uri=_extract_video_uri(data.get("response") or {}) if done else None,
        error=data.get("error"),
        raw=data,
    )


def _extract_video_uri(response: dict[str, Any]) -> str | None:
    """Pull the first generated video URI from either response shape Veo uses."""
    samples = (
        response.get("generateVideoResponse", {}).get("generatedSamples")
        or response.get("generatedVideos")
        or []
    )
    if not samples:
        return None
    video = samples[0].get("video") or {}
    return video.get("uri")


def _service_error(response: httpx.Response) -> GenerationServiceError:
    """Build an error that keeps the service's own message for classification."""
    status = ""
    try:
        error = response.json().get("error", {})
        message = error.get("message") or response.text
        status = error.get("status", "")
    except ValueError:
        message = response.text
    return GenerationServiceError(
        f"Veo HTTP {response.status_code} {status}: {message}".strip(),
        status_code=response.status_code,
        status=status,
    )
