"""Turns a finished operation into an independently fetchable result URI."""

from __future__ import annotations

import httpx

from veo_orchestrator.models.job import OperationHandle
from veo_orchestrator.services.errors import GenerationServiceError, ResolutionError


def with_access_key(uri: str, access_key: str) -> str:
    """Append the credential as the `key` query parameter."""
    if not access_key:
        return uri
    return str(httpx.URL(uri).copy_merge_params({"key": access_key}))


def resolve(operation: OperationHandle, access_key: str) -> str:
    """Return the playable URI or raise ResolutionError.

    An operation that finished with an embedded error carries the service's
    message through so it can be classified like any other failure.
    """
    if operation.error:
        message = operation.error_message or "unknown"
        raise ResolutionError(
            f"Video generation failed: {message}",
            cause=GenerationServiceError(message, status=str(operation.error.get("status", ""))),
        )

    if not operation.result_uri:
        raise ResolutionError("Video generation completed but no URI was returned.")

    return with_access_key(operation.result_uri, access_key)
