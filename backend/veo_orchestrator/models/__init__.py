"""Job model package."""

from veo_orchestrator.models.job import (
    ErrorKind,
    GenerationRequest,
    InvalidTransitionError,
    JobFailure,
    JobHandle,
    JobState,
    OperationHandle,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
)

__all__ = [
    "ErrorKind",
    "GenerationRequest",
    "InvalidTransitionError",
    "JobFailure",
    "JobHandle",
    "JobState",
    "OperationHandle",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
]
