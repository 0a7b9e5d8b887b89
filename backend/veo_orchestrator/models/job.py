"""Generation job model — request value, operation payload and job handle state machine."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class JobState(str, enum.Enum):
    """Lifecycle states of a single generation job."""

    IDLE = "IDLE"
    CHECKING_ENTITLEMENT = "CHECKING_ENTITLEMENT"
    SUBMITTING = "SUBMITTING"
    POLLING = "POLLING"
    RESOLVING = "RESOLVING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"  # local abandonment, never reported as a result


class ErrorKind(str, enum.Enum):
    """User-facing failure taxonomy."""

    ENTITLEMENT = "ENTITLEMENT"
    TRANSIENT = "TRANSIENT"
    FATAL = "FATAL"


TERMINAL_STATES: frozenset[JobState] = frozenset(
    {JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED}
)

# Explicit valid transitions: state -> set of reachable states
VALID_TRANSITIONS: dict[JobState, set[JobState]] = {
    JobState.IDLE: {JobState.CHECKING_ENTITLEMENT},
    JobState.CHECKING_ENTITLEMENT: {JobState.SUBMITTING, JobState.FAILED, JobState.CANCELLED},
    JobState.SUBMITTING: {JobState.POLLING, JobState.FAILED, JobState.CANCELLED},
    JobState.POLLING: {JobState.RESOLVING, JobState.FAILED, JobState.CANCELLED},
    JobState.RESOLVING: {JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED},
    JobState.SUCCEEDED: set(),
    JobState.FAILED: set(),
    JobState.CANCELLED: set(),
}


class InvalidTransitionError(RuntimeError):
    """Raised when a job is moved along an edge the state machine does not have."""

    def __init__(self, current: JobState, target: JobState):
        super().__init__(f"Invalid job transition {current.value} -> {target.value}")
        self.current = current
        self.target = target


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable description of the artifact to generate."""
    prompt: str

    def __post_init__(self) -> None:
        if not self.prompt or not self.prompt.strip():
            raise ValueError("Generation prompt must not be empty")


@dataclass(frozen=True)
class OperationHandle:
    """Snapshot of a long-running operation as reported by the generation service."""
    name: str
    done: bool = False
    result_uri: str | None = None
    error: dict[str, Any] | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def error_message(self) -> str | None:
        if not self.error:
            return None
        return str(self.error.get("message") or self.error)


@dataclass(frozen=True)
class JobFailure:
    kind: ErrorKind
    message: str


@dataclass
class JobHandle:
    """One in-flight or completed generation job.

    `operation_ref` is written exactly once at submission. `result_ref` and
    `failure` stay unset until the job reaches SUCCEEDED or FAILED respectively.
    """

    request: GenerationRequest
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: JobState = JobState.IDLE
    operation_ref: str | None = None
    submitted_at: datetime | None = None
    result_ref: str | None = None
    failure: JobFailure | None = None
    poll_count: int = 0
    operation: OperationHandle | None = field(default=None, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, target: JobState) -> None:
        if target not in VALID_TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state, target)
        self.state = target

    def assign_operation(self, operation: OperationHandle) -> None:
        if self.operation_ref is not None:
            raise RuntimeError(f"Job {self.job_id} already bound to operation {self.operation_ref}")
        self.operation_ref = operation.name
        self.operation = operation
        self.submitted_at = datetime.now(timezone.utc)

    def succeed(self, result_ref: str) -> None:
        self.transition(JobState.SUCCEEDED)
        self.result_ref = result_ref

    def fail(self, kind: ErrorKind, message: str) -> None:
        self.transition(JobState.FAILED)
        self.failure = JobFailure(kind=kind, message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "state": self.state.value,
            "operation_ref": self.operation_ref,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "result_ref": self.result_ref,
            "failure": (
                {"kind": self.failure.kind.value, "message": self.failure.message}
                if self.failure else None
            ),
            "poll_count": self.poll_count,
        }
