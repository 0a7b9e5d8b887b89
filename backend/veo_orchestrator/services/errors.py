"""Stage exceptions raised along the generation pipeline.

Each stage wraps the raw cause so the error classifier can inspect it;
the orchestrator flattens them into user-facing failure kinds.
"""

from __future__ import annotations


class GenerationStageError(Exception):
    """Structured pipeline error carrying the failing stage and the raw cause."""

    stage: str = "unknown"

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class SubmissionError(GenerationStageError):
    stage = "submit"


class PollError(GenerationStageError):
    stage = "poll"


class ResolutionError(GenerationStageError):
    stage = "resolve"


class GenerationServiceError(Exception):
    """Error reported by the generation service, either over HTTP or inside an operation."""

    def __init__(self, message: str, status_code: int = 0, status: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.status = status


class JobCancelledError(Exception):
    """Raised locally when a caller abandons a job. Never published to the presentation slot."""

    def __init__(self, job_id: str | None = None):
        super().__init__(f"Job {job_id} cancelled" if job_id else "Job cancelled")
        self.job_id = job_id
