"""Failure classification by message signature.

Only message text is inspected (the error and its chained causes); the
service offers no structured error codes we can rely on.
"""

from __future__ import annotations

from dataclasses import dataclass

from veo_orchestrator.models.job import ErrorKind
from veo_orchestrator.services.errors import GenerationServiceError, GenerationStageError

ENTITLEMENT_SIGNATURES: tuple[str, ...] = (
    "requested entity was not found",
    "not authorized",
    "permission_denied",
    "api key not valid",
    "api_key_invalid",
    "unauthenticated",
)

TRANSIENT_SIGNATURES: tuple[str, ...] = (
    "timed out",
    "timeout",
    "connection",
    "network",
    "unavailable",
    "deadline_exceeded",
)

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.ENTITLEMENT: "API Key 可能无效或项目未开通权限，请重新选择",
    ErrorKind.TRANSIENT: "网络连接出现问题，请检查您的网络或稍后重试。",
    ErrorKind.FATAL: "视频生成失败，请稍后再试。",
}


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    user_message: str


def classify(err: BaseException) -> ClassifiedError:
    text = error_text(err).lower()

    if any(sig in text for sig in ENTITLEMENT_SIGNATURES):
        kind = ErrorKind.ENTITLEMENT
    elif any(sig in text for sig in TRANSIENT_SIGNATURES):
        kind = ErrorKind.TRANSIENT
    else:
        kind = ErrorKind.FATAL

    return ClassifiedError(kind=kind, user_message=USER_MESSAGES[kind])


def error_text(err: BaseException) -> str:
    """Join the messages of an error and everything it wraps."""
    parts: list[str] = []
    seen: set[int] = set()
    pending: list[BaseException | None] = [err]

    while pending:
        current = pending.pop(0)
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        parts.append(str(current))
        if isinstance(current, GenerationServiceError) and current.status:
            parts.append(current.status)
        if isinstance(current, GenerationStageError):
            pending.append(current.cause)
        pending.append(current.__cause__)

    return " | ".join(p for p in parts if p)
