"""Push-based presentation slot for one job.

Holds one of {loading}, {credential_required}, {result_uri} or {error_message}
and notifies listeners (e.g. the WebSocket relay) whenever it changes.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

SlotListener = Callable[[dict[str, Any]], None]


class JobSlot:
    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self._view: dict[str, Any] = {"job_id": job_id, "status": "idle"}
        self._listeners: list[SlotListener] = []

    @property
    def view(self) -> dict[str, Any]:
        return dict(self._view)

    def subscribe(self, listener: SlotListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_loading(self) -> None:
        self._push({"status": "loading"})

    def set_credential_required(self) -> None:
        """The job is suspended until a key is posted or the prompt is dismissed."""
        self._push({"status": "credential_required"})

    def set_result(self, result_uri: str) -> None:
        self._push({"status": "succeeded", "result_uri": result_uri})

    def set_error(self, error_message: str, error_kind: str) -> None:
        self._push({"status": "failed", "error_message": error_message, "error_kind": error_kind})

    def _push(self, update: dict[str, Any]) -> None:
        self._view = {"job_id": self.job_id, **update}
        for listener in list(self._listeners):
            try:
                listener(self.view)
            except Exception:
                # Best-effort: a broken listener must not break the job
                logger.warning("Slot listener failed for job %s", self.job_id, exc_info=True)
