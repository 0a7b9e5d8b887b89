"""Entitlement gate for the premium video generation capability.

Tracks whether a usable API key has been selected and, when it has not,
suspends the job on the host's interactive key selector. The selector gives
no success signal, so the gate assumes the selection worked once it returns.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from veo_orchestrator.services.cancellation import CancelToken
from veo_orchestrator.services.job_slot import JobSlot

logger = logging.getLogger(__name__)


@runtime_checkable
class CredentialSelector(Protocol):
    """Host-provided interactive key selection capability."""

    async def has_selected(self) -> bool:
        ...

    async def open_selector(self) -> None:
        """Suspend until the user completes or dismisses the selection UI."""
        ...


@dataclass
class EntitlementState:
    has_credential: bool = False
    last_checked_at: datetime | None = None


class EntitlementGate:
    """Owns the entitlement state shared by every job of one orchestrator.

    Usage:
        gate = EntitlementGate(selector)
        await gate.ensure_entitled(cancel, slot)   # never fails
        await gate.reselect(cancel, slot)          # corrective action after a rejected key

    While the selector is open the job's slot shows `credential_required`.
    """

    def __init__(self, selector: CredentialSelector | None = None) -> None:
        self._selector = selector
        self._state: EntitlementState | None = None
        self._lock = asyncio.Lock()
        self.selector_opens = 0

    @property
    def state(self) -> EntitlementState:
        """Lazily initialised on the first generation attempt."""
        if self._state is None:
            self._state = EntitlementState()
        return self._state

    @property
    def has_selector(self) -> bool:
        return self._selector is not None

    async def ensure_entitled(
        self,
        cancel: CancelToken | None = None,
        slot: JobSlot | None = None,
    ) -> None:
        state = self.state
        if state.has_credential:
            return

        if self._selector is None:
            logger.debug("No credential selector available, assuming entitled")
            return

        async with self._lock:
            # Another job may have completed the selection while we waited.
            if state.has_credential:
                return
            state.last_checked_at = datetime.now(timezone.utc)

            if await self._selector.has_selected():
                state.has_credential = True
                return

            logger.info("Requesting API key selection for Veo...")
            await self._open(cancel, slot)
            state.has_credential = True
            if slot is not None:
                slot.set_loading()

    async def reselect(
        self,
        cancel: CancelToken | None = None,
        slot: JobSlot | None = None,
    ) -> bool:
        """Drop the credential and prompt for a new one. Returns False without a selector."""
        if self._selector is None:
            return False

        async with self._lock:
            state = self.state
            state.has_credential = False
            state.last_checked_at = datetime.now(timezone.utc)
            logger.warning("API key rejected by the generation service, re-opening key selection")
            await self._open(cancel, slot)
            state.has_credential = True
        return True

    async def _open(self, cancel: CancelToken | None, slot: JobSlot | None) -> None:
        assert self._selector is not None
        self.selector_opens += 1
        if slot is not None:
            slot.set_credential_required()
        if cancel is not None:
            await cancel.run(self._selector.open_selector())
        else:
            await self._selector.open_selector()


# ---------------------------------------------------------------------------
# Server-side selector: the key is posted through the credentials API
# ---------------------------------------------------------------------------

class CredentialStore:
    """Holds the API key used for generation calls and result access."""

    def __init__(self, api_key: str = "") -> None:
        self._api_key = api_key or None

    @property
    def has_key(self) -> bool:
        return self._api_key is not None

    def get_key(self) -> str:
        return self._api_key or ""

    def set_key(self, api_key: str) -> None:
        if not api_key.strip():
            raise ValueError("API key must not be empty")
        self._api_key = api_key.strip()


class InteractiveKeySelector:
    """CredentialSelector that waits for a key to be posted or the prompt dismissed.

    A key posted while nobody is waiting is kept in the store, so the next
    job sees it through `has_selected()` and never prompts.
    """

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._prompt = asyncio.Event()
        self._waiters = 0

    @property
    def prompt_pending(self) -> bool:
        return self._waiters > 0

    async def has_selected(self) -> bool:
        return self._store.has_key

    async def open_selector(self) -> None:
        if self._waiters == 0:
            self._prompt.clear()
        self._waiters += 1
        try:
            await self._prompt.wait()
        finally:
            self._waiters -= 1

    def select(self, api_key: str) -> None:
        self._store.set_key(api_key)
        self._resolve()

    def dismiss(self) -> None:
        self._resolve()

    def _resolve(self) -> None:
        self._prompt.set()
