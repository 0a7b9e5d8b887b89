"""Pytest configuration helpers.

Puts `backend/` on `sys.path` so tests can import `veo_orchestrator`
without an editable install, and provides scripted fakes for the external
collaborators (generation service and key selector).
"""
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
BACKEND = os.path.join(ROOT, "backend")
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

import asyncio  # noqa: E402

import pytest  # noqa: E402

from veo_orchestrator.models.job import OperationHandle  # noqa: E402


class ScriptedVideoClient:
    """Generation service fake: each operation stays pending for `pending_polls` queries."""

    def __init__(
        self,
        pending_polls=0,
        *,
        result=True,
        error=None,
        submit_error=None,
        status_error=None,
        key="test-key",
    ):
        self.pending_polls = pending_polls
        self.result = result
        self.error = error
        self.submit_error = submit_error
        self.status_error = status_error
        self.key = key
        self.prompts = []
        self.queries = []
        self._counts = {}

    def access_key(self):
        return self.key

    async def submit(self, prompt, config):
        if self.submit_error is not None:
            raise self.submit_error
        name = f"models/veo-test/operations/op-{len(self.prompts)}"
        self.prompts.append(prompt)
        self._counts[name] = 0
        return OperationHandle(name=name, done=False)

    async def get_status(self, operation):
        self.queries.append(operation.name)
        if self.status_error is not None:
            raise self.status_error
        self._counts[operation.name] += 1
        if self._counts[operation.name] <= self.pending_polls:
            return OperationHandle(name=operation.name, done=False)
        file_id = operation.name.rsplit("/", 1)[-1]
        return OperationHandle(
            name=operation.name,
            done=True,
            result_uri=(
                f"https://files.example/v1beta/files/{file_id}:download?alt=media"
                if self.result else None
            ),
            error=self.error,
        )


class FakeSelector:
    """Key selector fake; `open_selector` returns once `release` is set (immediately by default)."""

    def __init__(self, selected=False, block=False):
        self.selected = selected
        self.opens = 0
        self.release = asyncio.Event()
        if not block:
            self.release.set()

    async def has_selected(self):
        return self.selected

    async def open_selector(self):
        self.opens += 1
        await self.release.wait()


@pytest.fixture
def scripted_client():
    return ScriptedVideoClient()
