"""End-to-end lifecycle of a generation job against scripted collaborators."""

import asyncio

import httpx
import pytest

from conftest import FakeSelector, ScriptedVideoClient
from veo_orchestrator.models.job import ErrorKind, GenerationRequest, JobHandle, JobState
from veo_orchestrator.services.cancellation import CancelToken
from veo_orchestrator.services.entitlement import CredentialStore, EntitlementGate, InteractiveKeySelector
from veo_orchestrator.services.error_classifier import USER_MESSAGES
from veo_orchestrator.services.errors import GenerationServiceError, JobCancelledError
from veo_orchestrator.services.job_orchestrator import JobOrchestrator
from veo_orchestrator.services.job_slot import JobSlot
from veo_orchestrator.services.providers.gemini_video import GeminiVideoClient


def _orchestrator(client, selector=None, interval=0):
    return JobOrchestrator(EntitlementGate(selector), client, poll_interval=interval)


async def _wait_for(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class RecordingSlot(JobSlot):
    def __init__(self, job_id="job"):
        super().__init__(job_id)
        self.history = []
        self.subscribe(self.history.append)


class StateRecorder:
    """Captures every state the handle passes through."""

    def __init__(self, handle):
        self.handle = handle
        self.states = []
        original = handle.transition

        def transition(target):
            original(target)
            self.states.append(target)

        handle.transition = transition


@pytest.mark.asyncio
async def test_success_after_pending_polls():
    client = ScriptedVideoClient(pending_polls=3)
    handle = JobHandle(request=GenerationRequest("stomach anatomy"))
    recorder = StateRecorder(handle)
    slot = RecordingSlot()

    result = await _orchestrator(client).generate(handle.request, handle=handle, slot=slot)

    assert result is handle
    assert len(client.queries) == 4
    assert recorder.states[-3:] == [JobState.POLLING, JobState.RESOLVING, JobState.SUCCEEDED]
    assert handle.result_ref == (
        "https://files.example/v1beta/files/op-0:download?alt=media&key=test-key"
    )
    assert handle.failure is None
    assert [v["status"] for v in slot.history] == ["loading", "succeeded"]
    assert slot.view["result_uri"] == handle.result_ref


@pytest.mark.asyncio
async def test_done_without_result_is_fatal():
    client = ScriptedVideoClient(pending_polls=1, result=False)
    handle = JobHandle(request=GenerationRequest("p"))
    recorder = StateRecorder(handle)

    await _orchestrator(client).generate(handle.request, handle=handle)

    assert recorder.states[-2:] == [JobState.RESOLVING, JobState.FAILED]
    assert handle.failure.kind is ErrorKind.FATAL
    assert handle.result_ref is None


@pytest.mark.asyncio
async def test_not_authorized_during_polling_reopens_selector_once():
    selector = FakeSelector(selected=True)
    client = ScriptedVideoClient(
        pending_polls=2,
        status_error=GenerationServiceError("Veo HTTP 403 PERMISSION_DENIED: caller is not authorized"),
    )
    slot = RecordingSlot()
    orchestrator = _orchestrator(client, selector)

    handle = await orchestrator.generate(GenerationRequest("p"), slot=slot)

    assert handle.state is JobState.FAILED
    assert handle.failure.kind is ErrorKind.ENTITLEMENT
    assert handle.failure.message == USER_MESSAGES[ErrorKind.ENTITLEMENT]
    assert selector.opens == 1
    assert orchestrator.gate.state.has_credential is True
    assert slot.view == {
        "job_id": "job",
        "status": "failed",
        "error_message": USER_MESSAGES[ErrorKind.ENTITLEMENT],
        "error_kind": "ENTITLEMENT",
    }


@pytest.mark.asyncio
async def test_submission_failure_is_classified_without_polling():
    client = ScriptedVideoClient(submit_error=GenerationServiceError("Veo request timed out"))
    handle = await _orchestrator(client).generate(GenerationRequest("p"))

    assert handle.state is JobState.FAILED
    assert handle.failure.kind is ErrorKind.TRANSIENT
    assert handle.operation_ref is None
    assert client.queries == []


@pytest.mark.asyncio
async def test_embedded_operation_error_is_classified():
    client = ScriptedVideoClient(result=False, error={"code": 13, "message": "internal generation failure"})
    handle = await _orchestrator(client).generate(GenerationRequest("p"))

    assert handle.failure.kind is ErrorKind.FATAL
    assert "internal generation failure" not in handle.failure.message


@pytest.mark.asyncio
async def test_entitlement_gate_runs_before_submission():
    selector = FakeSelector(selected=False, block=True)
    client = ScriptedVideoClient()
    task = asyncio.create_task(_orchestrator(client, selector).generate(GenerationRequest("p")))

    await asyncio.sleep(0.01)
    assert client.prompts == []

    selector.release.set()
    handle = await task
    assert handle.state is JobState.SUCCEEDED
    assert len(client.prompts) == 1


@pytest.mark.asyncio
async def test_every_outcome_is_exactly_one_terminal_state():
    scenarios = [
        ScriptedVideoClient(pending_polls=1),
        ScriptedVideoClient(result=False),
        ScriptedVideoClient(submit_error=RuntimeError("boom")),
        ScriptedVideoClient(status_error=RuntimeError("connection reset")),
    ]
    for client in scenarios:
        handle = await _orchestrator(client).generate(GenerationRequest("p"))
        assert handle.state in (JobState.SUCCEEDED, JobState.FAILED)
        assert (handle.result_ref is None) != (handle.failure is None)


@pytest.mark.asyncio
async def test_cancel_mid_poll_surfaces_nothing():
    client = ScriptedVideoClient(pending_polls=10_000)
    slot = RecordingSlot()
    token = CancelToken("job")
    handle = JobHandle(request=GenerationRequest("p"))
    orchestrator = _orchestrator(client, interval=0.02)

    task = asyncio.create_task(
        orchestrator.generate(handle.request, cancel=token, slot=slot, handle=handle)
    )
    await asyncio.sleep(0.07)
    token.cancel()

    with pytest.raises(JobCancelledError):
        await task
    queries = len(client.queries)
    await asyncio.sleep(0.06)

    assert len(client.queries) == queries
    assert handle.state is JobState.CANCELLED
    assert handle.result_ref is None and handle.failure is None
    assert [v["status"] for v in slot.history] == ["loading"]
    assert orchestrator.get_metrics()["cancelled"] == 1


@pytest.mark.asyncio
async def test_task_cancellation_is_honoured():
    client = ScriptedVideoClient(pending_polls=10_000)
    handle = JobHandle(request=GenerationRequest("p"))
    task = asyncio.create_task(
        _orchestrator(client, interval=0.02).generate(handle.request, handle=handle)
    )
    await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert handle.state is JobState.CANCELLED


@pytest.mark.asyncio
async def test_concurrent_jobs_track_their_own_operations():
    client = ScriptedVideoClient(pending_polls=2)
    orchestrator = _orchestrator(client, interval=0.01)

    first, second = await asyncio.gather(
        orchestrator.generate(GenerationRequest("same")),
        orchestrator.generate(GenerationRequest("same")),
    )

    assert first.job_id != second.job_id
    assert first.operation_ref != second.operation_ref
    assert first.operation_ref.rsplit("/", 1)[-1] in first.result_ref
    assert second.operation_ref.rsplit("/", 1)[-1] in second.result_ref
    assert client.queries.count(first.operation_ref) == 3
    assert client.queries.count(second.operation_ref) == 3


@pytest.mark.asyncio
async def test_handles_are_never_reused():
    client = ScriptedVideoClient()
    orchestrator = _orchestrator(client)
    handle = await orchestrator.generate(GenerationRequest("p"))

    with pytest.raises(ValueError):
        await orchestrator.generate(handle.request, handle=handle)


@pytest.mark.asyncio
async def test_metrics_count_outcomes():
    orchestrator = _orchestrator(ScriptedVideoClient(pending_polls=1))
    await orchestrator.generate(GenerationRequest("p"))

    metrics = orchestrator.get_metrics()
    assert metrics["total_jobs"] == 1
    assert metrics["succeeded"] == 1
    assert metrics["failed"] == 0
    assert metrics["total_polls"] == 2
    assert metrics["selector_opens"] == 0


@pytest.mark.asyncio
async def test_key_prompt_is_published_while_waiting():
    selector = FakeSelector(selected=False, block=True)
    slot = RecordingSlot()
    task = asyncio.create_task(
        _orchestrator(ScriptedVideoClient(), selector).generate(GenerationRequest("p"), slot=slot)
    )

    await _wait_for(lambda: selector.opens == 1)
    assert slot.view["status"] == "credential_required"

    selector.release.set()
    handle = await task

    assert handle.state is JobState.SUCCEEDED
    assert [v["status"] for v in slot.history] == [
        "loading", "credential_required", "loading", "succeeded",
    ]


@pytest.mark.asyncio
async def test_dismissed_key_prompt_fails_as_entitlement_with_one_reprompt():
    store = CredentialStore()
    selector = InteractiveKeySelector(store)
    sent = []

    def handler(request):
        sent.append(request)
        return httpx.Response(200, json={"name": "models/veo-test/operations/never"})

    client = GeminiVideoClient(
        model="veo-test",
        api_key_provider=store.get_key,
        base_url="https://veo.test/v1beta",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    orchestrator = JobOrchestrator(EntitlementGate(selector), client, poll_interval=0)
    slot = RecordingSlot()
    task = asyncio.create_task(orchestrator.generate(GenerationRequest("p"), slot=slot))

    await _wait_for(lambda: selector.prompt_pending)
    selector.dismiss()
    await _wait_for(lambda: orchestrator.gate.selector_opens == 2 and selector.prompt_pending)
    selector.dismiss()
    handle = await task

    assert sent == []
    assert handle.state is JobState.FAILED
    assert handle.failure.kind is ErrorKind.ENTITLEMENT
    assert orchestrator.gate.selector_opens == 2
    assert orchestrator.get_metrics()["selector_opens"] == 2
    assert [v["status"] for v in slot.history] == [
        "loading", "credential_required", "loading", "credential_required", "failed",
    ]
    assert slot.view["error_kind"] == "ENTITLEMENT"


class CrashingSelector(FakeSelector):
    async def open_selector(self):
        self.opens += 1
        raise RuntimeError("selector window crashed")


class KeylessClient(ScriptedVideoClient):
    def access_key(self):
        raise KeyError("access key")


@pytest.mark.asyncio
async def test_unexpected_error_during_key_check_fails_job_as_fatal():
    selector = CrashingSelector(selected=False)
    client = ScriptedVideoClient()
    slot = RecordingSlot()
    orchestrator = _orchestrator(client, selector)

    handle = await orchestrator.generate(GenerationRequest("p"), slot=slot)

    assert handle.state is JobState.FAILED
    assert handle.failure.kind is ErrorKind.FATAL
    assert handle.failure.message == USER_MESSAGES[ErrorKind.FATAL]
    assert selector.opens == 1
    assert client.prompts == []
    assert slot.view["status"] == "failed"
    assert orchestrator.get_metrics()["failed_by_kind"]["FATAL"] == 1


@pytest.mark.asyncio
async def test_unexpected_error_while_resolving_fails_job_as_fatal():
    handle = JobHandle(request=GenerationRequest("p"))
    recorder = StateRecorder(handle)

    await _orchestrator(KeylessClient(pending_polls=1)).generate(handle.request, handle=handle)

    assert recorder.states[-2:] == [JobState.RESOLVING, JobState.FAILED]
    assert handle.failure.kind is ErrorKind.FATAL
    assert handle.result_ref is None
