"""Demo script to run one video generation job end to end.

Run with:
    USE_MOCK_API=true PYTHONPATH=backend python3 scripts/demo_job.py "how the stomach digests food"

With USE_MOCK_API unset the real Veo API is called using GEMINI_API_KEY
(required here: the script has no key prompt);
press Ctrl+C to abandon the job (the remote operation keeps running).
"""

import asyncio
import logging
import sys

from veo_orchestrator.models.job import GenerationRequest
from veo_orchestrator.services.errors import JobCancelledError
from veo_orchestrator.services.job_slot import JobSlot
from veo_orchestrator.services.video_jobs import get_runtime


async def demo(prompt: str) -> int:
    runtime = get_runtime()
    slot = JobSlot("demo")
    slot.subscribe(lambda view: print("slot ->", view))

    try:
        handle = await runtime.orchestrator.generate(GenerationRequest(prompt), slot=slot)
    except JobCancelledError:
        print("job abandoned")
        return 1

    print("final state:", handle.state.value)
    print("metrics:", runtime.orchestrator.get_metrics())
    return 0 if handle.result_ref else 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    text = " ".join(sys.argv[1:]) or "Cross-section of a healthy stomach wall, layer by layer"
    sys.exit(asyncio.run(demo(text)))
