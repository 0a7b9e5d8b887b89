"""WebSocket endpoint for real-time job slot updates.

Subscribes to the in-process JobSlot of a job and relays every change
(loading → credential_required → result / error) to the connected client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from veo_orchestrator.services.job_manager import JobManager
from veo_orchestrator.services.video_jobs import get_job_manager

router = APIRouter()
logger = logging.getLogger(__name__)

_TERMINAL_VIEWS = {"succeeded", "failed"}


@router.websocket("/ws/videos/{job_id}")
async def ws_video_job(ws: WebSocket, job_id: str, jobs: JobManager = Depends(get_job_manager)):
    """WebSocket endpoint for one job's slot.

    1. Accepts the connection and sends the current view
    2. Subscribes to slot changes and relays them
    3. Answers client pings until the job ends or the client leaves
    """
    await ws.accept()

    job = jobs.get(job_id)
    if job is None:
        await ws.send_json({"type": "error", "detail": "Job not found"})
        await ws.close(code=4404)
        return

    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
    unsubscribe = job.slot.subscribe(queue.put_nowait)
    queue.put_nowait(job.slot.view)

    logger.info("WS connected: job=%s", job_id)
    relay_task = asyncio.create_task(_relay_slot_to_ws(queue, ws, job_id))
    try:
        while not relay_task.done():
            receive = asyncio.create_task(ws.receive_text())
            done, _ = await asyncio.wait({receive, relay_task}, return_when=asyncio.FIRST_COMPLETED)
            if receive in done:
                if receive.result() == "ping":
                    await ws.send_json({"type": "pong"})
            else:
                receive.cancel()
    except WebSocketDisconnect:
        logger.info("WS disconnected: job=%s", job_id)
    except Exception as exc:
        logger.warning("WS error for job=%s: %s", job_id, exc)
    finally:
        unsubscribe()
        relay_task.cancel()


async def _relay_slot_to_ws(queue: asyncio.Queue, ws: WebSocket, job_id: str) -> None:
    """Forward slot views until a terminal one has been sent, then close."""
    try:
        while True:
            view = await queue.get()
            await ws.send_json({"type": "job_update", **view})
            if view.get("status") in _TERMINAL_VIEWS:
                await ws.close()
                return
    except asyncio.CancelledError:
        pass
    except Exception as exc:
        logger.warning("Slot relay error for job=%s: %s", job_id, exc)
