"""WebSocket endpoint for real-time generation progress.

Subscribes to the workflow's snapshot stream and relays every transition
to the connected client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from veo_motion.schemas.generation import GenerationStateRead
from veo_motion.services.workflow import WorkflowSnapshot

router = APIRouter()
logger = logging.getLogger(__name__)


def _message(snapshot: WorkflowSnapshot) -> dict[str, Any]:
    return {
        "type": "generation_update",
        "state": GenerationStateRead.model_validate(snapshot).model_dump(mode="json"),
    }


@router.websocket("/ws/generation")
async def ws_generation(ws: WebSocket):
    """WebSocket endpoint for workflow updates.

    1. Accepts the connection and sends the current state
    2. Relays each workflow snapshot as it is published
    3. Answers client pings
    """
    await ws.accept()
    workflow = ws.app.state.workflow

    queue: asyncio.Queue[WorkflowSnapshot] = asyncio.Queue()
    unsubscribe = workflow.subscribe(queue.put_nowait)
    logger.info("WS connected: generation")

    relay_task = None
    try:
        await ws.send_json(_message(workflow.snapshot()))
        relay_task = asyncio.create_task(_relay_snapshots(queue, ws))

        while True:
            data = await ws.receive_text()
            if data == "ping":
                await ws.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("WS disconnected: generation")
    finally:
        unsubscribe()
        if relay_task:
            relay_task.cancel()


async def _relay_snapshots(queue: asyncio.Queue[WorkflowSnapshot], ws: WebSocket):
    """Background task: forward queued snapshots to the WebSocket client."""
    try:
        while True:
            snapshot = await queue.get()
            await ws.send_json(_message(snapshot))
    except asyncio.CancelledError:
        pass
    except Exception as exc:
        logger.warning("WS relay error: %s", exc)
