"""WebSocket feed of portfolio-changed events.

Events carry no content, only who changed what and the new version, so the
feed is open; clients re-fetch through the normal authenticated routes.
"""
from typing import Optional
import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from dependencies import get_broadcaster
from services.realtime import ContentBroadcaster

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/realtime", tags=["realtime"])


@router.websocket("/portfolio")
async def portfolio_changes(
    websocket: WebSocket,
    owner_id: Optional[str] = None,
    broadcaster: ContentBroadcaster = Depends(get_broadcaster),
):
    """Stream events, optionally only those for ``owner_id``."""
    await websocket.accept()
    queue = broadcaster.subscribe()
    await websocket.send_json({"event": "connected", "ownerId": owner_id})

    async def pump():
        while True:
            event = await queue.get()
            if owner_id and event.get("ownerId") != owner_id:
                continue
            await websocket.send_json(event)

    sender = asyncio.create_task(pump())
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await sender
        broadcaster.unsubscribe(queue)
        logger.debug("Realtime subscriber disconnected (%d remaining)", broadcaster.subscriber_count)
