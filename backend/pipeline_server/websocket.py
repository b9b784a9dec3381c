"""WebSocket record stream: every change delivers a full snapshot."""

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from pipeline_server.data import get_records

logger = logging.getLogger(__name__)

# Connected clients
_clients: set[WebSocket] = set()
# Loop the clients live on; sync route handlers run in worker threads
_loop: asyncio.AbstractEventLoop | None = None


def _snapshot_message() -> str:
    records = [r.model_dump(mode="json") for r in get_records()]
    return json.dumps({"event": "records_updated", "data": {"applications": records}})


async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint handler. Sends the current snapshot on connect."""
    global _loop
    await websocket.accept()
    _loop = asyncio.get_running_loop()
    _clients.add(websocket)
    try:
        await websocket.send_text(_snapshot_message())
        while True:
            # Keep connection alive, ignore incoming messages
            await websocket.receive_text()
    except WebSocketDisconnect:
        _clients.discard(websocket)


def _broadcast_text(message: str):
    async def _send():
        disconnected = []
        for client in list(_clients):
            try:
                await client.send_text(message)
            except Exception as e:
                logger.debug("Dropping websocket client: %s", e)
                disconnected.append(client)
        for client in disconnected:
            _clients.discard(client)

    # Try to get running loop, create one if needed
    try:
        loop = asyncio.get_running_loop()
        loop.create_task(_send())
    except RuntimeError:
        if _loop is not None and _loop.is_running():
            asyncio.run_coroutine_threadsafe(_send(), _loop)
        else:
            # No running loop - run synchronously
            asyncio.run(_send())


def broadcast(event: str, data: dict[str, Any] | None = None):
    """
    Broadcast event to all connected clients.

    Can be called from sync code - handles async internally.
    """
    if not _clients:
        return
    _broadcast_text(json.dumps({"event": event, "data": data or {}}))


def broadcast_records_updated():
    """Push the full record snapshot (no partial diffs)."""
    if not _clients:
        return
    _broadcast_text(_snapshot_message())


def broadcast_settings_updated(user_id: str):
    """Notify clients that a user's pipeline settings changed."""
    broadcast("settings_updated", {"user_id": user_id})
