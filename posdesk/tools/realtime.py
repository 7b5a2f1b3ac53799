"""Websocket feed of collection snapshots."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, WebSocket
from fastapi.encoders import jsonable_encoder

from posdesk.dependencies.services import get_subscription_manager
from posdesk.services.exceptions import ServiceError
from posdesk.services.store import Snapshot, collection_path
from posdesk.services.subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/organizations/{organization_id}/{collection}")
async def collection_feed(
    websocket: WebSocket,
    organization_id: str,
    collection: str,
    manager: SubscriptionManager = Depends(get_subscription_manager),
):
    """Push the full collection on connect and again after every change."""

    try:
        path = collection_path(organization_id, collection)
    except ServiceError as exc:
        await websocket.close(code=1008, reason=str(exc))
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[Snapshot] = asyncio.Queue()

    def consume(snapshot: Snapshot) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, snapshot)

    async def pump() -> None:
        while True:
            snapshot = await queue.get()
            await websocket.send_json(
                {"collection": collection, "documents": jsonable_encoder(snapshot)}
            )

    handle = manager.attach(path, consume)
    sender = asyncio.create_task(pump())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info("Realtime client left %s", path)
                break
    finally:
        handle.close()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
