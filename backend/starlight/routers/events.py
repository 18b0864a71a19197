"""Event ingestion route."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from ..deps import get_sync_handler
from ..sync import SyncHandler
from ..websocket import ws_manager

router = APIRouter()


@router.post("/events")
async def ingest_event(
    envelope: Any = Body(...),
    sync: SyncHandler = Depends(get_sync_handler),
):
    """
    Apply one topology event envelope.

    Unknown or malformed events are accepted and reported as not applied,
    the same as on the live stream. Applied events are rebroadcast to
    WebSocket clients.
    """
    if not isinstance(envelope, dict):
        raise HTTPException(status_code=422, detail="Event envelope must be a JSON object")

    event = sync.parse(envelope)
    applied = event is not None and sync.apply(event)
    if applied:
        await ws_manager.broadcast(event.to_wire())

    return {"applied": applied, "type": envelope.get("type")}
