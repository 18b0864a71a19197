"""FastAPI dependencies resolving the engine objects held on app.state."""

from fastapi import HTTPException, Request

from .editor import TopologyEditor
from .store import EntityStore
from .sync import SyncHandler


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_sync_handler(request: Request) -> SyncHandler:
    return request.app.state.sync


def get_editor(request: Request) -> TopologyEditor:
    editor = getattr(request.app.state, "editor", None)
    if editor is None:
        raise HTTPException(status_code=503, detail="Topology backend not connected")
    return editor
