"""Derived status routes. Views are computed on every request."""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic.alias_generators import to_camel

from .. import status
from ..deps import get_store
from ..store import EntityStore

router = APIRouter()


def _camel(view) -> dict[str, Any]:
    return {to_camel(key): value for key, value in asdict(view).items()}


@router.get("/status/connections")
async def get_connection_status(store: EntityStore = Depends(get_store)):
    """Display state and colour of every connection with both endpoints present."""
    return [_camel(v) for v in status.connection_views(store)]


@router.get("/status/groups")
async def get_group_status(store: EntityStore = Depends(get_store)):
    return [_camel(v) for v in status.group_views(store)]


@router.get("/status/groups/{group_id}")
async def get_single_group_status(group_id: str, store: EntityStore = Depends(get_store)):
    view = status.group_view(store, group_id)
    if view is None:
        raise HTTPException(status_code=404, detail=f"Group '{group_id}' not found")
    return _camel(view)


@router.get("/status/group-connections")
async def get_group_connection_status(store: EntityStore = Depends(get_store)):
    return [_camel(v) for v in status.group_connection_views(store)]
