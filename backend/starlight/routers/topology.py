"""Topology API routes."""

from fastapi import APIRouter, Depends

from ..deps import get_store
from ..models import NetworkTopology, StatusSummary
from ..store import EntityStore

router = APIRouter()


@router.get("/topology", response_model=NetworkTopology)
async def get_topology(store: EntityStore = Depends(get_store)):
    """Get the full topology: nodes, connections, groups and group connections."""
    return store.snapshot()


@router.get("/topology/summary", response_model=StatusSummary)
async def get_topology_summary(store: EntityStore = Depends(get_store)):
    """Probe status counts."""
    return store.status_summary()
