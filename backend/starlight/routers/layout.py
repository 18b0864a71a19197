"""Layout API routes."""

from fastapi import APIRouter, Depends

from ..deps import get_editor
from ..editor import TopologyEditor

router = APIRouter()


@router.post("/layout/auto-arrange")
async def run_auto_arrange(editor: TopologyEditor = Depends(get_editor)):
    """
    Auto-arrange the topology.

    Positions are committed locally before persistence starts; ``failed``
    lists entities whose position update the backend did not accept.
    """
    result = await editor.auto_arrange()
    plan = result.plan
    return {
        "success": result.persisted,
        "failed": result.failed,
        "groupLevels": plan.group_levels,
        "nodeLevels": plan.node_levels,
        "ungroupedLaneX": plan.ungrouped_lane_x,
    }
