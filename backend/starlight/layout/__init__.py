"""Auto-arrange layout engine."""

from starlight.layout.engine import (
    GroupGeometry,
    LayoutPlan,
    LayoutResult,
    auto_arrange,
    persist_layout,
    plan_layout,
)
from starlight.layout.levels import compute_levels, group_by_level

__all__ = [
    "GroupGeometry",
    "LayoutPlan",
    "LayoutResult",
    "auto_arrange",
    "persist_layout",
    "plan_layout",
    "compute_levels",
    "group_by_level",
]
