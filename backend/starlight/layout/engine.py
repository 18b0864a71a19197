"""
Layout Engine

Auto-arranges the topology into a hierarchy: upstream groups above
downstream groups, nodes inside each group stacked by their own levels, and
ungrouped nodes in a lane to the right of every group.

``plan_layout`` is pure and touches nothing. ``auto_arrange`` commits a plan
to the Entity Store in one step, then persists it with parallel calls.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from starlight.config import LayoutConfig
from starlight.layout.levels import compute_levels, group_by_level
from starlight.models import ApiResponse, NetworkTopology, Node

if TYPE_CHECKING:
    from starlight.client import TopologyPersistence
    from starlight.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class GroupGeometry:
    x: float
    y: float
    width: float
    height: float

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


@dataclass
class LayoutPlan:
    """Computed positions. Nothing is applied until the plan is committed."""

    node_positions: dict[str, tuple[float, float]] = field(default_factory=dict)
    group_geometry: dict[str, GroupGeometry] = field(default_factory=dict)
    group_levels: dict[str, int] = field(default_factory=dict)
    # Level of each node within its own group, or within the ungrouped lane
    node_levels: dict[str, int] = field(default_factory=dict)
    ungrouped_lane_x: float | None = None


@dataclass
class LayoutResult:
    plan: LayoutPlan
    failed: list[str] = field(default_factory=list)

    @property
    def persisted(self) -> bool:
        return not self.failed


def plan_layout(topology: NetworkTopology, config: LayoutConfig | None = None) -> LayoutPlan:
    """Compute a hierarchical layout for a topology snapshot."""
    cfg = config or LayoutConfig()
    plan = LayoutPlan()

    group_ids = {g.id for g in topology.groups}
    node_edges = [(c.source_node_id, c.target_node_id) for c in topology.connections]

    # Step 1: level the group graph
    plan.group_levels = compute_levels(
        (g.id for g in topology.groups),
        ((gc.source_group_id, gc.target_group_id) for gc in topology.group_connections),
    )
    groups_by_level = group_by_level(topology.groups, plan.group_levels)

    members: dict[str, list[Node]] = {g.id: [] for g in topology.groups}
    ungrouped: list[Node] = []
    for node in topology.nodes:
        if node.group_id in group_ids:
            members[node.group_id].append(node)
        else:
            # Includes nodes pointing at a group that no longer exists
            ungrouped.append(node)

    # Step 2: size and place groups row by row, nodes inside them
    current_y = cfg.start_y
    for level_groups in groups_by_level:
        if not level_groups:
            continue

        current_x = cfg.start_x
        row_height = 0.0
        for group in level_groups:
            group_nodes = members[group.id]
            node_levels = compute_levels((n.id for n in group_nodes), node_edges)
            plan.node_levels.update(node_levels)
            rows = [row for row in group_by_level(group_nodes, node_levels) if row]

            widest_row = max((len(row) for row in rows), default=1)
            width = max(
                cfg.min_group_width,
                widest_row * cfg.node_horizontal_spacing + cfg.group_padding * 2,
            )
            height = max(
                cfg.min_group_height,
                max(len(rows), 1) * cfg.node_vertical_spacing
                + cfg.group_header_height
                + cfg.group_padding * 2,
            )

            node_y = current_y + cfg.group_header_height + cfg.group_padding
            for row in rows:
                row_width = len(row) * cfg.node_horizontal_spacing
                node_x = current_x + (width - row_width) / 2 + cfg.node_horizontal_spacing / 2
                for node in row:
                    plan.node_positions[node.id] = (node_x, node_y)
                    node_x += cfg.node_horizontal_spacing
                node_y += cfg.node_vertical_spacing

            plan.group_geometry[group.id] = GroupGeometry(current_x, current_y, width, height)
            current_x += width + cfg.group_horizontal_spacing
            row_height = max(row_height, height)

        current_y += row_height + cfg.group_vertical_spacing

    # Step 3: ungrouped lane to the right of everything
    if ungrouped:
        levels = compute_levels((n.id for n in ungrouped), node_edges)
        plan.node_levels.update(levels)

        right_edge = max(
            (g.x + g.width for g in plan.group_geometry.values()),
            default=cfg.start_x,
        )
        lane_x = right_edge + cfg.group_horizontal_spacing * 2
        plan.ungrouped_lane_x = lane_x

        lane_y = cfg.start_y
        for row in group_by_level(ungrouped, levels):
            if not row:
                continue
            node_x = lane_x
            for node in row:
                plan.node_positions[node.id] = (node_x, lane_y)
                node_x += cfg.node_horizontal_spacing
            lane_y += cfg.node_vertical_spacing

    return plan


async def auto_arrange(
    store: EntityStore,
    persistence: TopologyPersistence,
    config: LayoutConfig | None = None,
) -> LayoutResult:
    """
    Arrange the current topology, commit it locally, then persist it.

    The local commit happens before the first await, so a concurrent run
    can only race on the network calls. Failed persistence calls are logged
    and reported; nothing is rolled back.
    """
    plan = plan_layout(store.snapshot(), config)
    store.apply_layout(
        plan.node_positions,
        {gid: (g.x, g.y, g.width, g.height) for gid, g in plan.group_geometry.items()},
    )
    logger.info(
        "Auto-arrange applied: %d groups, %d nodes",
        len(plan.group_geometry),
        len(plan.node_positions),
    )

    failed = await persist_layout(plan, persistence)
    return LayoutResult(plan=plan, failed=failed)


async def persist_layout(plan: LayoutPlan, persistence: TopologyPersistence) -> list[str]:
    """Issue every position update in parallel; return ids whose update failed."""
    ids: list[str] = []
    calls = []

    for node_id, (x, y) in plan.node_positions.items():
        ids.append(node_id)
        calls.append(persistence.update_node_position(node_id, x, y))

    for group_id, geometry in plan.group_geometry.items():
        ids.append(group_id)
        calls.append(
            persistence.update_group_position(
                group_id, geometry.x, geometry.y, geometry.width, geometry.height
            )
        )

    results = await asyncio.gather(*calls, return_exceptions=True)

    failed: list[str] = []
    for entity_id, result in zip(ids, results):
        if isinstance(result, BaseException):
            logger.error("Failed to persist layout for %s: %s", entity_id, result)
            failed.append(entity_id)
        elif isinstance(result, ApiResponse) and not result.success:
            logger.warning("Layout update rejected for %s: %s", entity_id, result.error)
            failed.append(entity_id)

    if failed:
        logger.warning("Layout persisted with %d failures", len(failed))
    return failed
