"""
Hierarchical level assignment.

Levels are longest-path distances from the roots of a directed graph, where
a root is any member with no incoming edge from another member. Cycles are
tolerated by ignoring back edges found during a depth-first walk from the
roots, and members no root can reach sit at level 0.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")


def compute_levels(
    member_ids: Iterable[str],
    edges: Iterable[tuple[str, str]],
) -> dict[str, int]:
    """
    Assign a level to every member.

    Args:
        member_ids: Entity ids in a stable order. The order decides which
            edge of a cycle is dropped, so identical input gives identical
            levels.
        edges: (source, target) pairs. Edges leaving the member set and
            self-loops are ignored.

    Returns:
        Mapping of every member id to its level.
    """
    members = list(dict.fromkeys(member_ids))
    member_set = set(members)

    children: dict[str, list[str]] = {m: [] for m in members}
    has_incoming: set[str] = set()
    for source, target in edges:
        if source == target or source not in member_set or target not in member_set:
            continue
        if target not in children[source]:
            children[source].append(target)
        has_incoming.add(target)

    roots = [m for m in members if m not in has_incoming]
    forward = _forward_edges(roots, children)

    # Longest path over the acyclic forward edges (Kahn order)
    indegree: dict[str, int] = {m: 0 for m in forward}
    for targets in forward.values():
        for target in targets:
            indegree[target] += 1

    levels: dict[str, int] = {r: 0 for r in roots}
    queue = deque(roots)
    while queue:
        current = queue.popleft()
        for child in forward[current]:
            levels[child] = max(levels.get(child, 0), levels[current] + 1)
            indegree[child] -= 1
            if indegree[child] == 0:
                queue.append(child)

    for m in members:
        levels.setdefault(m, 0)
    return levels


def _forward_edges(roots: Sequence[str], children: dict[str, list[str]]) -> dict[str, list[str]]:
    """Edges reachable from the roots, minus the back edges that close cycles."""
    WHITE, GREY, BLACK = 0, 1, 2
    colour: dict[str, int] = {}
    forward: dict[str, list[str]] = {}

    for root in roots:
        if colour.get(root, WHITE) != WHITE:
            continue
        colour[root] = GREY
        forward[root] = []
        stack = [(root, iter(children[root]))]

        while stack:
            current, remaining = stack[-1]
            child = next(remaining, None)
            if child is None:
                colour[current] = BLACK
                stack.pop()
                continue
            state = colour.get(child, WHITE)
            if state == GREY:
                continue  # back edge
            forward[current].append(child)
            if state == WHITE:
                colour[child] = GREY
                forward[child] = []
                stack.append((child, iter(children[child])))

    return forward


def group_by_level(items: Sequence[T], levels: dict[str, int], key=lambda item: item.id) -> list[list[T]]:
    """Bucket items into rows 0..max level, keeping input order within a row."""
    max_level = max(levels.values(), default=0)
    rows: list[list[T]] = [[] for _ in range(max_level + 1)]
    for item in items:
        rows[levels.get(key(item), 0)].append(item)
    return rows
