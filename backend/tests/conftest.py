"""Shared fixtures: store builders and an in-memory persistence fake."""

from __future__ import annotations

import itertools
from typing import Any

import pytest

from starlight.models import (
    ApiResponse,
    Connection,
    Group,
    GroupConnection,
    NetworkTopology,
    Node,
    NodeType,
    Status,
)
from starlight.store import EntityStore


def make_node(node_id: str, **fields) -> Node:
    return Node(id=node_id, name=fields.pop("name", node_id.upper()), **fields)


def make_conn(conn_id: str, source: str, target: str, **fields) -> Connection:
    return Connection(id=conn_id, source_node_id=source, target_node_id=target, **fields)


def make_group(group_id: str, **fields) -> Group:
    return Group(id=group_id, name=fields.pop("name", group_id.upper()), **fields)


def make_link(link_id: str, source: str, target: str) -> GroupConnection:
    return GroupConnection(id=link_id, source_group_id=source, target_group_id=target)


class FakePersistence:
    """Records calls and answers from in-memory state.

    ``fail`` holds method names that return success=False; ``explode`` holds
    method names that raise.
    """

    def __init__(self, topology: NetworkTopology | None = None):
        self.topology = topology or NetworkTopology()
        self.calls: list[tuple[str, tuple]] = []
        self.fail: set[str] = set()
        self.explode: set[str] = set()
        self.fail_ids: set[str] = set()
        self._ids = itertools.count(1)

    def _result(self, name: str, args: tuple, data: Any = None) -> ApiResponse:
        self.calls.append((name, args))
        if name in self.explode:
            raise ConnectionError(f"{name} unreachable")
        if name in self.fail or (args and isinstance(args[0], str) and args[0] in self.fail_ids):
            return ApiResponse.fail(f"{name} rejected")
        return ApiResponse(success=True, data=data)

    def called(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    async def get_topology(self):
        return self._result("get_topology", (), self.topology)

    async def create_node(self, data):
        node = Node.model_validate({"id": f"node-{next(self._ids)}", **data})
        return self._result("create_node", (data,), node)

    async def update_node(self, node_id, data):
        return self._result("update_node", (node_id, data))

    async def update_node_position(self, node_id, x, y):
        return self._result("update_node_position", (node_id, x, y))

    async def delete_node(self, node_id):
        return self._result("delete_node", (node_id,))

    async def create_connection(self, data):
        conn = Connection.model_validate({"id": f"conn-{next(self._ids)}", **data})
        return self._result("create_connection", (data,), conn)

    async def update_connection(self, connection_id, data):
        return self._result("update_connection", (connection_id, data))

    async def delete_connection(self, connection_id):
        return self._result("delete_connection", (connection_id,))

    async def set_active_source(self, connection_id):
        return self._result("set_active_source", (connection_id,))

    async def create_group(self, data):
        group = Group.model_validate({"id": f"group-{next(self._ids)}", **data})
        return self._result("create_group", (data,), group)

    async def update_group(self, group_id, data):
        return self._result("update_group", (group_id, data))

    async def update_group_position(self, group_id, x, y, width=None, height=None):
        return self._result("update_group_position", (group_id, x, y, width, height))

    async def delete_group(self, group_id):
        return self._result("delete_group", (group_id,))

    async def assign_node(self, group_id, node_id):
        return self._result("assign_node", (group_id, node_id))

    async def unassign_node(self, group_id, node_id):
        return self._result("unassign_node", (group_id, node_id))

    async def create_group_connection(self, data):
        link = GroupConnection.model_validate({"id": f"link-{next(self._ids)}", **data})
        return self._result("create_group_connection", (data,), link)

    async def delete_group_connection(self, link_id):
        return self._result("delete_group_connection", (link_id,))


@pytest.fixture
def store() -> EntityStore:
    return EntityStore()


@pytest.fixture
def uplink_store() -> EntityStore:
    """Two internet uplinks and a LAN link into one router; isp1 is active."""
    s = EntityStore()
    s.load(
        NetworkTopology(
            nodes=[
                make_node("isp1", type=NodeType.INTERNET, status=Status.ONLINE),
                make_node("isp2", type=NodeType.INTERNET, status=Status.ONLINE),
                make_node("lan", type=NodeType.SWITCH, status=Status.ONLINE),
                make_node("router", type=NodeType.ROUTER, status=Status.ONLINE),
                make_node("other", type=NodeType.ROUTER, status=Status.ONLINE),
            ],
            connections=[
                make_conn("c1", "isp1", "router", is_active_source=True),
                make_conn("c2", "isp2", "router"),
                make_conn("c3", "lan", "router", is_active_source=True),
                make_conn("c4", "isp2", "other", is_active_source=True),
            ],
        )
    )
    return s


@pytest.fixture
def persistence() -> FakePersistence:
    return FakePersistence()


class FakeScheduler:
    """Stands in for AsyncIOScheduler; jobs are recorded, never run."""

    def __init__(self):
        self.jobs = []
        self.started = False
        self.stopped = False

    def add_job(self, func, trigger, **kwargs):
        self.jobs.append((func, trigger, kwargs))

    def start(self):
        self.started = True

    def shutdown(self, wait=True):
        self.stopped = True
