import json

import pytest
from conftest import make_conn, make_group, make_link, make_node

from starlight import arbiter
from starlight.models import NetworkTopology, NodeType, Status
from starlight.models.events import EventType
from starlight.store import EntityStore
from starlight.sync import SyncHandler


def envelope(event_type: str, payload, timestamp="2024-05-01T12:00:00Z") -> dict:
    return {"type": event_type, "payload": payload, "timestamp": timestamp}


@pytest.fixture
def handler(store) -> SyncHandler:
    return SyncHandler(store)


def node_payload(node_id: str, **fields) -> dict:
    return {"id": node_id, "name": node_id.upper(), **fields}


class TestIdempotency:
    def test_replayed_creation_is_noop(self, handler, store):
        event = envelope("NODE_CREATED", node_payload("n1", positionX=10))

        assert handler.apply(event) is True
        state = dict(store.nodes)
        assert handler.apply(event) is False

        assert store.nodes == state
        assert handler.stats.applied == 1
        assert handler.stats.no_op == 1

    @pytest.mark.parametrize(
        "event_type,payload,collection",
        [
            ("CONNECTION_CREATED", {"id": "c1", "sourceNodeId": "a", "targetNodeId": "b"}, "connections"),
            ("GROUP_CREATED", {"id": "g1", "name": "Office"}, "groups"),
            (
                "GROUP_CONNECTION_CREATED",
                {"id": "l1", "sourceGroupId": "g1", "targetGroupId": "g2"},
                "group_connections",
            ),
        ],
    )
    def test_replayed_creation_of_other_entities(self, handler, store, event_type, payload, collection):
        event = envelope(event_type, payload)
        assert handler.apply(event) is True
        before = dict(getattr(store, collection))
        assert handler.apply(event) is False
        assert getattr(store, collection) == before

    def test_update_after_delete_does_not_resurrect(self, handler, store):
        handler.apply(envelope("NODE_CREATED", node_payload("n1")))
        handler.apply(envelope("NODE_DELETED", {"id": "n1"}))

        assert handler.apply(envelope("NODE_UPDATED", {"id": "n1", "name": "Back"})) is False
        assert handler.apply(envelope("NODE_STATUS_UPDATE", {"nodeId": "n1", "status": "ONLINE"})) is False
        assert "n1" not in store.nodes

    def test_deleting_absent_entities_is_noop(self, handler, store):
        for event_type in ["NODE_DELETED", "CONNECTION_DELETED", "GROUP_DELETED", "GROUP_CONNECTION_DELETED"]:
            assert handler.apply(envelope(event_type, {"id": "ghost"})) is False
        assert store.revision == 0

    def test_optimistic_local_add_absorbs_broadcast(self, handler, store):
        store.add_node(make_node("n1", name="Local"))
        assert handler.apply(envelope("NODE_CREATED", node_payload("n1"))) is False
        assert store.nodes["n1"].name == "Local"


class TestEventRules:
    def test_batch_status_update(self, handler, store):
        store.add_node(make_node("n1", status=Status.ONLINE, internet_status=Status.ONLINE))
        store.add_node(make_node("n2", status=Status.ONLINE, internet_status=Status.OFFLINE))
        revision = store.revision

        raw = json.dumps(
            envelope(
                "BATCH_STATUS_UPDATE",
                {
                    "updates": [
                        {"nodeId": "n1", "status": "OFFLINE"},
                        {"nodeId": "n2", "internetStatus": "ONLINE"},
                    ]
                },
            )
        )
        assert handler.apply(raw) is True

        assert store.revision == revision + 1
        assert (store.nodes["n1"].status, store.nodes["n1"].internet_status) == (Status.OFFLINE, Status.ONLINE)
        assert (store.nodes["n2"].status, store.nodes["n2"].internet_status) == (Status.ONLINE, Status.ONLINE)

    def test_node_update_is_partial(self, handler, store):
        store.add_node(make_node("n1", position_x=10, color="#ffffff"))

        assert handler.apply(envelope("NODE_UPDATED", {"id": "n1", "name": "Edge", "positionY": 40})) is True

        node = store.nodes["n1"]
        assert (node.name, node.position_x, node.position_y, node.color) == ("Edge", 10, 40, "#ffffff")

    def test_node_deleted_cascades(self, handler, store):
        store.add_node(make_node("a"))
        store.add_node(make_node("b"))
        store.add_connection(make_conn("ab", "a", "b"))

        assert handler.apply(envelope("NODE_DELETED", {"id": "a"})) is True
        assert store.connections == {}

    def test_group_updated_and_deleted(self, handler, store):
        store.add_group(make_group("g1"))
        store.add_group(make_group("g2"))
        store.add_node(make_node("n1", group_id="g1"))
        store.add_group_connection(make_link("l1", "g1", "g2"))

        assert handler.apply(envelope("GROUP_UPDATED", {"id": "g1", "width": 500})) is True
        assert store.groups["g1"].width == 500

        assert handler.apply(envelope("GROUP_DELETED", {"id": "g1"})) is True
        assert store.nodes["n1"].group_id is None
        assert store.group_connections == {}

    def test_active_source_change_uses_arbiter(self, uplink_store):
        handler = SyncHandler(uplink_store)
        event = envelope(
            "CONNECTION_ACTIVE_SOURCE_CHANGED",
            {"connectionId": "c2", "targetNodeId": "router", "isActiveSource": True},
        )

        assert handler.apply(event) is True
        assert uplink_store.connections["c2"].is_active_source is True
        assert uplink_store.connections["c1"].is_active_source is False
        assert handler.apply(event) is False

    def test_active_source_change_with_wrong_target(self, uplink_store):
        handler = SyncHandler(uplink_store)
        event = envelope(
            "CONNECTION_ACTIVE_SOURCE_CHANGED",
            {"connectionId": "c2", "targetNodeId": "other", "isActiveSource": True},
        )

        assert handler.apply(event) is True
        assert uplink_store.connections["c1"].is_active_source is False
        assert uplink_store.connections["c4"].is_active_source is True
        assert arbiter.violations(uplink_store.connections, uplink_store.nodes) == {}

    def test_out_of_order_uplink_creation(self, handler, store):
        handler.apply(envelope("NODE_CREATED", node_payload("isp1", type="INTERNET")))
        handler.apply(envelope("NODE_CREATED", node_payload("t")))
        for conn_id, source in [("a", "isp1"), ("b", "isp2")]:
            payload = {"id": conn_id, "sourceNodeId": source, "targetNodeId": "t", "isActiveSource": True}
            handler.apply(envelope("CONNECTION_CREATED", payload))
        handler.apply(envelope("NODE_CREATED", node_payload("isp2", type="INTERNET")))

        assert store.connections["a"].is_active_source is True
        assert store.connections["b"].is_active_source is False

    def test_deactivation_event_is_noop(self, uplink_store):
        handler = SyncHandler(uplink_store)
        event = envelope(
            "CONNECTION_ACTIVE_SOURCE_CHANGED",
            {"connectionId": "c1", "targetNodeId": "router", "isActiveSource": False},
        )
        assert handler.apply(event) is False
        assert uplink_store.connections["c1"].is_active_source is True

    def test_node_group_changed(self, handler, store):
        store.add_node(make_node("n1"))

        assert handler.apply(envelope("NODE_GROUP_CHANGED", {"nodeId": "n1", "groupId": "g1"})) is True
        assert store.nodes["n1"].group_id == "g1"
        assert handler.apply(envelope("NODE_GROUP_CHANGED", {"nodeId": "n1", "groupId": None})) is True
        assert store.nodes["n1"].group_id is None

    def test_ping_is_ignored(self, handler, store):
        assert handler.apply(envelope("PING", None)) is False
        assert handler.apply({"type": "PING"}) is False
        assert store.revision == 0


class TestMalformedEvents:
    def test_unknown_type_is_ignored(self, handler, store):
        assert handler.apply(envelope("NETWORK_UPDATE", {"nodes": []})) is False
        assert handler.apply({"payload": {}}) is False
        assert handler.stats.ignored == 2
        assert store.revision == 0

    def test_missing_required_fields(self, handler, store):
        assert handler.apply(envelope("NODE_CREATED", {"id": "n1"})) is False
        assert handler.apply(envelope("NODE_GROUP_CHANGED", {"nodeId": "n1"})) is False
        assert handler.stats.malformed == 2
        assert store.nodes == {}

    def test_invalid_json_and_non_objects(self, handler):
        assert handler.apply("{not json") is False
        assert handler.apply(b"[1, 2, 3]") is False
        assert handler.apply(42) is False
        assert handler.stats.malformed == 3

    def test_update_that_breaks_the_entity_is_rejected(self, handler, store):
        store.add_node(make_node("n1", type=NodeType.ROUTER))

        assert handler.apply(envelope("NODE_UPDATED", {"id": "n1", "name": None})) is False
        assert store.nodes["n1"].name == "N1"
        assert handler.stats.malformed == 1

    def test_stream_keeps_going_after_bad_event(self, handler, store):
        events = [
            envelope("NODE_CREATED", node_payload("n1")),
            envelope("NODE_CREATED", {"name": "no id"}),
            envelope("MYSTERY", {}),
            envelope("NODE_CREATED", node_payload("n2")),
        ]
        results = [handler.apply(e) for e in events]
        assert results == [True, False, False, True]
        assert set(store.nodes) == {"n1", "n2"}


def test_every_event_type_has_a_rule():
    for event_type in EventType:
        method = SyncHandler._DISPATCH[event_type]
        assert callable(getattr(SyncHandler, method))


def test_parse_returns_typed_event(handler):
    event = handler.parse(envelope("NODE_DELETED", {"id": "n1"}))
    assert event.type == "NODE_DELETED"
    assert event.payload.id == "n1"
    assert handler.apply(event) is False


def test_absorb_snapshot_adds_only_missing_entities():
    store = EntityStore()
    store.add_node(make_node("a", name="Local A"))
    handler = SyncHandler(store)

    added = handler.absorb_snapshot(
        NetworkTopology(
            nodes=[make_node("a", name="Remote A"), make_node("b")],
            connections=[make_conn("ab", "a", "b")],
            groups=[make_group("g1")],
            group_connections=[make_link("l1", "g1", "g1")],
        )
    )

    assert added == 4
    assert store.nodes["a"].name == "Local A"
    assert set(store.nodes) == {"a", "b"}
    assert handler.absorb_snapshot(store.snapshot()) == 0
