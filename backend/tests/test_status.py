from conftest import make_conn, make_group, make_link, make_node

from starlight import status
from starlight.models import NodeType, Status
from starlight.status import ConnectionState, GroupStatus


def _node(node_id, st=Status.UNKNOWN, inet=Status.UNKNOWN, **fields):
    return make_node(node_id, status=st, internet_status=inet, **fields)


class TestConnectionState:
    def test_offline_endpoint_wins(self):
        conn = make_conn("c", "a", "b")
        state = status.connection_state(conn, _node("a", Status.DEGRADED), _node("b", Status.OFFLINE))
        assert state == ConnectionState.OFFLINE

    def test_degraded_endpoint(self):
        conn = make_conn("c", "a", "b")
        state = status.connection_state(conn, _node("a", Status.ONLINE), _node("b", Status.DEGRADED))
        assert state == ConnectionState.DEGRADED

    def test_healthy_connection_uses_its_own_colour(self):
        conn = make_conn("c", "a", "b", color="#123456")
        state = status.connection_state(conn, _node("a", Status.ONLINE), _node("b", Status.UNKNOWN))
        assert state == ConnectionState.NORMAL
        assert status.connection_color(conn, state) == "#123456"

    def test_internet_uplinks_are_active_or_standby(self):
        isp = _node("isp", Status.ONLINE, Status.ONLINE, type=NodeType.INTERNET)
        target = _node("r", Status.OFFLINE)
        active = make_conn("c1", "isp", "r", is_active_source=True)
        standby = make_conn("c2", "isp", "r")

        # Target status does not matter for uplinks
        assert status.connection_state(active, isp, target) == ConnectionState.ACTIVE
        assert status.connection_state(standby, isp, target) == ConnectionState.STANDBY
        assert status.connection_color(active, ConnectionState.ACTIVE) == status.ACTIVE_SOURCE_COLOR
        assert status.connection_color(standby, ConnectionState.STANDBY) == status.STANDBY_SOURCE_COLOR

    def test_internet_uplink_offline(self):
        target = _node("r", Status.ONLINE)
        conn = make_conn("c1", "isp", "r", is_active_source=True)

        lost_internet = _node("isp", Status.ONLINE, Status.OFFLINE, type=NodeType.INTERNET)
        assert status.connection_state(conn, lost_internet, target) == ConnectionState.OFFLINE

        down = _node("isp", Status.OFFLINE, Status.UNKNOWN, type=NodeType.INTERNET)
        assert status.connection_state(conn, down, target) == ConnectionState.OFFLINE


class TestGroupStatus:
    def test_empty_group_is_unknown(self):
        assert status.group_status([]) == GroupStatus.UNKNOWN

    def test_internet_dominates_offline_members(self):
        members = [_node("a", Status.OFFLINE), _node("b", Status.OFFLINE), _node("c", Status.ONLINE, Status.ONLINE)]
        assert status.group_status(members) == GroupStatus.INTERNET

    def test_online_internet_node_counts_as_internet(self):
        members = [_node("isp", Status.DEGRADED, type=NodeType.INTERNET), _node("b", Status.OFFLINE)]
        assert status.group_status(members) == GroupStatus.INTERNET

    def test_offline_internet_node_does_not(self):
        members = [_node("isp", Status.OFFLINE, type=NodeType.INTERNET), _node("b", Status.OFFLINE)]
        assert status.group_status(members) == GroupStatus.OFFLINE

    def test_reachable_member_makes_group_local(self):
        members = [_node("a", Status.ONLINE, Status.OFFLINE), _node("b", Status.OFFLINE)]
        assert status.group_status(members) == GroupStatus.LOCAL

    def test_offline_only_when_all_offline(self):
        assert status.group_status([_node("a", Status.OFFLINE)]) == GroupStatus.OFFLINE
        members = [_node("a", Status.OFFLINE), _node("b", Status.UNKNOWN)]
        assert status.group_status(members) == GroupStatus.UNKNOWN


def test_combine_group_statuses():
    combine = status.combine_group_statuses
    assert combine(GroupStatus.OFFLINE, GroupStatus.OFFLINE) == GroupStatus.OFFLINE
    assert combine(GroupStatus.OFFLINE, GroupStatus.INTERNET) == GroupStatus.INTERNET
    assert combine(GroupStatus.LOCAL, GroupStatus.INTERNET) == GroupStatus.INTERNET
    assert combine(GroupStatus.UNKNOWN, GroupStatus.LOCAL) == GroupStatus.LOCAL
    assert combine(GroupStatus.OFFLINE, GroupStatus.UNKNOWN) == GroupStatus.UNKNOWN


def test_views_skip_dangling_references(store):
    store.add_node(_node("a", Status.ONLINE, Status.ONLINE, group_id="g1"))
    store.add_node(_node("b", Status.OFFLINE, group_id="g2"))
    store.add_group(make_group("g1"))
    store.add_group(make_group("g2"))
    store.add_connection(make_conn("ab", "a", "b"))
    store.add_connection(make_conn("dangling", "a", "missing"))
    store.add_group_connection(make_link("l12", "g1", "g2"))
    store.add_group_connection(make_link("l-missing", "g1", "gone"))

    conns = status.connection_views(store)
    assert [(v.connection_id, v.state) for v in conns] == [("ab", ConnectionState.OFFLINE)]

    groups = {v.group_id: v for v in status.group_views(store)}
    assert groups["g1"].status == GroupStatus.INTERNET
    assert groups["g1"].color == status.GROUP_STATUS_COLORS[GroupStatus.INTERNET]
    assert groups["g2"].status == GroupStatus.OFFLINE
    assert groups["g2"].member_count == 1

    links = status.group_connection_views(store)
    assert [(v.group_connection_id, v.status) for v in links] == [("l12", GroupStatus.INTERNET)]

    assert status.group_view(store, "gone") is None
    assert status.connection_view(store, "dangling") is None
