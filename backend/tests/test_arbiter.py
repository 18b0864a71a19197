from conftest import make_conn, make_node

from starlight import arbiter
from starlight.models import NodeType


def _graph():
    nodes = {
        "isp1": make_node("isp1", type=NodeType.INTERNET),
        "isp2": make_node("isp2", type=NodeType.INTERNET),
        "sw": make_node("sw", type=NodeType.SWITCH),
        "r": make_node("r", type=NodeType.ROUTER),
    }
    connections = {
        "c1": make_conn("c1", "isp1", "r", is_active_source=True),
        "c2": make_conn("c2", "isp2", "r"),
        "c3": make_conn("c3", "sw", "r", is_active_source=True),
    }
    return connections, nodes


def test_activate_returns_only_changes():
    connections, nodes = _graph()
    assert arbiter.activate(connections, nodes, "c2", "r") == {"c2": True, "c1": False}


def test_activate_unknown_connection_yields_nothing():
    connections, nodes = _graph()
    assert arbiter.activate(connections, nodes, "nope", "r") == {}


def test_non_internet_sources_are_not_arbitrated():
    connections, nodes = _graph()
    changes = arbiter.activate(connections, nodes, "c2", "r")
    assert "c3" not in changes


def test_connection_from_missing_node_is_not_internet_sourced():
    connections, nodes = _graph()
    del nodes["isp1"]
    assert arbiter.is_internet_sourced(connections["c1"], nodes) is False


def test_normalize_keeps_first_active_per_target():
    connections, nodes = _graph()
    connections["c2"] = connections["c2"].model_copy(update={"is_active_source": True})

    assert arbiter.violations(connections, nodes) == {"r": ["c1", "c2"]}
    assert arbiter.normalize(connections, nodes) == {"c2": False}


def test_valid_graph_has_no_violations():
    connections, nodes = _graph()
    assert arbiter.violations(connections, nodes) == {}
    assert arbiter.normalize(connections, nodes) == {}


def test_activate_ignores_a_wrong_target_argument():
    connections, nodes = _graph()
    assert arbiter.activate(connections, nodes, "c2", "elsewhere") == {"c2": True, "c1": False}
