"""
Tests for GraphStore

节点/边注册表：去重、ID 连续性、邻接表维护
"""

import json
import sys

import pytest
from loguru import logger

from codeflow.api.models import EdgeType, NodeType
from codeflow.storage.graph_store import GraphStore


class Construct:
    """按身份区分的构造体"""


@pytest.fixture
def store():
    return GraphStore()


class TestNodeRegistry:
    def test_same_construct_returns_same_node(self, store):
        construct = Construct()

        first, created_first = store.get_or_create_node(construct, NodeType.CALL)
        second, created_second = store.get_or_create_node(construct, NodeType.CALL)

        assert created_first is True
        assert created_second is False
        assert first is second
        assert len(store.nodes) == 1

    def test_existing_node_keeps_original_type(self, store):
        construct = Construct()
        store.add_node(construct, NodeType.ARGUMENT)

        node, created = store.get_or_create_node(construct, NodeType.CALL)

        assert created is False
        assert node.type == NodeType.ARGUMENT

    def test_distinct_constructs_get_distinct_nodes(self, store):
        a = store.add_node(Construct(), NodeType.CALL)
        b = store.add_node(Construct(), NodeType.CALL)

        assert a is not b
        assert a.id != b.id

    def test_node_ids_are_contiguous(self, store):
        nodes = [store.add_node(Construct(), NodeType.ANY) for _ in range(5)]

        assert [node.id for node in nodes] == [0, 1, 2, 3, 4]
        assert sorted(store.nodes) == list(range(5))

    def test_find_node(self, store):
        construct = Construct()
        assert store.find_node(construct) is None
        node = store.add_node(construct, NodeType.OBJECT)
        assert store.find_node(construct) is node


class TestEdgeRegistry:
    def test_new_edge_updates_adjacency(self, store):
        a = store.add_node(Construct(), NodeType.FUNCTION)
        b = store.add_node(Construct(), NodeType.CALL)

        edge, created = store.get_or_create_edge(a, b, EdgeType.CHILD)

        assert created is True
        assert edge.source is a
        assert edge.destination is b
        assert a.outgoing == [edge]
        assert b.incoming == [edge]
        assert a.incoming == []
        assert b.outgoing == []

    def test_same_pair_is_coalesced(self, store):
        a = store.add_node(Construct(), NodeType.CALL)
        b = store.add_node(Construct(), NodeType.ARGUMENT)

        first = store.add_edge(a, b, EdgeType.ARGUMENT)
        second, created = store.get_or_create_edge(a, b, EdgeType.ARGUMENT)

        assert created is False
        assert second is first
        assert len(store.edges) == 1
        assert len(a.outgoing) == 1

    def test_different_type_between_same_pair_keeps_first(self, store):
        a = store.add_node(Construct(), NodeType.CALL)
        b = store.add_node(Construct(), NodeType.CALL)

        first = store.add_edge(a, b, EdgeType.CHILD)
        second, created = store.get_or_create_edge(a, b, EdgeType.ARGUMENT)

        assert created is False
        assert second is first
        assert second.type == EdgeType.CHILD
        assert len(store.edges) == 1

    def test_direction_matters(self, store):
        a = store.add_node(Construct(), NodeType.FUNCTION)
        b = store.add_node(Construct(), NodeType.FUNCTION)

        forward = store.add_edge(a, b, EdgeType.CHILD)
        backward = store.add_edge(b, a, EdgeType.CHILD)

        assert forward is not backward
        assert len(store.edges) == 2

    def test_type_aware_keys_keep_both_edges(self):
        store = GraphStore(edge_key_includes_type=True)
        a = store.add_node(Construct(), NodeType.CALL)
        b = store.add_node(Construct(), NodeType.CALL)

        child = store.add_edge(a, b, EdgeType.CHILD)
        argument, created = store.get_or_create_edge(a, b, EdgeType.ARGUMENT)

        assert created is True
        assert child is not argument
        assert [e.type for e in a.outgoing] == [EdgeType.CHILD, EdgeType.ARGUMENT]
        assert store.add_edge(a, b, EdgeType.CHILD) is child

    def test_edge_ids_are_contiguous(self, store):
        nodes = [store.add_node(Construct(), NodeType.CALL) for _ in range(4)]
        edges = [store.add_edge(nodes[i], nodes[i + 1], EdgeType.CHILD) for i in range(3)]
        store.add_edge(nodes[0], nodes[1], EdgeType.CHILD)

        assert [edge.id for edge in edges] == [0, 1, 2]
        assert sorted(store.edges) == [0, 1, 2]

    def test_outgoing_of_type(self, store):
        call = store.add_node(Construct(), NodeType.CALL)
        arg = store.add_node(Construct(), NodeType.ARGUMENT)
        child = store.add_node(Construct(), NodeType.CALL)
        store.add_edge(call, arg, EdgeType.ARGUMENT)
        store.add_edge(call, child, EdgeType.CHILD)

        assert [e.destination for e in call.outgoing_of_type(EdgeType.ARGUMENT)] == [arg]
        assert [e.destination for e in call.outgoing_of_type(EdgeType.CHILD)] == [child]


def test_describe_node_lists_neighbour_ids(store):
    a = store.add_node(Construct(), NodeType.FUNCTION)
    b = store.add_node(Construct(), NodeType.CALL)
    store.add_edge(a, b, EdgeType.CHILD)

    description = json.loads(store.describe_node(b, "foo()"))

    assert description == {"id": 1, "text": "foo()", "incoming": [0], "outgoing": []}
    assert store.stats() == {"nodes": 2, "edges": 1}


class TestLogNodes:
    @pytest.fixture
    def messages(self):
        captured = []
        yield captured
        logger.remove()
        logger.add(sys.stderr)

    def capture(self, messages, level):
        logger.remove()
        logger.add(lambda message: messages.append(message.record["message"]), level=level)

    def test_descriptions_are_not_built_above_debug(self, store, messages):
        store.add_node(Construct(), NodeType.FUNCTION)
        texts = []
        self.capture(messages, "INFO")

        store.log_nodes(lambda construct: texts.append(construct) or "f")

        assert texts == []
        assert messages == []

    def test_debug_level_dumps_every_node(self, store, messages):
        store.add_node(Construct(), NodeType.FUNCTION)
        store.add_node(Construct(), NodeType.CALL)
        self.capture(messages, "DEBUG")

        store.log_nodes(lambda construct: "text")

        assert messages[0] == "All nodes:"
        assert [json.loads(m)["id"] for m in messages[1:]] == [0, 1]
