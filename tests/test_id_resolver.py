"""
Tests for the ID Namespace Resolver.

Tests cover:
- Invalid/sentinel ID detection
- Generated IDs for missing IDs
- Collision suffixing against the persisted graph and within a batch
- Shared node/edge namespace
- Remap tables (first mapping wins)
- Input batch is not mutated
"""

import copy

import pytest

from process_engine.core.id_resolver import (
    IdNamespaceResolver,
    IdRemap,
    RandomIdSource,
    SequentialIdSource,
    is_invalid_id,
    resolve_batch_ids,
)
from process_engine.models.operations import Operation
from process_engine.models.process_graph import ProcessEdge, ProcessModel, ProcessNode


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def model():
    """Graph with two nodes and one edge."""
    return ProcessModel(
        nodes=[ProcessNode(id="start", type="start"), ProcessNode(id="n1")],
        edges=[ProcessEdge(id="e1", source="start", target="n1")],
    )


@pytest.fixture
def resolver():
    return IdNamespaceResolver(SequentialIdSource())


def add_node(node_id=None, **fields):
    node = dict(fields)
    if node_id is not None:
        node["id"] = node_id
    return {"type": "ADD_NODE", "payload": {"node": node}}


def add_edge(edge_id=None, **fields):
    edge = dict(fields)
    if edge_id is not None:
        edge["id"] = edge_id
    return {"type": "ADD_EDGE", "payload": {"edge": edge}}


# ============================================================================
# Invalid IDs
# ============================================================================

@pytest.mark.parametrize("value", [
    None, "", "   ", "undefined", "null", "None", "NaN", "[object Object]", 42, ["n1"],
])
def test_invalid_ids(value):
    assert is_invalid_id(value)


@pytest.mark.parametrize("value", ["n1", "step-a", "nullable", "0"])
def test_valid_ids(value):
    assert not is_invalid_id(value)


# ============================================================================
# ID Sources
# ============================================================================

def test_sequential_source_counts_from_start():
    source = SequentialIdSource(start=5)
    assert [source.next_suffix() for _ in range(3)] == ["5", "6", "7"]


def test_random_source_suffix_shape():
    suffix = RandomIdSource().next_suffix()
    assert len(suffix) == 8
    int(suffix, 16)


# ============================================================================
# Assignment
# ============================================================================

def test_missing_id_is_generated(model, resolver):
    resolved, remap = resolver.resolve(model, [add_node(title="Step A")])

    assert resolved[0].payload["node"]["id"] == "node-1"
    assert remap.node_ids == {}


def test_sentinel_id_is_generated_and_not_remapped(model, resolver):
    resolved, remap = resolver.resolve(model, [add_node("undefined"), add_edge("null", source="start", target="n1")])

    assert resolved[0].payload["node"]["id"] == "node-1"
    assert resolved[1].payload["edge"]["id"] == "edge-2"
    assert "undefined" not in remap.node_ids
    assert "null" not in remap.edge_ids


def test_generated_id_skips_used(model):
    class FixedThenCounting(SequentialIdSource):
        def __init__(self):
            super().__init__()
            self.first = True

        def next_suffix(self):
            if self.first:
                self.first = False
                return "x"
            return super().next_suffix()

    taken = ProcessModel(nodes=[ProcessNode(id="node-x")])
    resolved, _ = IdNamespaceResolver(FixedThenCounting()).resolve(taken, [add_node()])

    assert resolved[0].payload["node"]["id"] == "node-1"


def test_unused_client_id_is_kept(model, resolver):
    resolved, remap = resolver.resolve(model, [add_node("n2")])

    assert resolved[0].payload["node"]["id"] == "n2"
    assert remap.node_ids == {"n2": "n2"}


def test_colliding_id_gets_numeric_suffix(model, resolver):
    resolved, remap = resolver.resolve(model, [add_node("n1")])

    assert resolved[0].payload["node"]["id"] == "n1-1"
    assert remap.node_ids == {"n1": "n1-1"}


def test_collisions_within_batch(model, resolver):
    ops = [add_node("tmp"), add_node("tmp"), add_node("tmp")]
    resolved, remap = resolver.resolve(model, ops)

    assert [op.payload["node"]["id"] for op in resolved] == ["tmp", "tmp-1", "tmp-2"]
    # First mapping wins
    assert remap.node_ids == {"tmp": "tmp"}


def test_nodes_and_edges_share_namespace(model, resolver):
    ops = [add_node("e1"), add_edge("n1", source="start", target="n1")]
    resolved, remap = resolver.resolve(model, ops)

    assert resolved[0].payload["node"]["id"] == "e1-1"
    assert resolved[1].payload["edge"]["id"] == "n1-1"
    assert remap.node_ids == {"e1": "e1-1"}
    assert remap.edge_ids == {"n1": "n1-1"}


def test_other_operations_pass_through(model, resolver):
    ops = [
        {"type": "UPDATE_NODE", "payload": {"nodeId": "n1", "patch": {"title": "X"}}},
        {"type": "BOGUS", "payload": {}},
        "not-an-operation",
    ]
    resolved, remap = resolver.resolve(model, ops)

    assert [op.type for op in resolved] == ["UPDATE_NODE", "BOGUS", ""]
    assert resolved[0].payload == ops[0]["payload"]
    assert remap == IdRemap()


def test_add_node_without_node_object_passes_through(model, resolver):
    resolved, remap = resolver.resolve(model, [{"type": "ADD_NODE", "payload": {"node": "n9"}}])

    assert resolved[0].payload == {"node": "n9"}
    assert remap.node_ids == {}


def test_input_batch_not_mutated(model, resolver):
    ops = [add_node("n1", title="A"), add_edge(source="n1", target="start")]
    snapshot = copy.deepcopy(ops)

    resolver.resolve(model, ops)

    assert ops == snapshot


def test_accepts_operation_objects(model, resolver):
    op = Operation(type="ADD_NODE", payload={"node": {"id": "start"}})
    resolved, remap = resolver.resolve(model, [op])

    assert resolved[0].payload["node"]["id"] == "start-1"
    assert op.payload["node"]["id"] == "start"


def test_remap_resolution_falls_back_to_input():
    remap = IdRemap(node_ids={"a": "a-1"}, edge_ids={"e": "e-2"})

    assert remap.resolve_node("a") == "a-1"
    assert remap.resolve_node("b") == "b"
    assert remap.resolve_edge("e") == "e-2"
    assert remap.resolve_node(None) is None


def test_resolve_batch_ids_wrapper(model):
    resolved, remap = resolve_batch_ids(model, [add_node()], SequentialIdSource(start=7))

    assert resolved[0].payload["node"]["id"] == "node-7"
