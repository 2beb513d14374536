"""
Tests for the Operation Interpreter and the graph/layout/metadata handlers.

Tests cover:
- Each operation kind, applied and skipped
- Cascading node removal (edges, positions, collapsed entries)
- Intra-batch ID references through the remap tables
- Unknown and malformed operations (ignored / skipped, never raised)
- Purity: persisted model and layout are never mutated
"""

import pytest

from process_engine.core.id_resolver import IdNamespaceResolver, SequentialIdSource
from process_engine.core.interpreter import OperationInterpreter, summarize_outcomes
from process_engine.core.validation import integrity_errors
from process_engine.models.operations import OutcomeStatus
from process_engine.models.process_graph import (
    NodePosition,
    ProcessEdge,
    ProcessLayout,
    ProcessModel,
    ProcessNode,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def model():
    """start -> a -> b, plus decision d with no edges."""
    return ProcessModel(
        nodes=[
            ProcessNode(id="start", type="start", title="Start"),
            ProcessNode(id="a", title="Check request", roleId="r1"),
            ProcessNode(id="b", title="Approve"),
            ProcessNode(id="d", type="decision", title="OK?"),
        ],
        edges=[
            ProcessEdge(id="e1", source="start", target="a"),
            ProcessEdge(id="e2", source="a", target="b"),
        ],
    )


@pytest.fixture
def layout():
    return ProcessLayout(
        positions={
            "start": NodePosition(x=50, y=150),
            "a": NodePosition(x=270, y=150),
            "b": NodePosition(x=490, y=150),
            "d": NodePosition(x=490, y=300),
        },
        collapsed=["b"],
    )


@pytest.fixture
def interpreter():
    return OperationInterpreter()


@pytest.fixture
def run(model, layout, interpreter):
    """Resolve IDs and fold a batch over the fixture graph."""
    def _run(ops, base_model=None, base_layout=None):
        base_model = base_model or model
        base_layout = base_layout or layout
        resolved, remap = IdNamespaceResolver(SequentialIdSource()).resolve(base_model, ops)
        return interpreter.interpret(base_model, base_layout, resolved, remap)
    return _run


def op(kind, **payload):
    return {"type": kind, "payload": payload}


def statuses(result):
    return [o.status for o in result.outcomes]


# ============================================================================
# ADD_NODE
# ============================================================================

def test_add_node_appends_and_auto_places(run):
    result = run([op("ADD_NODE", node={"id": "c", "title": "Archive"})])

    node = result.model.get_node("c")
    assert node.title == "Archive"
    assert node.type == "step"
    assert node.checklist == []
    assert result.model.nodes[-1].id == "c"
    assert result.layout.positions["c"] == NodePosition(x=710, y=150)
    assert result.outcomes[0].target_id == "c"


def test_add_node_preserves_unknown_fields(run):
    result = run([op("ADD_NODE", node={"id": "c", "color": "#ff0000"})])
    assert result.model.get_node("c").model_dump()["color"] == "#ff0000"


def test_add_node_null_fields_use_defaults(run):
    result = run([op("ADD_NODE", node={"id": "c", "checklist": None, "title": None})])

    node = result.model.get_node("c")
    assert node.checklist == []
    assert node.title == ""


@pytest.mark.parametrize("payload", [
    {},
    {"node": None},
    {"node": "c"},
    {"node": {"id": "c", "type": "gateway"}},
])
def test_add_node_malformed_is_skipped(run, model, payload):
    result = run([{"type": "ADD_NODE", "payload": payload}])

    assert statuses(result) == [OutcomeStatus.SKIPPED]
    assert result.model.node_ids() == model.node_ids()


# ============================================================================
# UPDATE_NODE
# ============================================================================

def test_update_node_merges_patch(run):
    result = run([op("UPDATE_NODE", nodeId="a", patch={"description": "Check completeness", "checklist": ["ID"]})])

    node = result.model.get_node("a")
    assert node.title == "Check request"
    assert node.description == "Check completeness"
    assert node.checklist == ["ID"]
    assert node.roleId == "r1"


def test_update_node_ignores_id_in_patch(run):
    result = run([op("UPDATE_NODE", nodeId="a", patch={"id": "zzz", "title": "Renamed"})])

    assert result.model.get_node("zzz") is None
    assert result.model.get_node("a").title == "Renamed"


def test_update_node_null_resets_field(run):
    result = run([op("UPDATE_NODE", nodeId="a", patch={"roleId": None})])
    assert result.model.get_node("a").roleId is None


@pytest.mark.parametrize("payload", [
    {"nodeId": "ghost", "patch": {"title": "x"}},
    {"nodeId": "a"},
    {"nodeId": "a", "patch": "title"},
    {"nodeId": "a", "patch": {"type": "gateway"}},
    {"patch": {"title": "x"}},
])
def test_update_node_invalid_is_skipped(run, model, payload):
    result = run([{"type": "UPDATE_NODE", "payload": payload}])

    assert statuses(result) == [OutcomeStatus.SKIPPED]
    assert result.model == model


def test_update_node_created_in_same_batch_by_client_id(run):
    # "a" is taken, so the new node becomes "a-1"; later ops still say "a"
    result = run([
        op("ADD_NODE", node={"id": "a", "title": "Second A"}),
        op("UPDATE_NODE", nodeId="a", patch={"description": "patched"}),
    ])

    assert result.model.get_node("a-1").description == "patched"
    assert result.model.get_node("a").description is None


# ============================================================================
# REMOVE_NODE
# ============================================================================

def test_remove_node_cascades(run):
    result = run([op("REMOVE_NODE", nodeId="b")])

    assert "b" not in result.model.node_ids()
    assert result.model.edge_ids() == {"e1"}
    assert "b" not in result.layout.positions
    assert result.layout.collapsed == []
    assert integrity_errors(result.model, result.layout) == []


def test_remove_node_twice_is_idempotent(run):
    result = run([op("REMOVE_NODE", nodeId="a"), op("REMOVE_NODE", nodeId="a")])

    assert statuses(result) == [OutcomeStatus.APPLIED, OutcomeStatus.SKIPPED]
    assert "a" not in result.model.node_ids()


def test_remove_unknown_node_is_skipped(run, model):
    result = run([op("REMOVE_NODE", nodeId="ghost")])

    assert statuses(result) == [OutcomeStatus.SKIPPED]
    assert result.model == model


# ============================================================================
# ADD_EDGE
# ============================================================================

def test_add_edge_between_existing_nodes(run):
    result = run([op("ADD_EDGE", edge={"id": "e3", "source": "b", "target": "d", "label": "done"})])

    edge = result.model.get_edge("e3")
    assert (edge.source, edge.target, edge.label) == ("b", "d", "done")


def test_add_edge_to_node_added_earlier_in_batch(run):
    result = run([
        op("ADD_NODE", node={"id": "b", "title": "Another B"}),
        op("ADD_EDGE", edge={"source": "a", "target": "b"}),
    ])

    added = [e for e in result.model.edges if e.id not in {"e1", "e2"}]
    assert len(added) == 1
    assert added[0].target == "b-1"
    assert added[0].id == "edge-1"


@pytest.mark.parametrize("edge", [
    {"id": "e3", "source": "a", "target": "ghost"},
    {"id": "e3", "source": None, "target": "b"},
    {"id": "e3", "target": "b"},
])
def test_add_edge_unresolved_endpoint_is_skipped(run, edge):
    result = run([op("ADD_EDGE", edge=edge)])

    assert statuses(result) == [OutcomeStatus.SKIPPED]
    assert result.model.get_edge("e3") is None


def test_add_edge_to_node_removed_earlier_in_batch_is_skipped(run):
    result = run([
        op("REMOVE_NODE", nodeId="d"),
        op("ADD_EDGE", edge={"id": "e3", "source": "b", "target": "d"}),
    ])

    assert statuses(result) == [OutcomeStatus.APPLIED, OutcomeStatus.SKIPPED]
    assert integrity_errors(result.model, result.layout) == []


# ============================================================================
# UPDATE_EDGE / REMOVE_EDGE
# ============================================================================

def test_update_edge_label_and_condition(run):
    result = run([op("UPDATE_EDGE", edgeId="e2", patch={"label": "yes", "condition": "amount < 1000"})])

    edge = result.model.get_edge("e2")
    assert (edge.source, edge.target) == ("a", "b")
    assert edge.label == "yes"
    assert edge.condition == "amount < 1000"


def test_update_edge_retargets(run):
    result = run([op("UPDATE_EDGE", edgeId="e2", patch={"target": "d"})])
    assert result.model.get_edge("e2").target == "d"


@pytest.mark.parametrize("payload", [
    {"edgeId": "ghost", "patch": {"label": "x"}},
    {"edgeId": "e2", "patch": {"target": "ghost"}},
    {"edgeId": "e2", "patch": []},
])
def test_update_edge_invalid_is_skipped(run, model, payload):
    result = run([{"type": "UPDATE_EDGE", "payload": payload}])

    assert statuses(result) == [OutcomeStatus.SKIPPED]
    assert result.model == model


def test_remove_edge(run):
    result = run([op("REMOVE_EDGE", edgeId="e1")])

    assert result.model.edge_ids() == {"e2"}
    assert result.model.node_ids() == {"start", "a", "b", "d"}


def test_remove_edge_added_in_batch_by_client_id(run):
    result = run([
        op("ADD_EDGE", edge={"id": "e1", "source": "b", "target": "d"}),
        op("REMOVE_EDGE", edgeId="e1"),
    ])

    assert result.model.edge_ids() == {"e1", "e2"}
    assert result.outcomes[1].target_id == "e1-1"


def test_remove_unknown_edge_is_skipped(run):
    result = run([op("REMOVE_EDGE", edgeId="ghost")])
    assert statuses(result) == [OutcomeStatus.SKIPPED]


# ============================================================================
# UPDATE_LAYOUT
# ============================================================================

def test_update_layout_merges_positions(run):
    result = run([op("UPDATE_LAYOUT", positions={"a": {"x": 300, "y": 10}, "b": [1, 2]})])

    assert result.layout.positions["a"] == NodePosition(x=300, y=10)
    assert result.layout.positions["b"] == NodePosition(x=1, y=2)
    assert result.layout.positions["start"] == NodePosition(x=50, y=150)


def test_update_layout_discards_unknown_keys(run):
    result = run([op("UPDATE_LAYOUT", positions={"a": {"x": 1, "y": 1}, "ghost": {"x": 2, "y": 2}})])

    assert statuses(result) == [OutcomeStatus.APPLIED]
    assert "ghost" not in result.layout.positions


def test_update_layout_only_unknown_keys_is_skipped(run, layout):
    result = run([op("UPDATE_LAYOUT", positions={"ghost": {"x": 2, "y": 2}})])

    assert statuses(result) == [OutcomeStatus.SKIPPED]
    assert result.layout == layout


def test_update_layout_remaps_keys(run):
    result = run([
        op("ADD_NODE", node={"id": "a"}),
        op("UPDATE_LAYOUT", positions={"a": {"x": 999, "y": 9}}),
    ])

    assert result.layout.positions["a-1"] == NodePosition(x=999, y=9)
    assert result.layout.positions["a"] == NodePosition(x=270, y=150)


def test_update_layout_collapsed_and_swimlanes(run):
    result = run([op(
        "UPDATE_LAYOUT",
        positions={},
        collapsed=["a", "ghost", "a"],
        swimlanes=["Sales", "Finance"],
    )])

    assert result.layout.collapsed == ["a"]
    assert result.layout.swimlanes == ["Sales", "Finance"]


def test_update_layout_missing_positions_is_skipped(run):
    result = run([op("UPDATE_LAYOUT", collapsed=["a"])])
    assert statuses(result) == [OutcomeStatus.SKIPPED]


# ============================================================================
# Metadata operations
# ============================================================================

def test_set_iso_field(run):
    result = run([
        op("SET_ISO_FIELD", field="inputs", value="Signed contract"),
        op("SET_ISO_FIELD", field="risks", value="Late delivery"),
    ])

    assert result.model.isoFields == {"inputs": "Signed contract", "risks": "Late delivery"}


def test_set_custom_field(run):
    result = run([op("SET_CUSTOM_FIELD", field="costCenter", value="4711")])
    assert result.model.customFields == {"costCenter": "4711"}


@pytest.mark.parametrize("kind", ["SET_ISO_FIELD", "SET_CUSTOM_FIELD"])
@pytest.mark.parametrize("payload", [{"value": "x"}, {"field": "", "value": "x"}, {"field": 3}])
def test_field_operations_require_field_name(run, kind, payload):
    result = run([{"type": kind, "payload": payload}])
    assert statuses(result) == [OutcomeStatus.SKIPPED]


def test_update_process_meta_accumulates_patch(run):
    result = run([
        op("UPDATE_PROCESS_META", title="Onboarding v2"),
        op("UPDATE_PROCESS_META", patch={"status": "published"}),
    ])

    assert result.state.meta_patch == {"title": "Onboarding v2", "status": "published"}


@pytest.mark.parametrize("payload", [
    {},
    {"status": "deleted"},
    {"owner": "u9"},
    {"title": 123},
    {"patch": {"description": ["not", "text"]}},
])
def test_update_process_meta_invalid_is_skipped(run, payload):
    result = run([{"type": "UPDATE_PROCESS_META", "payload": payload}])

    assert statuses(result) == [OutcomeStatus.SKIPPED]
    assert result.state.meta_patch == {}


# ============================================================================
# REORDER_NODES
# ============================================================================

def test_reorder_nodes(run):
    result = run([op("REORDER_NODES", orderedNodeIds=["d", "b", "a", "start", "b"])])
    assert [n.id for n in result.model.nodes] == ["d", "b", "a", "start"]


def test_reorder_drops_unlisted_nodes_with_cascade(run):
    result = run([op("REORDER_NODES", orderedNodeIds=["start", "b", "d"])])

    assert [n.id for n in result.model.nodes] == ["start", "b", "d"]
    assert result.model.edges == []
    assert "a" not in result.layout.positions
    assert integrity_errors(result.model, result.layout) == []


def test_reorder_non_list_is_skipped(run, model):
    result = run([op("REORDER_NODES", orderedNodeIds="start,a")])

    assert statuses(result) == [OutcomeStatus.SKIPPED]
    assert result.model == model


# ============================================================================
# Batch behavior
# ============================================================================

def test_unknown_kinds_are_ignored(run, model):
    result = run([op("PAINT_IT_BLACK"), "garbage", {"payload": {}}])

    assert statuses(result) == [OutcomeStatus.IGNORED] * 3
    assert result.model == model


def test_one_outcome_per_operation_in_order(run):
    ops = [
        op("ADD_NODE", node={"id": "c"}),
        op("BOGUS"),
        op("REMOVE_NODE", nodeId="ghost"),
        op("SET_ISO_FIELD", field="outputs", value="Contract"),
    ]
    result = run(ops)

    assert [o.index for o in result.outcomes] == [0, 1, 2, 3]
    assert statuses(result) == [
        OutcomeStatus.APPLIED,
        OutcomeStatus.IGNORED,
        OutcomeStatus.SKIPPED,
        OutcomeStatus.APPLIED,
    ]
    lines = summarize_outcomes(result.outcomes)
    assert len(lines) == 2
    assert lines[0].startswith("#1 BOGUS: ignored")


def test_persisted_graph_is_not_mutated(run, model, layout):
    model_before = model.model_copy(deep=True)
    layout_before = layout.model_copy(deep=True)

    run([
        op("ADD_NODE", node={"id": "c"}),
        op("UPDATE_NODE", nodeId="a", patch={"title": "changed"}),
        op("REMOVE_NODE", nodeId="b"),
        op("UPDATE_LAYOUT", positions={"start": {"x": 0, "y": 0}}),
    ])

    assert model == model_before
    assert layout == layout_before


def test_empty_batch(run, model, layout):
    result = run([])

    assert result.outcomes == ()
    assert result.model == model
    assert result.layout == layout
