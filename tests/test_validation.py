"""Tests for process graph validation."""

import pytest

from process_engine.core.validation import (
    graph_metrics,
    integrity_errors,
    to_networkx,
    validate_process_graph,
)
from process_engine.models.process_graph import (
    NodePosition,
    ProcessEdge,
    ProcessLayout,
    ProcessModel,
    ProcessNode,
)
from process_engine.utils.response import validation_response


@pytest.fixture
def approval_model():
    """start -> check -> decision -(yes)-> approve -> end, decision -(no)-> end."""
    return ProcessModel(
        nodes=[
            ProcessNode(id="start", type="start"),
            ProcessNode(id="check", title="Check"),
            ProcessNode(id="dec", type="decision", title="Complete?"),
            ProcessNode(id="approve", title="Approve"),
            ProcessNode(id="end", type="end"),
        ],
        edges=[
            ProcessEdge(id="e1", source="start", target="check"),
            ProcessEdge(id="e2", source="check", target="dec"),
            ProcessEdge(id="e3", source="dec", target="approve", label="yes"),
            ProcessEdge(id="e4", source="dec", target="end", label="no"),
            ProcessEdge(id="e5", source="approve", target="end"),
        ],
    )


def codes(issues):
    return sorted(issue.get("code") for issue in issues)


def test_valid_graph_has_no_issues(approval_model):
    assert validate_process_graph(approval_model) == []


def test_to_networkx_skips_dangling_edges():
    model = ProcessModel(
        nodes=[ProcessNode(id="a"), ProcessNode(id="b")],
        edges=[
            ProcessEdge(id="e1", source="a", target="b", label="go"),
            ProcessEdge(id="e2", source="a", target="ghost"),
        ],
    )
    graph = to_networkx(model)

    assert set(graph.nodes) == {"a", "b"}
    assert list(graph.edges(data=True)) == [("a", "b", {"id": "e1", "label": "go"})]


def test_integrity_errors_detect_duplicates_dangling_and_stale_layout():
    model = ProcessModel(
        nodes=[ProcessNode(id="a"), ProcessNode(id="a"), ProcessNode(id="b")],
        edges=[
            ProcessEdge(id="e1", source="a", target="b"),
            ProcessEdge(id="e1", source="b", target="a"),
            ProcessEdge(id="e2", source="b", target="ghost"),
        ],
    )
    layout = ProcessLayout(positions={"a": NodePosition(x=0, y=0), "zombie": NodePosition(x=1, y=1)})

    errors = integrity_errors(model, layout)

    assert any("Duplicate node ID a" in e for e in errors)
    assert any("Duplicate edge ID e1" in e for e in errors)
    assert any("e2 dangles" in e for e in errors)
    assert any("zombie" in e for e in errors)


def test_integrity_errors_empty_for_sound_graph(approval_model):
    assert integrity_errors(approval_model) == []


def test_empty_graph_is_info():
    issues = validate_process_graph(ProcessModel())
    assert [(i["severity"], i["code"]) for i in issues] == [("info", "PROC-TOP-000")]


def test_missing_start_node(approval_model):
    model = approval_model.model_copy(update={
        "nodes": [n for n in approval_model.nodes if n.id != "start"],
        "edges": [e for e in approval_model.edges if e.source != "start"],
    })
    assert "PROC-TOP-001" in codes(validate_process_graph(model))


def test_unreachable_node(approval_model):
    model = approval_model.model_copy(update={
        "nodes": [*approval_model.nodes, ProcessNode(id="orphan_src"), ProcessNode(id="orphan_dst")],
        "edges": [*approval_model.edges, ProcessEdge(id="e9", source="orphan_src", target="orphan_dst")],
    })
    issues = validate_process_graph(model)

    unreachable = {i["location"] for i in issues if i["code"] == "PROC-TOP-002"}
    assert unreachable == {"orphan_src", "orphan_dst"}


def test_unlabelled_decision_branch(approval_model):
    edges = [
        e.model_copy(update={"label": "  "}) if e.id == "e4" else e
        for e in approval_model.edges
    ]
    issues = validate_process_graph(approval_model.model_copy(update={"edges": edges}))

    decision_issues = [i for i in issues if i["code"] == "PROC-DEC-001"]
    assert len(decision_issues) == 1
    assert decision_issues[0]["location"] == "e4"
    assert decision_issues[0]["severity"] == "warning"


def test_isolated_node(approval_model):
    model = approval_model.model_copy(update={"nodes": [*approval_model.nodes, ProcessNode(id="lonely")]})
    issues = validate_process_graph(model)

    assert "PROC-TOP-003" in codes(issues)
    assert "PROC-TOP-002" in codes(issues)


def test_dangling_edge_is_error():
    model = ProcessModel(
        nodes=[ProcessNode(id="start", type="start")],
        edges=[ProcessEdge(id="e1", source="start", target="ghost")],
    )
    issues = validate_process_graph(model)

    errors = [i for i in issues if i["severity"] == "error"]
    assert [i["code"] for i in errors] == ["PROC-REF-001"]
    assert validation_response(issues)["ok"] is False


def test_validation_response_status():
    assert validation_response([])["data"]["status"] == "ok"
    warning = {"severity": "warning", "message": "w"}
    response = validation_response([warning], metrics={"nodes": 1})
    assert response["ok"] is True
    assert response["data"]["status"] == "warning"
    assert response["data"]["metrics"] == {"nodes": 1}


def test_graph_metrics(approval_model):
    metrics = graph_metrics(approval_model)

    assert metrics == {
        "nodes": 5,
        "edges": 5,
        "is_connected": True,
        "has_cycles": False,
        "components": 1,
    }


def test_graph_metrics_cycle_and_empty():
    loop = ProcessModel(
        nodes=[ProcessNode(id="a"), ProcessNode(id="b")],
        edges=[ProcessEdge(id="e1", source="a", target="b"), ProcessEdge(id="e2", source="b", target="a")],
    )
    assert graph_metrics(loop)["has_cycles"] is True

    empty = graph_metrics(ProcessModel())
    assert empty["nodes"] == 0
    assert empty["is_connected"] is False
    assert empty["components"] == 0
