"""Process graph validation.

Two levels:
- integrity_errors(): hard invariants the engine guarantees after every
  batch (no dangling edges, unique IDs, layout keys name live nodes). The
  revision controller refuses to persist a state that violates them.
- validate_process_graph(): advisory report for editors (reachability from
  start, unlabelled decision branches, isolated steps), built on networkx.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import networkx as nx

from ..models.process_graph import NodeType, ProcessLayout, ProcessModel
from ..utils.response import create_issue

logger = logging.getLogger(__name__)


def to_networkx(model: ProcessModel) -> nx.DiGraph:
    """Build a DiGraph with node attributes ``type``/``title`` and edge ``id``/``label``.

    Dangling edges are left out.
    """
    graph = nx.DiGraph()
    for node in model.nodes:
        graph.add_node(node.id, type=node.type, title=node.title)
    for edge in model.edges:
        if edge.source in graph and edge.target in graph:
            graph.add_edge(edge.source, edge.target, id=edge.id, label=edge.label)
    return graph


def integrity_errors(model: ProcessModel, layout: Optional[ProcessLayout] = None) -> List[str]:
    """Violations of the graph invariants; empty when the graph is sound."""
    errors = []

    for node_id, count in Counter(n.id for n in model.nodes).items():
        if count > 1:
            errors.append(f"Duplicate node ID {node_id} ({count}x)")
    for edge_id, count in Counter(e.id for e in model.edges).items():
        if count > 1:
            errors.append(f"Duplicate edge ID {edge_id} ({count}x)")

    for edge in model.dangling_edges():
        errors.append(f"Edge {edge.id} dangles ({edge.source} -> {edge.target})")

    if layout is not None:
        live = model.node_ids()
        stale = sorted(k for k in layout.positions if k not in live)
        if stale:
            errors.append(f"Layout positions for removed nodes: {', '.join(stale)}")

    return errors


def validate_process_graph(
    model: ProcessModel,
    layout: Optional[ProcessLayout] = None,
) -> List[Dict[str, Any]]:
    """
    Validate a process graph and return structured issues.

    Checks for:
    - Integrity violations - ERROR
    - Missing start node - WARNING
    - Nodes unreachable from any start node - WARNING
    - Decision branches without a label - WARNING
    - Isolated nodes in a multi-node graph - WARNING
    - Empty graph - INFO

    Args:
        model: Process graph to validate
        layout: Optional layout to check for stale positions

    Returns:
        List of issue dicts (see utils.response.create_issue)
    """
    issues = [
        create_issue("error", message, code="PROC-REF-001")
        for message in integrity_errors(model, layout)
    ]

    if not model.nodes:
        issues.append(create_issue("info", "Process has no nodes", code="PROC-TOP-000"))
        return issues

    graph = to_networkx(model)
    starts = [n.id for n in model.nodes if n.type == NodeType.START]

    if not starts:
        issues.append(create_issue("warning", "Process has no start node", code="PROC-TOP-001"))
    else:
        reachable = set(starts)
        for start in starts:
            reachable |= nx.descendants(graph, start)
        for node in model.nodes:
            if node.id not in reachable:
                issues.append(create_issue(
                    "warning",
                    f"Node {node.title or node.id} is not reachable from start",
                    location=node.id,
                    code="PROC-TOP-002",
                ))

    for node in model.nodes:
        if node.type != NodeType.DECISION:
            continue
        for _, target, data in graph.out_edges(node.id, data=True):
            if not (data.get("label") or "").strip():
                issues.append(create_issue(
                    "warning",
                    f"Decision {node.title or node.id} has an unlabelled branch to {target}",
                    location=data.get("id"),
                    code="PROC-DEC-001",
                ))

    if graph.number_of_nodes() > 1:
        for node_id in nx.isolates(graph):
            issues.append(create_issue(
                "warning",
                f"Isolated node: {node_id}",
                location=node_id,
                code="PROC-TOP-003",
            ))

    return issues


def graph_metrics(model: ProcessModel) -> Dict[str, Any]:
    """Topology metrics of a process graph."""
    graph = to_networkx(model)
    empty = graph.number_of_nodes() == 0
    return {
        "nodes": graph.number_of_nodes(),
        "edges": graph.number_of_edges(),
        "is_connected": False if empty else nx.is_weakly_connected(graph),
        "has_cycles": False if empty else not nx.is_directed_acyclic_graph(graph),
        "components": nx.number_weakly_connected_components(graph),
    }


__all__ = [
    "to_networkx",
    "integrity_errors",
    "validate_process_graph",
    "graph_metrics",
]
