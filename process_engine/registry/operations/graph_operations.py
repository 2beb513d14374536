"""
Structural operation registrations (nodes and edges).

Every handler returns a new GraphState. IDs in payloads are resolved through
the batch remap tables first and then directly, so an operation can address
both elements created earlier in the batch and persisted ones.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Dict

from pydantic import ValidationError

from ...core.graph_state import GraphState, pick_live
from ...core.id_resolver import IdRemap, is_invalid_id
from ...core.layout_placer import place_node
from ...models.operations import OpKind
from ...models.process_graph import ProcessEdge, ProcessNode
from ..operation_registry import (
    OperationCategory,
    OperationDescriptor,
    OperationMetadata,
    OperationResult,
    OperationSkipped,
    get_operation_registry,
)

logger = logging.getLogger(__name__)


def _without_none(data: Mapping) -> Dict[str, Any]:
    # None means "use the default" for every node/edge field
    return {k: v for k, v in data.items() if v is not None}


def _resolve_node(state: GraphState, remap: IdRemap, node_id: Any):
    return pick_live(state, remap.resolve_node(node_id), node_id)


def _resolve_edge(state: GraphState, remap: IdRemap, edge_id: Any):
    return pick_live(state, remap.resolve_edge(edge_id), edge_id, kind="edge")


def _build_node(data: Dict[str, Any]) -> ProcessNode:
    try:
        return ProcessNode.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise OperationSkipped(f"Invalid node fields: {fields or 'unknown'}") from e


def _build_edge(data: Dict[str, Any]) -> ProcessEdge:
    try:
        return ProcessEdge.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise OperationSkipped(f"Invalid edge fields: {fields or 'unknown'}") from e


# ============================================================================
# Node handlers
# ============================================================================

def add_node_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    raw = payload["node"]
    if not isinstance(raw, Mapping):
        raise OperationSkipped("Payload 'node' must be an object")

    data = _without_none(raw)
    node_id = data.get("id")
    if is_invalid_id(node_id):
        raise OperationSkipped("Node has no usable ID")
    if state.has_node(node_id):
        raise OperationSkipped(f"Node {node_id} already exists")

    node = _build_node(data)
    state = state.with_model(nodes=[*state.model.nodes, node])
    state = replace(state, layout=place_node(state.layout, node.id))
    return OperationResult(state=state, target_id=node.id, message=f"Node {node.id} added")


def update_node_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    node_id = _resolve_node(state, remap, payload["nodeId"])
    if node_id is None:
        raise OperationSkipped(f"Unknown node {payload['nodeId']}")

    patch = payload["patch"]
    if not isinstance(patch, Mapping):
        raise OperationSkipped("Payload 'patch' must be an object")

    current = state.model.get_node(node_id)
    changes = {k: v for k, v in patch.items() if k != "id"}
    node = _build_node(_without_none({**current.model_dump(), **changes}))
    return OperationResult(state=state.replace_node(node), target_id=node_id)


def remove_node_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    node_id = _resolve_node(state, remap, payload["nodeId"])
    if node_id is None:
        raise OperationSkipped(f"Unknown node {payload['nodeId']}")
    return OperationResult(state=state.drop_nodes([node_id]), target_id=node_id)


def reorder_nodes_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    requested = payload["orderedNodeIds"]
    if not isinstance(requested, list):
        raise OperationSkipped("Payload 'orderedNodeIds' must be a list")

    ordered = []
    for raw_id in requested:
        node_id = _resolve_node(state, remap, raw_id)
        if node_id is not None and node_id not in ordered:
            ordered.append(node_id)

    dropped = state.model.node_ids() - set(ordered)
    if dropped:
        logger.debug(f"REORDER_NODES drops unlisted nodes: {sorted(dropped)}")

    by_id = {n.id: n for n in state.model.nodes}
    state = state.drop_nodes(dropped)
    return OperationResult(state=state.with_model(nodes=[by_id[i] for i in ordered]))


# ============================================================================
# Edge handlers
# ============================================================================

def add_edge_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    raw = payload["edge"]
    if not isinstance(raw, Mapping):
        raise OperationSkipped("Payload 'edge' must be an object")

    data = _without_none(raw)
    edge_id = data.get("id")
    if is_invalid_id(edge_id):
        raise OperationSkipped("Edge has no usable ID")
    if state.has_edge(edge_id):
        raise OperationSkipped(f"Edge {edge_id} already exists")

    source = _resolve_node(state, remap, data.get("source"))
    target = _resolve_node(state, remap, data.get("target"))
    if source is None or target is None:
        raise OperationSkipped(
            f"Edge {edge_id} has unresolved endpoint "
            f"({data.get('source')!r} -> {data.get('target')!r})"
        )

    edge = _build_edge({**data, "source": source, "target": target})
    state = state.with_model(edges=[*state.model.edges, edge])
    return OperationResult(state=state, target_id=edge.id)


def update_edge_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    edge_id = _resolve_edge(state, remap, payload["edgeId"])
    if edge_id is None:
        raise OperationSkipped(f"Unknown edge {payload['edgeId']}")

    patch = payload["patch"]
    if not isinstance(patch, Mapping):
        raise OperationSkipped("Payload 'patch' must be an object")

    changes = {k: v for k, v in patch.items() if k != "id"}
    for endpoint in ("source", "target"):
        if endpoint in changes:
            resolved = _resolve_node(state, remap, changes[endpoint])
            if resolved is None:
                raise OperationSkipped(f"Unresolved {endpoint} {changes[endpoint]!r}")
            changes[endpoint] = resolved

    current = state.model.get_edge(edge_id)
    edge = _build_edge(_without_none({**current.model_dump(), **changes}))
    edges = [edge if e.id == edge_id else e for e in state.model.edges]
    return OperationResult(state=state.with_model(edges=edges), target_id=edge_id)


def remove_edge_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    edge_id = _resolve_edge(state, remap, payload["edgeId"])
    if edge_id is None:
        raise OperationSkipped(f"Unknown edge {payload['edgeId']}")
    edges = [e for e in state.model.edges if e.id != edge_id]
    return OperationResult(state=state.with_model(edges=edges), target_id=edge_id)


# ============================================================================
# Operation Descriptors
# ============================================================================

_OBJECT = {"type": "object"}
_ID = {"type": "string"}

ADD_NODE = OperationDescriptor(
    name=OpKind.ADD_NODE.value,
    version="1.0.0",
    category=OperationCategory.STRUCTURE,
    description="Append a node; auto-placed when it has no layout entry",
    input_schema={
        "type": "object",
        "properties": {"node": _OBJECT},
        "required": ["node"],
    },
    handler=add_node_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["node", "creation"]),
)

UPDATE_NODE = OperationDescriptor(
    name=OpKind.UPDATE_NODE.value,
    version="1.0.0",
    category=OperationCategory.STRUCTURE,
    description="Shallow-merge a patch into a node (the node ID cannot change)",
    input_schema={
        "type": "object",
        "properties": {"nodeId": _ID, "patch": _OBJECT},
        "required": ["nodeId", "patch"],
    },
    handler=update_node_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["node", "modification"]),
)

REMOVE_NODE = OperationDescriptor(
    name=OpKind.REMOVE_NODE.value,
    version="1.0.0",
    category=OperationCategory.STRUCTURE,
    description="Remove a node with its edges and layout entry",
    input_schema={
        "type": "object",
        "properties": {"nodeId": _ID},
        "required": ["nodeId"],
    },
    handler=remove_node_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["node", "removal", "cascade"]),
)

REORDER_NODES = OperationDescriptor(
    name=OpKind.REORDER_NODES.value,
    version="1.0.0",
    category=OperationCategory.STRUCTURE,
    description="Rebuild the node list in the given order; unlisted nodes are removed",
    input_schema={
        "type": "object",
        "properties": {"orderedNodeIds": {"type": "array", "items": _ID}},
        "required": ["orderedNodeIds"],
    },
    handler=reorder_nodes_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["node", "order"]),
)

ADD_EDGE = OperationDescriptor(
    name=OpKind.ADD_EDGE.value,
    version="1.0.0",
    category=OperationCategory.STRUCTURE,
    description="Connect two live nodes; dropped when an endpoint does not resolve",
    input_schema={
        "type": "object",
        "properties": {"edge": _OBJECT},
        "required": ["edge"],
    },
    handler=add_edge_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["edge", "creation"]),
)

UPDATE_EDGE = OperationDescriptor(
    name=OpKind.UPDATE_EDGE.value,
    version="1.0.0",
    category=OperationCategory.STRUCTURE,
    description="Merge a patch (label, condition, endpoints) into an edge",
    input_schema={
        "type": "object",
        "properties": {"edgeId": _ID, "patch": _OBJECT},
        "required": ["edgeId", "patch"],
    },
    handler=update_edge_handler,
    metadata=OperationMetadata(introduced="1.1.0", tags=["edge", "modification"]),
)

REMOVE_EDGE = OperationDescriptor(
    name=OpKind.REMOVE_EDGE.value,
    version="1.0.0",
    category=OperationCategory.STRUCTURE,
    description="Remove an edge",
    input_schema={
        "type": "object",
        "properties": {"edgeId": _ID},
        "required": ["edgeId"],
    },
    handler=remove_edge_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["edge", "removal"]),
)

GRAPH_OPERATIONS = [
    ADD_NODE,
    UPDATE_NODE,
    REMOVE_NODE,
    REORDER_NODES,
    ADD_EDGE,
    UPDATE_EDGE,
    REMOVE_EDGE,
]


# ============================================================================
# Registration Function
# ============================================================================

def register_graph_operations():
    """Register all structural operations with the registry."""
    registry = get_operation_registry()

    for operation in GRAPH_OPERATIONS:
        if not registry.exists(operation.name):
            registry.register(operation)
