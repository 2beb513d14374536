"""
Layout operation registrations.

Positions are keyed by node ID; keys are remapped through the batch node
remap table and entries that do not name a live node are discarded so the
layout never references removed or unknown nodes.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

from ...core.graph_state import GraphState, pick_live
from ...core.id_resolver import IdRemap
from ...models.operations import OpKind
from ...models.process_graph import NodePosition
from ..operation_registry import (
    OperationCategory,
    OperationDescriptor,
    OperationMetadata,
    OperationResult,
    OperationSkipped,
    get_operation_registry,
)

logger = logging.getLogger(__name__)


def parse_position(value: Any) -> Optional[NodePosition]:
    """Accept {"x", "y"} objects or [x, y] pairs; None if malformed."""
    try:
        if isinstance(value, Mapping):
            return NodePosition(x=float(value["x"]), y=float(value["y"]))
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return NodePosition(x=float(value[0]), y=float(value[1]))
    except (KeyError, TypeError, ValueError):
        return None
    return None


def update_layout_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    updates = payload["positions"]
    if not isinstance(updates, Mapping):
        raise OperationSkipped("Payload 'positions' must be an object")

    positions = dict(state.layout.positions)
    discarded = []
    for key, value in updates.items():
        node_id = pick_live(state, remap.resolve_node(key), key)
        position = parse_position(value)
        if node_id is None or position is None:
            discarded.append(key)
            continue
        positions[node_id] = position

    if discarded:
        logger.debug(f"UPDATE_LAYOUT discarded positions for {discarded}")
    if updates and len(discarded) == len(updates):
        raise OperationSkipped("No position names a live node")

    changes: Dict[str, Any] = {"positions": positions}
    collapsed = payload.get("collapsed")
    if isinstance(collapsed, list):
        live = [pick_live(state, remap.resolve_node(c), c) for c in collapsed]
        changes["collapsed"] = list(dict.fromkeys(c for c in live if c is not None))
    swimlanes = payload.get("swimlanes")
    if isinstance(swimlanes, list):
        changes["swimlanes"] = [str(s) for s in swimlanes]

    return OperationResult(state=state.with_layout(**changes))


UPDATE_LAYOUT = OperationDescriptor(
    name=OpKind.UPDATE_LAYOUT.value,
    version="1.0.0",
    category=OperationCategory.LAYOUT,
    description="Merge node positions (and optionally collapsed/swimlanes) into the layout",
    input_schema={
        "type": "object",
        "properties": {
            "positions": {
                "type": "object",
                "additionalProperties": {
                    "type": "object",
                    "properties": {"x": {"type": "number"}, "y": {"type": "number"}},
                },
            },
            "collapsed": {"type": "array", "items": {"type": "string"}},
            "swimlanes": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["positions"],
    },
    handler=update_layout_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["layout", "positions"]),
)


def register_layout_operations():
    """Register layout operations with the registry."""
    registry = get_operation_registry()
    if not registry.exists(UPDATE_LAYOUT.name):
        registry.register(UPDATE_LAYOUT)
