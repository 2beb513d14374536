"""Default placement for nodes added without a layout entry.

New nodes go one column to the right of the right-most node, on a fixed
row, so a freshly extended diagram reads left-to-right without manual
placement. No collision avoidance beyond the x offset.
"""

from typing import Dict

from ..config.settings import AUTO_PLACE_DEFAULT_X, AUTO_PLACE_X_STEP, AUTO_PLACE_Y
from ..models.process_graph import NodePosition, ProcessLayout


def next_position(positions: Dict[str, NodePosition]) -> NodePosition:
    """Position for the next auto-placed node.

    x = max(existing x coordinates, 50) + 220, y = 150. The 50 also acts
    as a floor when every node sits further left.
    """
    right_most = max([pos.x for pos in positions.values()] + [AUTO_PLACE_DEFAULT_X])
    return NodePosition(x=right_most + AUTO_PLACE_X_STEP, y=AUTO_PLACE_Y)


def place_node(layout: ProcessLayout, node_id: str) -> ProcessLayout:
    """Return a layout with ``node_id`` positioned.

    An existing entry for ``node_id`` is kept as-is.
    """
    if node_id in layout.positions:
        return layout
    positions = dict(layout.positions)
    positions[node_id] = next_position(layout.positions)
    return layout.model_copy(update={"positions": positions})


__all__ = ["next_position", "place_node"]
