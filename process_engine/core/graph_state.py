"""Immutable working state folded over an operation batch.

Handlers never mutate a GraphState; they return a new one built from
shallow-copied lists and dicts. The initial state is a deep clone of the
persisted version, so nothing reachable from it is shared with the store.
Dangling edges and layout entries of missing nodes in a persisted version
are pruned from the clone.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional

from ..models.process_graph import ProcessLayout, ProcessModel, ProcessNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphState:
    """(model, layout) pair plus pending process-metadata changes."""
    model: ProcessModel
    layout: ProcessLayout
    meta_patch: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def clone_of(cls, model: ProcessModel, layout: ProcessLayout) -> "GraphState":
        """Deep-cloned working copy of a persisted pair, stale references pruned."""
        state = cls(model=model.model_copy(deep=True), layout=layout.model_copy(deep=True))
        return state.pruned()

    def pruned(self) -> "GraphState":
        """Drop edges and layout entries that reference missing nodes."""
        live = self.model.node_ids()
        dangling = {e.id for e in self.model.dangling_edges()}
        stale = sorted(
            {k for k in self.layout.positions if k not in live}
            | {c for c in self.layout.collapsed if c not in live}
        )
        if not (dangling or stale):
            return self

        if dangling:
            logger.warning(f"Pruned dangling edges from stored graph: {', '.join(sorted(dangling))}")
        if stale:
            logger.warning(f"Pruned layout entries for missing nodes: {', '.join(stale)}")

        model = self.model.model_copy(update={
            "edges": [e for e in self.model.edges if e.source in live and e.target in live],
        })
        layout = self.layout.model_copy(update={
            "positions": {k: v for k, v in self.layout.positions.items() if k in live},
            "collapsed": [c for c in self.layout.collapsed if c in live],
        })
        return replace(self, model=model, layout=layout)

    def with_model(self, **changes: Any) -> "GraphState":
        return replace(self, model=self.model.model_copy(update=changes))

    def with_layout(self, **changes: Any) -> "GraphState":
        return replace(self, layout=self.layout.model_copy(update=changes))

    def with_meta(self, patch: Dict[str, Any]) -> "GraphState":
        return replace(self, meta_patch={**self.meta_patch, **patch})

    def has_node(self, node_id: Any) -> bool:
        return isinstance(node_id, str) and self.model.get_node(node_id) is not None

    def has_edge(self, edge_id: Any) -> bool:
        return isinstance(edge_id, str) and self.model.get_edge(edge_id) is not None

    def replace_node(self, node: ProcessNode) -> "GraphState":
        nodes = [node if n.id == node.id else n for n in self.model.nodes]
        return self.with_model(nodes=nodes)

    def drop_nodes(self, node_ids: Iterable[str]) -> "GraphState":
        """Remove nodes and everything that references them.

        Cascades to edges with a removed node as source or target, and to
        layout positions and collapsed entries of removed nodes.
        """
        doomed = set(node_ids)
        if not doomed:
            return self

        model = self.model.model_copy(update={
            "nodes": [n for n in self.model.nodes if n.id not in doomed],
            "edges": [
                e for e in self.model.edges
                if e.source not in doomed and e.target not in doomed
            ],
        })
        layout = self.layout.model_copy(update={
            "positions": {
                k: v for k, v in self.layout.positions.items() if k not in doomed
            },
            "collapsed": [c for c in self.layout.collapsed if c not in doomed],
        })
        return replace(self, model=model, layout=layout)


def pick_live(state: GraphState, *candidates: Any, kind: str = "node") -> Optional[str]:
    """First candidate naming a live node (or edge, with kind="edge")."""
    exists = state.has_node if kind == "node" else state.has_edge
    for candidate in candidates:
        if exists(candidate):
            return candidate
    return None


__all__ = ["GraphState", "pick_live"]
