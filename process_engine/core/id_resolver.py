"""
ID Namespace Resolver - collision-free IDs for elements added by a batch.

Runs once over an operation batch before anything is mutated:
- Every ADD_NODE / ADD_EDGE gets an ID that collides neither with the
  persisted graph nor with IDs assigned earlier in the same batch
- Client IDs that are missing or sentinel strings ("undefined", "null", ...)
  are replaced with generated "<prefix>-<suffix>" IDs
- Client IDs that collide get a numeric suffix ("tmp" -> "tmp-1")
- original -> final mappings are recorded so later operations that still
  reference the client ID (typically ADD_EDGE after ADD_NODE) can be remapped

Node IDs and edge IDs share one "used" set.

Usage:
    from process_engine.core.id_resolver import IdNamespaceResolver, SequentialIdSource

    resolver = IdNamespaceResolver(SequentialIdSource())
    resolved_ops, remap = resolver.resolve(model, ops)
    remap.resolve_node("tmp")  # -> "tmp-1" if "tmp" was taken
"""

import copy
import itertools
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..models.operations import OpKind, Operation
from ..models.process_graph import ProcessModel

logger = logging.getLogger(__name__)

# Compared case-insensitively after stripping whitespace
INVALID_ID_SENTINELS = frozenset({"undefined", "null", "none", "nan", "[object object]"})


def is_invalid_id(value: Any) -> bool:
    """True if a client-supplied ID cannot be used as-is."""
    if not isinstance(value, str):
        return True
    stripped = value.strip()
    if not stripped:
        return True
    return stripped.lower() in INVALID_ID_SENTINELS


# ============================================================================
# ID Sources
# ============================================================================

class IdSource(ABC):
    """Supplies suffixes for generated IDs."""

    @abstractmethod
    def next_suffix(self) -> str:
        """Return a fresh suffix."""
        pass


class RandomIdSource(IdSource):
    """Random 8-hex-digit suffixes (default)."""

    def next_suffix(self) -> str:
        return uuid.uuid4().hex[:8]


class SequentialIdSource(IdSource):
    """Deterministic counter suffixes ("1", "2", ...) for tests."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def next_suffix(self) -> str:
        return str(next(self._counter))


# ============================================================================
# Remap tables
# ============================================================================

@dataclass
class IdRemap:
    """original client ID -> final assigned ID, per namespace."""
    node_ids: Dict[str, str] = field(default_factory=dict)
    edge_ids: Dict[str, str] = field(default_factory=dict)

    def resolve_node(self, node_id: Any) -> Any:
        if isinstance(node_id, str):
            return self.node_ids.get(node_id, node_id)
        return node_id

    def resolve_edge(self, edge_id: Any) -> Any:
        if isinstance(edge_id, str):
            return self.edge_ids.get(edge_id, edge_id)
        return edge_id


# ============================================================================
# Resolver
# ============================================================================

class IdNamespaceResolver:
    """Assigns final IDs to the elements a batch creates."""

    _KINDS = {
        OpKind.ADD_NODE.value: ("node", "node"),
        OpKind.ADD_EDGE.value: ("edge", "edge"),
    }

    def __init__(self, id_source: Optional[IdSource] = None):
        self.id_source = id_source or RandomIdSource()

    def resolve(
        self,
        model: ProcessModel,
        operations: Iterable[Any],
    ) -> Tuple[List[Operation], IdRemap]:
        """Rewrite a batch so every created element carries its final ID.

        The input operations are not mutated; payloads of the returned
        operations are deep copies.

        Args:
            model: Current persisted graph
            operations: Raw or parsed operations, in batch order

        Returns:
            (resolved operations, remap tables)
        """
        used: Set[str] = model.node_ids() | model.edge_ids()
        remap = IdRemap()
        resolved: List[Operation] = []

        for raw in operations:
            op = Operation.coerce(raw)
            kind = self._KINDS.get(op.type)
            element = op.payload.get(kind[0]) if kind else None

            if kind is None or not isinstance(element, Mapping):
                resolved.append(Operation(type=op.type, payload=copy.deepcopy(op.payload)))
                continue

            payload_key, prefix = kind
            element = copy.deepcopy(dict(element))
            original = element.get("id")
            final = self._assign(original, prefix, used)
            used.add(final)
            element["id"] = final

            if not is_invalid_id(original):
                table = remap.node_ids if prefix == "node" else remap.edge_ids
                table.setdefault(original, final)
                if final != original:
                    logger.debug(f"Remapped {prefix} ID {original!r} -> {final!r}")

            payload = copy.deepcopy(op.payload)
            payload[payload_key] = element
            resolved.append(Operation(type=op.type, payload=payload))

        return resolved, remap

    def _assign(self, original: Any, prefix: str, used: Set[str]) -> str:
        if is_invalid_id(original):
            candidate = f"{prefix}-{self.id_source.next_suffix()}"
            while candidate in used:
                candidate = f"{prefix}-{self.id_source.next_suffix()}"
            return candidate

        if original not in used:
            return original

        for n in itertools.count(1):
            candidate = f"{original}-{n}"
            if candidate not in used:
                return candidate


def resolve_batch_ids(
    model: ProcessModel,
    operations: Iterable[Any],
    id_source: Optional[IdSource] = None,
) -> Tuple[List[Operation], IdRemap]:
    """Convenience wrapper around IdNamespaceResolver.resolve()."""
    return IdNamespaceResolver(id_source).resolve(model, operations)


__all__ = [
    "INVALID_ID_SENTINELS",
    "is_invalid_id",
    "IdSource",
    "RandomIdSource",
    "SequentialIdSource",
    "IdRemap",
    "IdNamespaceResolver",
    "resolve_batch_ids",
]
