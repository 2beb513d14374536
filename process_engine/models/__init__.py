"""Process graph and operation models.

Pydantic schemas for the versioned process documents the engine mutates,
and the operation/outcome types exchanged with callers.
"""

from .process_graph import (
    NodeType,
    ProcessStatus,
    NodeLink,
    ProcessNode,
    ProcessEdge,
    ProcessRole,
    ProcessModel,
    NodePosition,
    ProcessLayout,
    ProcessVersion,
    ProcessMeta,
    utc_now,
    version_key,
)
from .operations import (
    OpKind,
    Operation,
    OutcomeStatus,
    OperationOutcome,
    ApplyResult,
)

__all__ = [
    # Graph
    "NodeType",
    "ProcessStatus",
    "NodeLink",
    "ProcessNode",
    "ProcessEdge",
    "ProcessRole",
    "ProcessModel",
    "NodePosition",
    "ProcessLayout",
    "ProcessVersion",
    "ProcessMeta",
    "utc_now",
    "version_key",
    # Operations
    "OpKind",
    "Operation",
    "OutcomeStatus",
    "OperationOutcome",
    "ApplyResult",
]
