"""Operation batch schemas and per-operation outcomes.

An operation is ``{"type": <kind>, "payload": {...}}``. ``type`` is kept as
a plain string on input so that unknown kinds can be reported as ignored
rather than rejecting the whole batch.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OpKind(str, Enum):
    """Operation kinds understood by the interpreter."""
    ADD_NODE = "ADD_NODE"
    UPDATE_NODE = "UPDATE_NODE"
    REMOVE_NODE = "REMOVE_NODE"
    ADD_EDGE = "ADD_EDGE"
    UPDATE_EDGE = "UPDATE_EDGE"
    REMOVE_EDGE = "REMOVE_EDGE"
    UPDATE_LAYOUT = "UPDATE_LAYOUT"
    SET_ISO_FIELD = "SET_ISO_FIELD"
    SET_CUSTOM_FIELD = "SET_CUSTOM_FIELD"
    REORDER_NODES = "REORDER_NODES"
    UPDATE_PROCESS_META = "UPDATE_PROCESS_META"


class Operation(BaseModel):
    """One typed edit in a batch."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., description="Operation kind, see OpKind")
    payload: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def coerce(cls, op: Any) -> "Operation":
        """Accept an Operation or a raw ``{"type", "payload"}`` mapping.

        Anything malformed degrades to an operation of unknown kind or an
        empty payload, so one bad entry never rejects the batch.
        """
        if isinstance(op, Operation):
            return op
        if not isinstance(op, Mapping):
            return cls(type="")
        payload = op.get("payload")
        return cls(
            type=str(op.get("type") or ""),
            payload=dict(payload) if isinstance(payload, Mapping) else {},
        )


class OutcomeStatus(str, Enum):
    """What happened to a single operation."""
    APPLIED = "applied"
    SKIPPED = "skipped"   # Recognized but had no effect (stale or malformed)
    IGNORED = "ignored"   # Unknown operation kind


@dataclass
class OperationOutcome:
    """Result of interpreting one operation of a batch."""
    index: int
    type: str
    status: OutcomeStatus
    reason: Optional[str] = None
    target_id: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.status == OutcomeStatus.APPLIED

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "index": self.index,
            "type": self.type,
            "status": self.status.value,
        }
        if self.reason:
            result["reason"] = self.reason
        if self.target_id:
            result["target_id"] = self.target_id
        return result


@dataclass
class ApplyResult:
    """Result of one committed batch."""
    success: bool
    revision: int
    outcomes: List[OperationOutcome] = field(default_factory=list)
    node_ids: Dict[str, str] = field(default_factory=dict)
    edge_ids: Dict[str, str] = field(default_factory=dict)

    @property
    def applied_count(self) -> int:
        return sum(1 for o in self.outcomes if o.applied)

    @property
    def skipped(self) -> List[OperationOutcome]:
        return [o for o in self.outcomes if not o.applied]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "revision": self.revision,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "node_ids": dict(self.node_ids),
            "edge_ids": dict(self.edge_ids),
        }


__all__ = [
    "OpKind",
    "Operation",
    "OutcomeStatus",
    "OperationOutcome",
    "ApplyResult",
]
