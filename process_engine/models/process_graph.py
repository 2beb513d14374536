"""Process graph schemas: nodes, edges, layout and versioned documents.

This module provides the Pydantic schemas for a business-process graph and
the versioned document it lives in:
- Nodes (start, step, decision, end, subprocess) with operational content
- Directed edges between nodes (``source``/``target`` naming)
- Layout positions keyed by node ID, kept separate from topology
- ProcessVersion, the unit of persistence (model + layout + revision)

Field naming follows the stored JSON documents (camelCase inside the graph),
so a stored ``model_json`` round-trips through these models without loss.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


def utc_now() -> str:
    """ISO 8601 timestamp in UTC."""
    return datetime.now(timezone.utc).isoformat()


class NodeType(str, Enum):
    """Closed set of process step kinds."""
    START = "start"
    STEP = "step"
    DECISION = "decision"
    END = "end"
    SUBPROCESS = "subprocess"


class ProcessStatus(str, Enum):
    """Publication status of a process."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class NodeLink(BaseModel):
    """External reference attached to a step."""

    title: str = ""
    url: str = ""


class ProcessNode(BaseModel):
    """One step in the process.

    Catalog references (resources, data categories, subject groups, ...) are
    opaque foreign keys; the engine never dereferences them. Keys the engine
    does not know about are preserved so clients can round-trip their own
    fields.
    """

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    id: str = Field(..., description="Node ID, unique among nodes")
    type: NodeType = Field(default=NodeType.STEP, description="Step kind")
    title: str = Field(default="", description="Display title")
    roleId: Optional[str] = Field(default=None, description="Responsible role")
    description: Optional[str] = None
    checklist: List[str] = Field(default_factory=list)
    tips: Optional[str] = None
    errors: Optional[str] = None
    targetProcessId: Optional[str] = Field(
        default=None, description="Linked process (end/subprocess only)"
    )
    resourceIds: List[str] = Field(default_factory=list)
    featureIds: List[str] = Field(default_factory=list)
    dataCategoryIds: List[str] = Field(default_factory=list)
    subjectGroupIds: List[str] = Field(default_factory=list)
    predecessorIds: List[str] = Field(default_factory=list)
    successorIds: List[str] = Field(default_factory=list)
    links: List[NodeLink] = Field(default_factory=list)
    customFields: Dict[str, str] = Field(default_factory=dict)


class ProcessEdge(BaseModel):
    """Directed transition between two nodes."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Edge ID, unique among edges")
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")
    label: Optional[str] = None
    condition: Optional[str] = None


class ProcessRole(BaseModel):
    """Role that can be made responsible for a step."""

    id: str
    name: str = ""


class ProcessModel(BaseModel):
    """The process graph: nodes, edges and free-form process metadata.

    Invariant: every edge's ``source``/``target`` names a node in ``nodes``.
    Node IDs and edge IDs are unique within their own namespace.
    """

    model_config = ConfigDict(extra="allow")

    nodes: List[ProcessNode] = Field(default_factory=list)
    edges: List[ProcessEdge] = Field(default_factory=list)
    roles: List[ProcessRole] = Field(default_factory=list)
    isoFields: Dict[str, Any] = Field(default_factory=dict)
    customFields: Dict[str, Any] = Field(default_factory=dict)

    def node_ids(self) -> Set[str]:
        """IDs of all nodes."""
        return {node.id for node in self.nodes}

    def edge_ids(self) -> Set[str]:
        """IDs of all edges."""
        return {edge.id for edge in self.edges}

    def get_node(self, node_id: str) -> Optional[ProcessNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[ProcessEdge]:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def dangling_edges(self) -> List[ProcessEdge]:
        """Edges whose source or target does not name a live node."""
        live = self.node_ids()
        return [e for e in self.edges if e.source not in live or e.target not in live]


class NodePosition(BaseModel):
    """Canvas position of a node (top-left origin)."""

    x: float = Field(..., description="Horizontal coordinate")
    y: float = Field(..., description="Vertical coordinate")


class ProcessLayout(BaseModel):
    """On-canvas layout, stored separately from topology.

    Attributes:
        positions: Node ID -> position. Keys must name live nodes.
        swimlanes: Ordered swimlane labels (presentation only)
        collapsed: IDs of nodes rendered collapsed
    """

    model_config = ConfigDict(extra="allow")

    positions: Dict[str, NodePosition] = Field(default_factory=dict)
    swimlanes: List[str] = Field(default_factory=list)
    collapsed: List[str] = Field(default_factory=list)


class ProcessVersion(BaseModel):
    """A persisted process version.

    ``version`` identifies a major release line and is never changed by the
    mutation engine. ``revision`` increases by exactly one per applied batch.

    Stored documents use ``process_id``, ``model_json`` and ``layout_json``
    as keys; both the aliases and the field names are accepted on input.
    """

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    id: str = Field(..., description="Version document ID")
    process_id: str = Field(..., description="Owning process")
    version: int = Field(default=1, ge=1, description="Major version number")
    revision: int = Field(default=0, ge=0, description="Mutation generation")
    model: ProcessModel = Field(default_factory=ProcessModel, alias="model_json")
    layout: ProcessLayout = Field(default_factory=ProcessLayout, alias="layout_json")
    created_by: Optional[str] = Field(default=None, alias="created_by_user_id")
    created_at: str = Field(default_factory=utc_now)
    updated_by: Optional[str] = None
    updated_at: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored JSON document shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "ProcessVersion":
        """Parse a stored JSON document."""
        return cls.model_validate(data)


class ProcessMeta(BaseModel):
    """Process header record, independent of the graph documents."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    tenant_id: Optional[str] = None
    title: str = ""
    description: str = ""
    status: ProcessStatus = ProcessStatus.DRAFT
    owner_user_id: Optional[str] = None
    responsible_department_id: Optional[str] = None
    regulatory_framework: Optional[str] = None
    current_version: int = 1
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


def version_key(process_id: str, version: int) -> str:
    """Storage key of a process version."""
    return f"{process_id}@{version}"


__all__ = [
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
]
