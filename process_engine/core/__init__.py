"""
Core Layer - graph state, ID resolution, validation and storage.

Modules:
- graph_state: immutable working copy folded over a batch
- id_resolver: assigns final IDs to nodes/edges a batch creates
- layout_placer: auto-placement of nodes without a layout entry
- validation: integrity checks and advisory validation report
- version_store: version and process header stores
- maturity: process maturity scoring

The operation interpreter lives in core.interpreter and is imported
directly; it depends on the registry, which depends on this layer.
"""

from .errors import (
    ProcessEngineError,
    VersionNotFound,
    ProcessNotFound,
    StorageError,
    RevisionConflict,
    GraphIntegrityError,
)
from .graph_state import GraphState, pick_live
from .id_resolver import (
    IdSource,
    RandomIdSource,
    SequentialIdSource,
    IdRemap,
    IdNamespaceResolver,
    is_invalid_id,
    resolve_batch_ids,
)
from .layout_placer import next_position, place_node
from .validation import integrity_errors, validate_process_graph, graph_metrics
from .version_store import (
    VersionStore,
    InMemoryVersionStore,
    JsonFileVersionStore,
    ProcessMetaStore,
    InMemoryProcessMetaStore,
)
from .maturity import calculate_process_maturity

__all__ = [
    # Errors
    'ProcessEngineError',
    'VersionNotFound',
    'ProcessNotFound',
    'StorageError',
    'RevisionConflict',
    'GraphIntegrityError',
    # State
    'GraphState',
    'pick_live',
    # IDs
    'IdSource',
    'RandomIdSource',
    'SequentialIdSource',
    'IdRemap',
    'IdNamespaceResolver',
    'is_invalid_id',
    'resolve_batch_ids',
    # Layout
    'next_position',
    'place_node',
    # Validation
    'integrity_errors',
    'validate_process_graph',
    'graph_metrics',
    # Storage
    'VersionStore',
    'InMemoryVersionStore',
    'JsonFileVersionStore',
    'ProcessMetaStore',
    'InMemoryProcessMetaStore',
    # Maturity
    'calculate_process_maturity',
]
