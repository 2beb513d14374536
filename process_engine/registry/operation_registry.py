"""
Operation Registry - Typed catalog of process graph operations.

Provides:
- Type-safe operation definitions with JSON schemas
- Version management and deprecation
- Discoverability via the process_operation_schema tool
- Required-parameter checks before a handler runs

Handlers take ``(state, payload, remap)`` and return an OperationResult
carrying the new GraphState. A handler that finds nothing to do (stale ID,
unresolvable endpoint, ...) raises OperationSkipped; the interpreter turns
that into a "skipped" outcome instead of failing the batch.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..core.graph_state import GraphState
from ..core.id_resolver import IdRemap

logger = logging.getLogger(__name__)

# Type aliases
JSONSchema = Dict[str, Any]


# ============================================================================
# Enums
# ============================================================================

class OperationCategory(Enum):
    """Operation categories."""
    STRUCTURE = "structure"   # Nodes and edges
    LAYOUT = "layout"         # Canvas positions
    METADATA = "metadata"     # ISO/custom fields, process header


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class OperationResult:
    """Result of an operation handler."""
    state: GraphState
    target_id: Optional[str] = None
    message: str = ""


@dataclass
class OperationMetadata:
    """Additional operation metadata."""
    replaces: List[str] = field(default_factory=list)  # Old operation names
    introduced: Optional[str] = None                   # Version introduced
    deprecated: Optional[str] = None                   # Version deprecated
    tags: List[str] = field(default_factory=list)      # Searchable tags


Handler = Callable[[GraphState, Dict[str, Any], IdRemap], OperationResult]


@dataclass
class OperationDescriptor:
    """Describes a graph operation for the registry."""
    name: str                          # Operation kind (e.g., "ADD_NODE")
    version: str                       # Semantic version (e.g., "1.0.0")
    category: OperationCategory
    description: str                   # Human-readable description
    input_schema: JSONSchema           # JSON Schema for the payload
    handler: Handler
    metadata: Optional[OperationMetadata] = None

    def __post_init__(self):
        """Initialize metadata if not provided."""
        if self.metadata is None:
            self.metadata = OperationMetadata()


# ============================================================================
# Exceptions
# ============================================================================

class OperationRegistryError(Exception):
    """Base exception for registry errors."""
    pass


class OperationNotFound(OperationRegistryError):
    """Operation not found in registry."""
    pass


class OperationAlreadyRegistered(OperationRegistryError):
    """Operation already registered."""
    pass


class InvalidOperationDescriptor(OperationRegistryError):
    """Invalid operation descriptor."""
    pass


class SchemaValidationError(OperationRegistryError):
    """Payload does not satisfy the operation schema."""
    pass


class OperationSkipped(OperationRegistryError):
    """Operation is well-formed enough to dispatch but has no effect."""
    pass


# ============================================================================
# Operation Registry
# ============================================================================

class OperationRegistry:
    """
    Central registry for graph operations.

    Provides a typed, discoverable catalog; the interpreter dispatches every
    operation of a batch through execute().
    """

    def __init__(self):
        """Initialize registry."""
        self._operations: Dict[str, OperationDescriptor] = {}
        self._category_index: Dict[OperationCategory, List[str]] = {}

        logger.debug("OperationRegistry initialized")

    # ========================================================================
    # Registration
    # ========================================================================

    def register(self, operation: OperationDescriptor) -> None:
        """
        Register a new operation.

        Args:
            operation: Operation descriptor to register

        Raises:
            OperationAlreadyRegistered: If operation name already exists
            InvalidOperationDescriptor: If descriptor validation fails
        """
        self._validate_descriptor(operation)

        if operation.name in self._operations:
            raise OperationAlreadyRegistered(
                f"Operation '{operation.name}' already registered"
            )

        self._operations[operation.name] = operation
        self._category_index.setdefault(operation.category, []).append(operation.name)

        logger.debug(
            f"Registered operation: {operation.name} "
            f"(category: {operation.category.value}, version: {operation.version})"
        )

    def register_all(self, operations: List[OperationDescriptor]) -> None:
        """Register multiple operations at once."""
        for operation in operations:
            self.register(operation)

    # ========================================================================
    # Retrieval
    # ========================================================================

    def get(self, name: str) -> OperationDescriptor:
        """
        Retrieve an operation by name.

        Raises:
            OperationNotFound: If operation doesn't exist
        """
        if name not in self._operations:
            raise OperationNotFound(f"Operation '{name}' not found")

        return self._operations[name]

    def list(
        self,
        category: Optional[OperationCategory] = None,
        include_deprecated: bool = False
    ) -> List[OperationDescriptor]:
        """List operations with optional filters."""
        if category:
            names = self._category_index.get(category, [])
            operations = [self._operations[name] for name in names]
        else:
            operations = list(self._operations.values())

        if not include_deprecated:
            operations = [
                op for op in operations
                if not op.metadata or not op.metadata.deprecated
            ]

        return operations

    def exists(self, name: str) -> bool:
        """Check if operation exists."""
        return name in self._operations

    # ========================================================================
    # Execution
    # ========================================================================

    def execute(
        self,
        state: GraphState,
        operation_name: str,
        payload: Dict[str, Any],
        remap: IdRemap,
    ) -> OperationResult:
        """
        Execute an operation against a working state.

        Args:
            state: Current working state (not mutated)
            operation_name: Operation kind
            payload: Operation payload
            remap: ID remap tables of the batch

        Returns:
            OperationResult with the new state

        Raises:
            OperationNotFound: If operation doesn't exist
            SchemaValidationError: If a required payload field is missing
            OperationSkipped: If the handler found nothing to do
        """
        operation = self.get(operation_name)

        if operation.input_schema:
            self._validate_params(payload, operation.input_schema, operation_name)

        return operation.handler(state, payload, remap)

    # ========================================================================
    # Schema Generation
    # ========================================================================

    def get_schema(self) -> JSONSchema:
        """Generate a JSON Schema describing one batch entry."""
        schemas = []
        for op_name, op in self._operations.items():
            schemas.append({
                "type": "object",
                "properties": {
                    "type": {"const": op_name},
                    "payload": op.input_schema
                },
                "required": ["type", "payload"]
            })

        return {
            "type": "object",
            "oneOf": schemas,
            "description": "Operations available for process_apply_ops"
        }

    def get_operation_docs(self, operation_name: str) -> Dict[str, Any]:
        """
        Get documentation for an operation.

        Raises:
            OperationNotFound: If operation doesn't exist
        """
        operation = self.get(operation_name)

        return {
            "name": operation.name,
            "version": operation.version,
            "category": operation.category.value,
            "description": operation.description,
            "input_schema": operation.input_schema,
            "metadata": {
                "introduced": operation.metadata.introduced if operation.metadata else None,
                "deprecated": operation.metadata.deprecated if operation.metadata else None,
                "tags": operation.metadata.tags if operation.metadata else [],
            }
        }

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _validate_descriptor(self, operation: OperationDescriptor) -> None:
        """
        Validate operation descriptor.

        Raises:
            InvalidOperationDescriptor: If validation fails
        """
        if not operation.name:
            raise InvalidOperationDescriptor("Operation name is required")

        if not operation.version:
            raise InvalidOperationDescriptor("Operation version is required")

        if not operation.description:
            raise InvalidOperationDescriptor("Operation description is required")

        if not operation.handler:
            raise InvalidOperationDescriptor("Operation handler is required")

        version_parts = operation.version.split('.')
        if len(version_parts) != 3:
            raise InvalidOperationDescriptor(
                f"Invalid version format: {operation.version} (expected: X.Y.Z)"
            )

    def _validate_params(
        self,
        params: Dict[str, Any],
        schema: JSONSchema,
        operation_name: str
    ) -> None:
        """
        Check required payload fields are present and not null.

        Raises:
            SchemaValidationError: If validation fails
        """
        for field_name in schema.get("required", []):
            if params.get(field_name) is None:
                raise SchemaValidationError(
                    f"Missing required parameter '{field_name}' for operation '{operation_name}'"
                )


# ============================================================================
# Singleton
# ============================================================================

_registry_instance: Optional[OperationRegistry] = None


def get_operation_registry() -> OperationRegistry:
    """Get singleton instance of operation registry."""
    global _registry_instance

    if _registry_instance is None:
        _registry_instance = OperationRegistry()

    return _registry_instance


def reset_operation_registry() -> None:
    """Reset singleton (for testing)."""
    global _registry_instance
    _registry_instance = None
