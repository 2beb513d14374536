"""
Operation Registry for the process engine.

Provides typed, discoverable catalog of process graph operations.
"""

from .operation_registry import (
    OperationRegistry,
    OperationDescriptor,
    OperationCategory,
    OperationResult,
    OperationMetadata,
    # Exceptions
    OperationNotFound,
    OperationRegistryError,
    OperationSkipped,
    SchemaValidationError,
    # Singleton
    get_operation_registry,
    reset_operation_registry,
)

__all__ = [
    'OperationRegistry',
    'OperationDescriptor',
    'OperationCategory',
    'OperationResult',
    'OperationMetadata',
    # Exceptions
    'OperationNotFound',
    'OperationRegistryError',
    'OperationSkipped',
    'SchemaValidationError',
    # Singleton
    'get_operation_registry',
    'reset_operation_registry',
]
