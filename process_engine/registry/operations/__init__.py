"""
Operation registrations for the process engine.

Registers structural, layout and metadata operations with the registry.
Registration is idempotent.
"""

from .graph_operations import register_graph_operations
from .layout_operations import register_layout_operations
from .metadata_operations import register_metadata_operations


def register_all_operations():
    """Register all operations."""
    register_graph_operations()
    register_layout_operations()
    register_metadata_operations()


__all__ = [
    'register_all_operations',
    'register_graph_operations',
    'register_layout_operations',
    'register_metadata_operations',
]
