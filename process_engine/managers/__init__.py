"""
Manager components for the process engine.
"""

from .revision_controller import RevisionController

__all__ = [
    'RevisionController',
]
