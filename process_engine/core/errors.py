"""Exceptions raised by the process engine."""

from typing import Optional


class ProcessEngineError(Exception):
    """Base exception for process engine errors."""
    pass


class VersionNotFound(ProcessEngineError):
    """Process version does not exist in the store."""

    def __init__(self, process_id: str, version: int):
        self.process_id = process_id
        self.version = version
        super().__init__(f"Process version {process_id} v{version} not found")


class ProcessNotFound(ProcessEngineError):
    """Process header does not exist in the metadata store."""

    def __init__(self, process_id: str):
        self.process_id = process_id
        super().__init__(f"Process {process_id} not found")


class StorageError(ProcessEngineError):
    """The underlying store failed to read or write."""
    pass


class RevisionConflict(ProcessEngineError):
    """Stored revision moved past the revision the caller last saw."""

    def __init__(self, process_id: str, version: int, expected: Optional[int], actual: int):
        self.process_id = process_id
        self.version = version
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Process {process_id} v{version} is at revision {actual}, "
            f"expected {expected}; reload and resubmit"
        )


class GraphIntegrityError(ProcessEngineError):
    """A batch produced a graph that violates referential integrity."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(f"Graph integrity violated: {'; '.join(self.errors)}")


__all__ = [
    "ProcessEngineError",
    "VersionNotFound",
    "ProcessNotFound",
    "StorageError",
    "RevisionConflict",
    "GraphIntegrityError",
]
