"""Version Store Module - persistence for process versions and headers.

Two stores back the engine:
- VersionStore: one ProcessVersion document per (process_id, version),
  with compare-and-swap on ``revision`` so two editors racing on the same
  version cannot both commit.
- ProcessMetaStore: process header records (title, status, ...).

Implementations:
    InMemoryVersionStore   - dict-backed, for tests and the stdio server
    JsonFileVersionStore   - {root}/{process_id}/v{version}.json, sorted keys
    InMemoryProcessMetaStore

All stores hand out deep copies; callers never hold a reference into the
store's own state.

Usage:
    store = InMemoryVersionStore()
    store.create(ProcessVersion(id="ver-p1-1", process_id="p1"))

    current = store.get("p1", 1)
    updated = current.model_copy(update={"revision": current.revision + 1})
    store.put(updated, expected_revision=current.revision)
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..models.process_graph import ProcessMeta, ProcessVersion, utc_now, version_key
from .errors import ProcessNotFound, RevisionConflict, StorageError, VersionNotFound

logger = logging.getLogger(__name__)


class VersionStore(ABC):
    """Abstract storage for process versions.

    ``put`` is the engine's single conditional write: when
    ``expected_revision`` is given, the write only succeeds if the stored
    document is still at that revision.
    """

    @abstractmethod
    def get(self, process_id: str, version: int) -> ProcessVersion:
        """Return a copy of the stored version.

        Raises:
            VersionNotFound: If no such version exists
        """
        pass

    @abstractmethod
    def put(self, version: ProcessVersion, expected_revision: Optional[int] = None) -> ProcessVersion:
        """Overwrite an existing version.

        Args:
            version: Document to store
            expected_revision: Revision the stored document must still have

        Raises:
            VersionNotFound: If the version was never created
            RevisionConflict: If the stored revision differs from expected_revision
            StorageError: If the backend fails to write
        """
        pass

    @abstractmethod
    def create(self, version: ProcessVersion) -> ProcessVersion:
        """Store a new version.

        Raises:
            StorageError: If the version already exists
        """
        pass

    @abstractmethod
    def exists(self, process_id: str, version: int) -> bool:
        pass

    @abstractmethod
    def list_versions(self, process_id: str) -> List[int]:
        """Version numbers stored for a process, ascending."""
        pass

    @staticmethod
    def _check_revision(current: ProcessVersion, expected_revision: Optional[int]) -> None:
        if expected_revision is not None and current.revision != expected_revision:
            raise RevisionConflict(
                current.process_id, current.version, expected_revision, current.revision
            )


class InMemoryVersionStore(VersionStore):
    """Thread-safe in-memory version store."""

    def __init__(self):
        self._versions: Dict[str, ProcessVersion] = {}
        self._lock = threading.RLock()

    def get(self, process_id: str, version: int) -> ProcessVersion:
        with self._lock:
            stored = self._versions.get(version_key(process_id, version))
            if stored is None:
                raise VersionNotFound(process_id, version)
            return stored.model_copy(deep=True)

    def put(self, version: ProcessVersion, expected_revision: Optional[int] = None) -> ProcessVersion:
        key = version_key(version.process_id, version.version)
        with self._lock:
            current = self._versions.get(key)
            if current is None:
                raise VersionNotFound(version.process_id, version.version)
            self._check_revision(current, expected_revision)

            self._versions[key] = version.model_copy(deep=True)
            logger.debug(f"Stored {key} at revision {version.revision}")
            return version.model_copy(deep=True)

    def create(self, version: ProcessVersion) -> ProcessVersion:
        key = version_key(version.process_id, version.version)
        with self._lock:
            if key in self._versions:
                raise StorageError(f"Process version {key} already exists. Use put() instead.")
            self._versions[key] = version.model_copy(deep=True)
            logger.debug(f"Created {key}")
            return version.model_copy(deep=True)

    def exists(self, process_id: str, version: int) -> bool:
        with self._lock:
            return version_key(process_id, version) in self._versions

    def list_versions(self, process_id: str) -> List[int]:
        with self._lock:
            return sorted(v.version for v in self._versions.values() if v.process_id == process_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._versions)


class JsonFileVersionStore(VersionStore):
    """Version store keeping one JSON document per version on disk.

    Layout: ``{root}/{process_id}/v{version}.json``. Documents are written
    with sorted keys and indentation for readable diffs, via a temporary
    file and an atomic rename.

    The revision check and the write happen under one lock, which makes
    the compare-and-swap safe within a process. Multiple processes writing
    the same directory are not coordinated.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, process_id: str, version: int) -> Path:
        return self.root / process_id / f"v{version}.json"

    def _read(self, process_id: str, version: int) -> ProcessVersion:
        path = self._path(process_id, version)
        if not path.exists():
            raise VersionNotFound(process_id, version)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return ProcessVersion.from_document(json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def _write(self, version: ProcessVersion) -> Path:
        path = self._path(version.process_id, version.version)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(version.to_document(), f, indent=2, sort_keys=True)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        return path

    def get(self, process_id: str, version: int) -> ProcessVersion:
        with self._lock:
            return self._read(process_id, version)

    def put(self, version: ProcessVersion, expected_revision: Optional[int] = None) -> ProcessVersion:
        with self._lock:
            current = self._read(version.process_id, version.version)
            self._check_revision(current, expected_revision)
            path = self._write(version)
            logger.debug(f"Saved {version.process_id} v{version.version} r{version.revision} to {path}")
            return version.model_copy(deep=True)

    def create(self, version: ProcessVersion) -> ProcessVersion:
        with self._lock:
            if self.exists(version.process_id, version.version):
                raise StorageError(
                    f"Process version {version_key(version.process_id, version.version)} already exists"
                )
            path = self._write(version)
            logger.info(f"Created process version file {path}")
            return version.model_copy(deep=True)

    def exists(self, process_id: str, version: int) -> bool:
        return self._path(process_id, version).exists()

    def list_versions(self, process_id: str) -> List[int]:
        directory = self.root / process_id
        if not directory.is_dir():
            return []
        versions = []
        for path in directory.glob("v*.json"):
            try:
                versions.append(int(path.stem[1:]))
            except ValueError:
                logger.warning(f"Ignoring unexpected file {path}")
        return sorted(versions)


class ProcessMetaStore(ABC):
    """Abstract storage for process header records."""

    @abstractmethod
    def get(self, process_id: str) -> ProcessMeta:
        """Raises ProcessNotFound if absent."""
        pass

    @abstractmethod
    def create(self, meta: ProcessMeta) -> ProcessMeta:
        pass

    @abstractmethod
    def update(self, process_id: str, patch: Dict[str, Any]) -> ProcessMeta:
        """Apply a field patch and bump ``updated_at``."""
        pass


class InMemoryProcessMetaStore(ProcessMetaStore):
    """Thread-safe in-memory process header store."""

    def __init__(self):
        self._records: Dict[str, ProcessMeta] = {}
        self._lock = threading.RLock()

    def get(self, process_id: str) -> ProcessMeta:
        with self._lock:
            meta = self._records.get(process_id)
            if meta is None:
                raise ProcessNotFound(process_id)
            return meta.model_copy(deep=True)

    def create(self, meta: ProcessMeta) -> ProcessMeta:
        with self._lock:
            if meta.id in self._records:
                raise StorageError(f"Process {meta.id} already exists")
            self._records[meta.id] = meta.model_copy(deep=True)
            return meta.model_copy(deep=True)

    def update(self, process_id: str, patch: Dict[str, Any]) -> ProcessMeta:
        with self._lock:
            current = self.get(process_id)
            data = current.model_dump()
            data.update(patch)
            data["updated_at"] = utc_now()
            try:
                updated = ProcessMeta.model_validate(data)
            except ValidationError as e:
                raise StorageError(f"Invalid process header update for {process_id}: {e}") from e
            self._records[process_id] = updated
            return updated.model_copy(deep=True)

    def list_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._records)


__all__ = [
    "VersionStore",
    "InMemoryVersionStore",
    "JsonFileVersionStore",
    "ProcessMetaStore",
    "InMemoryProcessMetaStore",
]
