"""
RevisionController - applies operation batches to persisted process versions.

One call to apply_ops() is one revision:

    load version -> check expected revision -> resolve IDs -> fold batch
    -> check integrity -> look up process header -> put(revision + 1,
    expected_revision=stored) -> apply process header patch

Nothing is written unless the whole batch has been folded, the result
passes the integrity check and any header being patched exists. The write
is conditional on the stored revision, so a concurrent commit between load
and write surfaces as RevisionConflict instead of being silently
overwritten.
"""

import logging
from typing import Any, Iterable, Optional, Tuple

from ..config.settings import INITIAL_START_POSITION, is_enabled
from ..core.errors import GraphIntegrityError, RevisionConflict
from ..core.id_resolver import IdNamespaceResolver, IdSource, RandomIdSource
from ..core.interpreter import OperationInterpreter, summarize_outcomes
from ..core.validation import integrity_errors
from ..core.version_store import ProcessMetaStore, VersionStore
from ..models.operations import ApplyResult
from ..models.process_graph import (
    NodePosition,
    NodeType,
    ProcessLayout,
    ProcessMeta,
    ProcessModel,
    ProcessNode,
    ProcessStatus,
    ProcessVersion,
    utc_now,
)

logger = logging.getLogger(__name__)


class RevisionController:
    """
    Commits operation batches against a version store.

    Usage:
        controller = RevisionController(InMemoryVersionStore(), InMemoryProcessMetaStore())
        meta, version = controller.create_process("tenant-1", "Onboarding", owner_user_id="u1")

        result = controller.apply_ops(
            meta.id, 1,
            [{"type": "ADD_NODE", "payload": {"node": {"id": "n1", "title": "Step A"}}}],
            expected_revision=version.revision,
            actor_id="u1",
        )
        result.revision  # 1
    """

    def __init__(
        self,
        version_store: VersionStore,
        meta_store: Optional[ProcessMetaStore] = None,
        id_source: Optional[IdSource] = None,
        interpreter: Optional[OperationInterpreter] = None,
        enforce_revision: Optional[bool] = None,
    ):
        """
        Args:
            version_store: Store holding ProcessVersion documents
            meta_store: Store holding process headers (optional; without it
                UPDATE_PROCESS_META changes are dropped with a warning)
            id_source: Suffix source for synthesized IDs
            interpreter: Operation interpreter (default registry if None)
            enforce_revision: Override the enforce_expected_revision flag
        """
        self.version_store = version_store
        self.meta_store = meta_store
        self.id_source = id_source or RandomIdSource()
        self.resolver = IdNamespaceResolver(self.id_source)
        self.interpreter = interpreter or OperationInterpreter()
        self._enforce_revision = enforce_revision

    @property
    def enforce_revision(self) -> bool:
        if self._enforce_revision is not None:
            return self._enforce_revision
        return is_enabled('enforce_expected_revision')

    # ========================================================================
    # Public API
    # ========================================================================

    def apply_ops(
        self,
        process_id: str,
        version: int,
        ops: Optional[Iterable[Any]],
        expected_revision: Optional[int] = None,
        actor_id: Optional[str] = None,
    ) -> ApplyResult:
        """
        Apply an operation batch as one new revision.

        Args:
            process_id: Process identifier
            version: Major version number
            ops: Operations in application order
            expected_revision: Revision the caller last read (None skips the check)
            actor_id: User recorded as updated_by

        Returns:
            ApplyResult with the new revision, per-operation outcomes and
            the client-to-final ID remap tables

        Raises:
            VersionNotFound: If the version does not exist
            RevisionConflict: If the stored revision moved past expected_revision
            GraphIntegrityError: If the folded graph violates integrity
            ProcessNotFound: If the batch updates the header of an unknown process
            StorageError: If the store fails to write
        """
        current = self.version_store.get(process_id, version)

        if (
            self.enforce_revision
            and expected_revision is not None
            and expected_revision != current.revision
        ):
            logger.warning(
                f"Rejected batch for {process_id} v{version}: expected revision "
                f"{expected_revision}, stored {current.revision}"
            )
            raise RevisionConflict(process_id, version, expected_revision, current.revision)

        resolved, remap = self.resolver.resolve(current.model, list(ops or []))
        interpretation = self.interpreter.interpret(
            current.model, current.layout, resolved, remap
        )

        errors = integrity_errors(interpretation.model, interpretation.layout)
        if errors:
            raise GraphIntegrityError(errors)

        meta_patch = interpretation.state.meta_patch
        if meta_patch and self.meta_store is not None:
            self.meta_store.get(process_id)

        next_revision = current.revision + 1
        updated = current.model_copy(update={
            "model": interpretation.model,
            "layout": interpretation.layout,
            "revision": next_revision,
            "updated_by": actor_id,
            "updated_at": utc_now(),
        })
        self.version_store.put(updated, expected_revision=current.revision)

        if meta_patch:
            self._apply_meta_patch(process_id, meta_patch)

        result = ApplyResult(
            success=True,
            revision=next_revision,
            outcomes=list(interpretation.outcomes),
            node_ids=dict(remap.node_ids),
            edge_ids=dict(remap.edge_ids),
        )

        logger.info(
            f"Committed {process_id} v{version} revision {current.revision} -> "
            f"{next_revision} ({result.applied_count}/{len(result.outcomes)} operations applied)"
        )
        for line in summarize_outcomes(result.outcomes):
            logger.debug(f"{process_id} v{version}: {line}")

        return result

    def create_process(
        self,
        tenant_id: Optional[str],
        title: str,
        owner_user_id: Optional[str] = None,
        description: str = "",
        responsible_department_id: Optional[str] = None,
        regulatory_framework: Optional[str] = None,
    ) -> Tuple[ProcessMeta, ProcessVersion]:
        """
        Create a process header and its first version.

        Version 1 starts at revision 0 with a single start node.

        Returns:
            (process header, version 1)
        """
        process_id = f"proc-{self.id_source.next_suffix()}"
        now = utc_now()

        meta = ProcessMeta(
            id=process_id,
            tenant_id=tenant_id,
            title=title,
            description=description,
            status=ProcessStatus.DRAFT,
            owner_user_id=owner_user_id,
            responsible_department_id=responsible_department_id,
            regulatory_framework=regulatory_framework,
            current_version=1,
            created_at=now,
            updated_at=now,
        )

        start_x, start_y = INITIAL_START_POSITION
        version = ProcessVersion(
            id=f"ver-{process_id}-1",
            process_id=process_id,
            version=1,
            revision=0,
            model=ProcessModel(nodes=[ProcessNode(id="start", type=NodeType.START, title="Start")]),
            layout=ProcessLayout(positions={"start": NodePosition(x=start_x, y=start_y)}),
            created_by=owner_user_id,
            created_at=now,
        )

        if self.meta_store is not None:
            meta = self.meta_store.create(meta)
        version = self.version_store.create(version)

        logger.info(f"Created process {process_id} ({title!r}) for tenant {tenant_id}")
        return meta, version

    def get_version(self, process_id: str, version: Optional[int] = None) -> ProcessVersion:
        """Load a version; defaults to the process's current version."""
        if version is None:
            version = self.meta_store.get(process_id).current_version if self.meta_store else 1
        return self.version_store.get(process_id, version)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _apply_meta_patch(self, process_id: str, patch: dict) -> None:
        if self.meta_store is None:
            logger.warning(f"No process metadata store; dropped header patch for {process_id}")
            return
        self.meta_store.update(process_id, patch)
        logger.debug(f"Updated process header {process_id}: {', '.join(sorted(patch))}")


__all__ = ['RevisionController']
