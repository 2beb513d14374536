"""
Operation Interpreter - folds an operation batch over a working copy.

interpret() is a pure fold:

    reduce(ops, lambda acc, op: apply_operation(acc.state, op, remap), initial)

Each step returns a new GraphState and an OperationOutcome. Operations that
are malformed or reference stale IDs are reported as "skipped"; unknown
kinds as "ignored". Neither fails the batch.

The batch must already have passed through the ID Namespace Resolver; the
remap tables it produced are used to resolve client IDs.
"""

import logging
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Iterable, List, Optional, Tuple

from ..models.operations import Operation, OperationOutcome, OutcomeStatus
from ..models.process_graph import ProcessLayout, ProcessModel
from ..registry.operation_registry import (
    OperationRegistry,
    OperationSkipped,
    SchemaValidationError,
    get_operation_registry,
)
from ..registry.operations import register_all_operations
from .graph_state import GraphState
from .id_resolver import IdRemap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Interpretation:
    """Final working state plus one outcome per input operation."""
    state: GraphState
    outcomes: Tuple[OperationOutcome, ...] = field(default_factory=tuple)

    @property
    def model(self) -> ProcessModel:
        return self.state.model

    @property
    def layout(self) -> ProcessLayout:
        return self.state.layout


def apply_operation(
    state: GraphState,
    op: Operation,
    index: int,
    remap: IdRemap,
    registry: OperationRegistry,
) -> Tuple[GraphState, OperationOutcome]:
    """Apply one operation; never raises for bad payloads.

    Returns:
        (new state, outcome). On skip/ignore the input state is returned.
    """
    if not registry.exists(op.type):
        logger.debug(f"Op #{index}: ignoring unknown operation kind {op.type!r}")
        return state, OperationOutcome(
            index=index, type=op.type, status=OutcomeStatus.IGNORED,
            reason="Unknown operation kind",
        )

    try:
        result = registry.execute(state, op.type, op.payload, remap)
    except (OperationSkipped, SchemaValidationError) as e:
        logger.debug(f"Op #{index} {op.type} skipped: {e}")
        return state, OperationOutcome(
            index=index, type=op.type, status=OutcomeStatus.SKIPPED, reason=str(e),
        )

    return result.state, OperationOutcome(
        index=index, type=op.type, status=OutcomeStatus.APPLIED, target_id=result.target_id,
    )


class OperationInterpreter:
    """Applies resolved operation batches using the operation registry."""

    def __init__(self, registry: Optional[OperationRegistry] = None):
        if registry is None:
            register_all_operations()
            registry = get_operation_registry()
        self.registry = registry

    def interpret(
        self,
        model: ProcessModel,
        layout: ProcessLayout,
        operations: Iterable[Any],
        remap: Optional[IdRemap] = None,
    ) -> Interpretation:
        """Fold operations over a deep clone of (model, layout).

        Args:
            model: Persisted graph (not mutated)
            layout: Persisted layout (not mutated)
            operations: Resolved operations, in batch order
            remap: Remap tables from the ID Namespace Resolver

        Returns:
            Interpretation with the final state and per-operation outcomes
        """
        remap = remap or IdRemap()

        def step(acc: Interpretation, indexed: Tuple[int, Any]) -> Interpretation:
            index, raw = indexed
            state, outcome = apply_operation(
                acc.state, Operation.coerce(raw), index, remap, self.registry
            )
            return Interpretation(state=state, outcomes=acc.outcomes + (outcome,))

        initial = Interpretation(state=GraphState.clone_of(model, layout))
        return reduce(step, enumerate(operations), initial)


def summarize_outcomes(outcomes: Iterable[OperationOutcome]) -> List[str]:
    """Human-readable lines for non-applied outcomes."""
    return [
        f"#{o.index} {o.type or '<none>'}: {o.status.value} ({o.reason})"
        for o in outcomes
        if not o.applied
    ]


__all__ = [
    "Interpretation",
    "apply_operation",
    "OperationInterpreter",
    "summarize_outcomes",
]
