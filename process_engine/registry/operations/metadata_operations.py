"""
Metadata operation registrations.

ISO and custom fields are free-form key/value metadata stored in the graph
document. Process header changes (title, status, description) are not part
of the graph: they accumulate in the working state's meta_patch and are
written to the process metadata store by the revision controller.
"""

from collections.abc import Mapping
from typing import Any, Dict

from pydantic import ValidationError

from ...core.graph_state import GraphState
from ...core.id_resolver import IdRemap
from ...models.operations import OpKind
from ...models.process_graph import ProcessMeta, ProcessStatus
from ..operation_registry import (
    OperationCategory,
    OperationDescriptor,
    OperationMetadata,
    OperationResult,
    OperationSkipped,
    get_operation_registry,
)

PROCESS_META_FIELDS = ("title", "status", "description")


def _field_name(payload: Dict[str, Any]) -> str:
    name = payload["field"]
    if not isinstance(name, str) or not name.strip():
        raise OperationSkipped("Payload 'field' must be a non-empty string")
    return name


def set_iso_field_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    name = _field_name(payload)
    fields = {**state.model.isoFields, name: payload.get("value")}
    return OperationResult(state=state.with_model(isoFields=fields), target_id=name)


def set_custom_field_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    name = _field_name(payload)
    fields = {**state.model.customFields, name: payload.get("value")}
    return OperationResult(state=state.with_model(customFields=fields), target_id=name)


def update_process_meta_handler(state: GraphState, payload: Dict[str, Any], remap: IdRemap) -> OperationResult:
    source = payload.get("patch") if isinstance(payload.get("patch"), Mapping) else payload
    patch = {k: source[k] for k in PROCESS_META_FIELDS if source.get(k) is not None}
    if not patch:
        raise OperationSkipped(f"Payload has none of {', '.join(PROCESS_META_FIELDS)}")

    try:
        header = ProcessMeta.model_validate({"id": "patch", **patch})
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise OperationSkipped(f"Invalid process header fields: {fields or 'unknown'}") from e

    validated = header.model_dump(mode="json", include=set(patch))
    return OperationResult(state=state.with_meta(validated))


SET_ISO_FIELD = OperationDescriptor(
    name=OpKind.SET_ISO_FIELD.value,
    version="1.0.0",
    category=OperationCategory.METADATA,
    description="Set an ISO 9001 field (inputs, outputs, risks, evidence, ...)",
    input_schema={
        "type": "object",
        "properties": {"field": {"type": "string"}, "value": {}},
        "required": ["field"],
    },
    handler=set_iso_field_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["iso", "metadata"]),
)

SET_CUSTOM_FIELD = OperationDescriptor(
    name=OpKind.SET_CUSTOM_FIELD.value,
    version="1.0.0",
    category=OperationCategory.METADATA,
    description="Set a tenant-defined custom field on the process model",
    input_schema={
        "type": "object",
        "properties": {"field": {"type": "string"}, "value": {}},
        "required": ["field"],
    },
    handler=set_custom_field_handler,
    metadata=OperationMetadata(introduced="1.1.0", tags=["custom", "metadata"]),
)

UPDATE_PROCESS_META = OperationDescriptor(
    name=OpKind.UPDATE_PROCESS_META.value,
    version="1.0.0",
    category=OperationCategory.METADATA,
    description="Update the process header (title, status, description)",
    input_schema={
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "status": {"type": "string", "enum": [s.value for s in ProcessStatus]},
            "description": {"type": "string"},
        },
    },
    handler=update_process_meta_handler,
    metadata=OperationMetadata(introduced="1.0.0", tags=["process", "metadata"]),
)

METADATA_OPERATIONS = [SET_ISO_FIELD, SET_CUSTOM_FIELD, UPDATE_PROCESS_META]


def register_metadata_operations():
    """Register metadata operations with the registry."""
    registry = get_operation_registry()

    for operation in METADATA_OPERATIONS:
        if not registry.exists(operation.name):
            registry.register(operation)
