"""Process tools - MCP wrappers around the revision controller.

Provides:
- process_create: new process header plus version 1 (revision 0)
- process_get: header and stored version document
- process_apply_ops: commit an operation batch as one revision
- process_validate: advisory graph validation report
- process_maturity: maturity score and level
- process_operation_schema: operation catalogue for process_apply_ops
"""

import logging
from typing import Any, Dict, List, Optional

from mcp import Tool

from ..core.errors import ProcessEngineError, ProcessNotFound, RevisionConflict
from ..core.maturity import calculate_process_maturity
from ..core.validation import graph_metrics, validate_process_graph
from ..core.version_store import ProcessMetaStore, VersionStore
from ..managers.revision_controller import RevisionController
from ..registry.operation_registry import OperationRegistryError
from ..utils.response import (
    error_response,
    exception_to_error_code,
    success_response,
    validation_response,
)

logger = logging.getLogger(__name__)


class ProcessTools:
    """Process lifecycle and mutation tools."""

    def __init__(
        self,
        version_store: VersionStore,
        meta_store: ProcessMetaStore,
        controller: Optional[RevisionController] = None,
    ):
        """Initialize with the backing stores.

        Args:
            version_store: Store holding ProcessVersion documents
            meta_store: Store holding process headers
            controller: Revision controller (built from the stores if None)
        """
        self.version_store = version_store
        self.meta_store = meta_store
        self.controller = controller or RevisionController(version_store, meta_store)
        self.registry = self.controller.interpreter.registry

    def get_tools(self) -> List[Tool]:
        """Return process tools."""
        version_selector = {
            "process_id": {"type": "string", "description": "Process ID (proc-...)"},
            "version": {
                "type": "integer",
                "description": "Major version (defaults to the current version)",
                "minimum": 1
            }
        }

        return [
            Tool(
                name="process_create",
                description="Create a process with version 1 holding a single start node",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "tenant_id": {"type": "string", "description": "Owning tenant"},
                        "title": {"type": "string", "description": "Process title"},
                        "owner_user_id": {"type": "string", "description": "Process owner"},
                        "description": {"type": "string", "description": "Optional description"},
                        "responsible_department_id": {
                            "type": "string",
                            "description": "Department accountable for the process"
                        },
                        "regulatory_framework": {
                            "type": "string",
                            "description": "Governing standard, e.g. ISO 9001"
                        }
                    },
                    "required": ["title"]
                }
            ),
            Tool(
                name="process_get",
                description="Get a process header and its stored version (model_json, layout_json, revision)",
                inputSchema={
                    "type": "object",
                    "properties": version_selector,
                    "required": ["process_id"]
                }
            ),
            Tool(
                name="process_apply_ops",
                description=(
                    "Apply a batch of graph operations as one new revision. "
                    "IDs of added nodes/edges may be rewritten; see node_ids/edge_ids in the result. "
                    "Malformed or stale operations are reported as skipped, not failed."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        **version_selector,
                        "ops": {
                            "type": "array",
                            "description": "Operations in application order (see process_operation_schema)",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "type": {"type": "string", "description": "Operation kind, e.g. ADD_NODE"},
                                    "payload": {"type": "object"}
                                },
                                "required": ["type"]
                            }
                        },
                        "expected_revision": {
                            "type": "integer",
                            "description": "Revision the client last read; stale batches are rejected"
                        },
                        "actor_id": {"type": "string", "description": "User performing the change"}
                    },
                    "required": ["process_id", "ops"]
                }
            ),
            Tool(
                name="process_validate",
                description="Validate a process graph (integrity, reachability, decision labels)",
                inputSchema={
                    "type": "object",
                    "properties": version_selector,
                    "required": ["process_id"]
                }
            ),
            Tool(
                name="process_maturity",
                description="Score process maturity 0-100 and map it to a level 1-5",
                inputSchema={
                    "type": "object",
                    "properties": {
                        **version_selector,
                        "media_count": {
                            "type": "integer",
                            "description": "Number of attached documents/images",
                            "default": 0,
                            "minimum": 0
                        }
                    },
                    "required": ["process_id"]
                }
            ),
            Tool(
                name="process_operation_schema",
                description="Describe the operations accepted by process_apply_ops",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "operation": {
                            "type": "string",
                            "description": "Operation kind to document (omit for all)"
                        }
                    }
                }
            )
        ]

    async def handle_tool(self, name: str, arguments: dict) -> dict:
        """Route tool call to appropriate handler.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            Standardized response
        """
        handlers = {
            "process_create": self._create_process,
            "process_get": self._get_process,
            "process_apply_ops": self._apply_ops,
            "process_validate": self._validate_process,
            "process_maturity": self._process_maturity,
            "process_operation_schema": self._operation_schema,
        }

        handler = handlers.get(name)
        if not handler:
            return error_response(f"Unknown process tool: {name}", "UNKNOWN_TOOL")

        arguments = arguments or {}
        try:
            return await handler(arguments)
        except KeyError as e:
            return error_response(
                f"Missing required argument: {e.args[0]}",
                "INVALID_ARGUMENTS",
                details={"tool": name}
            )
        except RevisionConflict as e:
            logger.warning(f"{name}: {e}")
            return error_response(
                str(e),
                exception_to_error_code(e),
                details={
                    "process_id": e.process_id,
                    "version": e.version,
                    "expected_revision": e.expected,
                    "actual_revision": e.actual
                }
            )
        except (ProcessEngineError, OperationRegistryError) as e:
            return error_response(str(e), exception_to_error_code(e), details={"tool": name})
        except Exception as e:
            logger.exception(f"Error in {name}")
            return error_response(
                str(e),
                "TOOL_EXECUTION_ERROR",
                details={"tool": name, "arguments": arguments}
            )

    async def _create_process(self, args: dict) -> dict:
        meta, version = self.controller.create_process(
            tenant_id=args.get("tenant_id"),
            title=args["title"],
            owner_user_id=args.get("owner_user_id"),
            description=args.get("description", ""),
            responsible_department_id=args.get("responsible_department_id"),
            regulatory_framework=args.get("regulatory_framework"),
        )
        return success_response({
            "process": meta.model_dump(mode="json"),
            "version": version.to_document(),
        })

    async def _get_process(self, args: dict) -> dict:
        process_id = args["process_id"]
        meta = self.meta_store.get(process_id)
        version = self.version_store.get(process_id, args.get("version") or meta.current_version)
        return success_response({
            "process": meta.model_dump(mode="json"),
            "version": version.to_document(),
        })

    async def _apply_ops(self, args: dict) -> dict:
        process_id = args["process_id"]
        ops = args["ops"]
        if not isinstance(ops, list):
            return error_response("'ops' must be an array", "INVALID_ARGUMENTS")

        version = args.get("version") or self._current_version(process_id)
        result = self.controller.apply_ops(
            process_id,
            version,
            ops,
            expected_revision=args.get("expected_revision"),
            actor_id=args.get("actor_id"),
        )

        warnings = [
            f"Operation #{o.index} ({o.type or '<none>'}) {o.status.value}: {o.reason}"
            for o in result.skipped
        ]
        return success_response(result.to_dict(), warnings=warnings or None)

    async def _validate_process(self, args: dict) -> dict:
        process_id = args["process_id"]
        version = self.version_store.get(
            process_id, args.get("version") or self._current_version(process_id)
        )
        issues = validate_process_graph(version.model, version.layout)
        return validation_response(issues, metrics=graph_metrics(version.model))

    async def _process_maturity(self, args: dict) -> dict:
        process_id = args["process_id"]
        meta = self.meta_store.get(process_id)
        version = self.version_store.get(process_id, args.get("version") or meta.current_version)
        maturity = calculate_process_maturity(meta, version, media_count=args.get("media_count", 0))
        return success_response({"process_id": process_id, **maturity.to_dict()})

    async def _operation_schema(self, args: dict) -> dict:
        operation = args.get("operation")
        if operation:
            return success_response(self.registry.get_operation_docs(operation))
        return success_response({
            "operations": sorted(op.name for op in self.registry.list()),
            "schema": self.registry.get_schema(),
        })

    def _current_version(self, process_id: str) -> int:
        try:
            return self.meta_store.get(process_id).current_version
        except ProcessNotFound:
            # Versions created without a header still live at version 1
            return 1


__all__ = ['ProcessTools']
