"""Standardized response envelopes for MCP tools."""

import re
from typing import Any, Dict, List, Optional


def is_success(result: Dict[str, Any]) -> bool:
    """Check if a tool call succeeded."""
    return bool(result.get("ok"))


def success_response(
    data: Any,
    warnings: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Create a successful response envelope.

    Args:
        data: The response data
        warnings: Optional list of warning messages

    Returns:
        {"ok": True, "data": ..., ["warnings": [...]]}
    """
    response = {"ok": True, "data": data}
    if warnings:
        response["warnings"] = warnings
    return response


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create an error response envelope.

    Args:
        message: Error message
        code: Optional SNAKE_CASE error code
        details: Optional error details

    Returns:
        {"ok": False, "error": {"message", ["code"], ["details"]}}
    """
    error = {"message": message}
    if code:
        error["code"] = code
    if details:
        error["details"] = details
    return {"ok": False, "error": error}


def exception_to_error_code(exception: BaseException) -> str:
    """
    Convert an exception class name to a SNAKE_CASE error code.

    Examples:
        VersionNotFound -> VERSION_NOT_FOUND
        RevisionConflict -> REVISION_CONFLICT
    """
    name = type(exception).__name__
    return re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name).upper()


def validation_response(
    issues: List[Dict[str, Any]],
    metrics: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Create a validation response; status derives from the worst issue.

    Args:
        issues: Issues from create_issue()
        metrics: Optional metrics/statistics

    Returns:
        Success envelope unless an issue has severity "error"
    """
    severities = {issue["severity"] for issue in issues}
    if "error" in severities:
        status = "error"
    elif "warning" in severities:
        status = "warning"
    else:
        status = "ok"

    data: Dict[str, Any] = {"status": status, "issues": list(issues)}
    if metrics:
        data["metrics"] = metrics

    return {"ok": status != "error", "data": data}


def create_issue(
    severity: str,
    message: str,
    location: Optional[str] = None,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create a structured validation issue.

    Args:
        severity: "error", "warning" or "info"
        message: Issue message
        location: Optional node or edge ID
        code: Optional issue code (e.g. PROC-TOP-002)
        details: Optional additional details
    """
    issue = {"severity": severity, "message": message}
    if location:
        issue["location"] = location
    if code:
        issue["code"] = code
    if details:
        issue["details"] = details
    return issue
