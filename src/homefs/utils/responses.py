"""Shared response helper functions for tools and the dispatcher.

This module provides standardized response formatting used across toolsets.
All tools should use these helpers to ensure consistent response formats for
the dispatcher to serialize.
"""

from typing import Any


def create_success_response(result: Any, message: str = "") -> dict:
    """Create standardized success response.

    Args:
        result: Operation result (can be any JSON-serializable value)
        message: Optional success message for logging/display

    Returns:
        Structured response dict with success=True

    Example:
        >>> create_success_response(result={"bytes": 5}, message="Read 5 bytes")
        {'success': True, 'result': {'bytes': 5}, 'message': 'Read 5 bytes'}
    """
    return {
        "success": True,
        "result": result,
        "message": message,
    }


def create_error_response(error: str, message: str, context: dict | None = None) -> dict:
    """Create standardized error response.

    Tools use this when they encounter errors rather than raising exceptions,
    so that every failure reaches the caller as structured data.

    Args:
        error: Machine-readable error code (e.g., "not_found")
        message: Human-friendly error message
        context: Diagnostic values such as the user path and resolved path

    Returns:
        Structured response dict with success=False

    Example:
        >>> create_error_response("not_found", "File not found", {"path": "a.txt"})
        {'success': False, 'error': 'not_found', 'message': 'File not found', 'context': {'path': 'a.txt'}}
    """
    return {
        "success": False,
        "error": error,
        "message": message,
        "context": context or {},
    }
