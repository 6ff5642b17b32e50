"""Base class for homefs toolsets.

Toolsets encapsulate related tools with a shared Workspace, avoiding global
state and enabling dependency injection for testing.
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from homefs.exceptions import ErrorCodes, ProtectedPathError, SandboxError
from homefs.sandbox.workspace import Workspace
from homefs.utils.responses import create_error_response, create_success_response

logger = logging.getLogger(__name__)


class HomeToolset(ABC):
    """Base class for homefs toolsets.

    Each toolset receives the Workspace (home and base directories, protected
    set) explicitly, making it easy to point at a temporary directory in tests.

    Example:
        >>> class MyTools(HomeToolset):
        ...     def get_tools(self):
        ...         return [self.my_tool]
        ...
        ...     async def my_tool(self, path: str) -> dict:
        ...         resolved = self._resolve_path(path)
        ...         if isinstance(resolved, dict):
        ...             return resolved
        ...         return self._create_success_response(result=str(resolved))
    """

    def __init__(self, workspace: Workspace):
        """Initialize toolset with the sandbox workspace.

        Args:
            workspace: Home/base directories every path is resolved against
        """
        self.workspace = workspace

    @abstractmethod
    def get_tools(self) -> list[Callable]:
        """Get list of tool functions.

        Returns:
            List of callable tool functions
        """
        pass

    def _resolve_path(self, path: str, arg_name: str = "path") -> dict | Path:
        """Resolve and validate a user path within the home directory.

        All tools MUST call this before any filesystem access.

        Args:
            path: User-supplied path
            arg_name: Argument name used in the error context

        Returns:
            Resolved Path if valid, or error dict if the path escapes the sandbox
        """
        try:
            return Path(self.workspace.resolve(path))
        except SandboxError as e:
            return self._create_error_response(
                error=e.code, message=str(e), context={arg_name: path, **e.context}
            )

    def _check_not_protected(self, resolved: Path, context: dict, action: str) -> dict | None:
        """Return an error response if resolved is on the protected list."""
        try:
            self.workspace.check_mutable(str(resolved))
        except ProtectedPathError as e:
            logger.warning(f"Refused to {action} protected path: {resolved}")
            return self._create_error_response(
                error=e.code,
                message=f"Cannot {action} protected path",
                context=context,
            )
        return None

    def _is_escaping_link(self, entry: os.DirEntry) -> bool:
        """True if entry is a symlink whose target is outside home or unresolvable."""
        if not entry.is_symlink():
            return False
        try:
            self.workspace.resolve(entry.path)
        except SandboxError:
            logger.debug(f"Not following symlink out of sandbox: {entry.path}")
            return True
        return False

    def _relative(self, path: Path | str) -> str:
        return self.workspace.relative(str(path))

    def _io_error(self, action: str, error: OSError, context: dict) -> dict:
        """Create an io_failure response for a failed system call."""
        reason = os.strerror(error.errno) if error.errno else str(error)
        logger.warning(f"Failed to {action}: {context} ({reason})")
        return self._create_error_response(
            error=ErrorCodes.IO_FAILURE,
            message=f"Failed to {action}: {reason}",
            context=context,
        )

    def _create_success_response(self, result: Any, message: str = "") -> dict:
        """Create standardized success response.

        Args:
            result: Tool execution result
            message: Optional success message for logging/display

        Returns:
            Structured response dict with success=True
        """
        return create_success_response(result, message)

    def _create_error_response(self, error: str, message: str, context: dict | None = None) -> dict:
        """Create standardized error response.

        Args:
            error: Machine-readable error code (see ErrorCodes)
            message: Human-friendly error message
            context: Diagnostic values (user path, resolved path)

        Returns:
            Structured response dict with success=False
        """
        return create_error_response(error, message, context)
