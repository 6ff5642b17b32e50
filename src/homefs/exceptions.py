"""Custom exceptions and error codes for homefs.

This module provides the exception hierarchy raised by the sandbox core and the
machine-readable error codes that tools put in their error responses.
"""


class ErrorCodes:
    """Machine-readable error codes used in tool error responses."""

    PATH_ESCAPE = "path_escape"
    SYMLINK_UNRESOLVABLE = "symlink_unresolvable"
    PROTECTED_PATH = "protected_path"
    NOT_FOUND = "not_found"
    WRONG_TYPE = "wrong_type"
    IO_FAILURE = "io_failure"
    INVALID_ARGUMENT = "invalid_argument"
    INTERNAL_ERROR = "internal_error"


class HomeFSError(Exception):
    """Base exception for all homefs errors.

    Attributes:
        code: Machine-readable error code (see ErrorCodes)
        context: Diagnostic values (user path, resolved path, ...)
    """

    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str, context: dict | None = None):
        self.context = dict(context or {})
        super().__init__(message)


class SandboxError(HomeFSError):
    """A user-supplied path could not be confined to the home directory."""

    pass


class PathEscapeError(SandboxError):
    """Resolved path falls outside the home directory.

    Raised for `..` sequences, absolute paths and symlinks that lead anywhere
    other than the home directory or one of its descendants.
    """

    code = ErrorCodes.PATH_ESCAPE


class SymlinkUnresolvableError(SandboxError):
    """A symlink on the path is broken or its target is inaccessible."""

    code = ErrorCodes.SYMLINK_UNRESOLVABLE


class ProtectedPathError(HomeFSError):
    """A mutation targeted a path on the protected list."""

    code = ErrorCodes.PROTECTED_PATH
