"""Shared assertions for homefs tests."""

from tests.helpers.assertions import (
    assert_error_response,
    assert_rpc_error,
    assert_success_response,
)

__all__ = [
    "assert_success_response",
    "assert_error_response",
    "assert_rpc_error",
]
