"""JSON-RPC transport for homefs."""

from homefs.server.app import create_app, run_server
from homefs.server.auth import AuthenticationError, check_bearer_token
from homefs.server.jsonrpc import JsonRpcHandler, RpcErrorCodes, tool_result_envelope
from homefs.server.ratelimit import RateLimiter

__all__ = [
    "AuthenticationError",
    "JsonRpcHandler",
    "RateLimiter",
    "RpcErrorCodes",
    "check_bearer_token",
    "create_app",
    "run_server",
    "tool_result_envelope",
]
