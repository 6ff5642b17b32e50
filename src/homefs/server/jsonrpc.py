"""JSON-RPC 2.0 request handling for the MCP tool protocol.

Handles one request object at a time; batches are rejected. Requests without
an id are notifications: they are accepted and produce no response.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from homefs.config.constants import DEFAULT_PROTOCOL_VERSION, SERVER_NAME
from homefs.server.auth import AuthenticationError, check_bearer_token
from homefs.tools.registry import ToolRegistry, UnknownToolError

logger = logging.getLogger(__name__)


class RpcErrorCodes:
    """JSON-RPC error codes returned by the server."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    RATE_LIMITED = -32000
    UNAUTHORIZED = -32001


def rpc_result(request_id: Any, result: dict) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def rpc_error(request_id: Any, code: int, message: str, data: Any = None) -> dict:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def tool_result_envelope(response: dict) -> dict:
    """Wrap a tool response as an MCP tools/call result.

    The text content carries the tool's result payload on success, or the
    error code, message and context on failure.
    """
    if response.get("success"):
        payload = response.get("result")
    else:
        payload = {
            "error": response.get("error"),
            "message": response.get("message"),
            "context": response.get("context", {}),
        }
    return {
        "content": [{"type": "text", "text": json.dumps(payload, ensure_ascii=False)}],
        "isError": not response.get("success", False),
    }


class JsonRpcHandler:
    """Dispatch JSON-RPC requests to the tool registry.

    Args:
        registry: Tool registry bound to the sandbox workspace
        token: Bearer token required on requests ("" disables authentication)
        server_version: Version reported in initialize

    Example:
        >>> handler = JsonRpcHandler(ToolRegistry(workspace))
        >>> await handler.handle({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        {'jsonrpc': '2.0', 'id': 1, 'result': {'pong': True, 'time': '...'}}
    """

    def __init__(self, registry: ToolRegistry, token: str = "", server_version: str = "0.0.0"):
        self.registry = registry
        self.token = token
        self.server_version = server_version

    async def handle_body(self, body: bytes, authorization: str | None = None) -> dict | None:
        """Parse a raw request body and handle it."""
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return rpc_error(None, RpcErrorCodes.PARSE_ERROR, "Parse error: invalid JSON body")
        return await self.handle(payload, authorization)

    async def handle(self, payload: Any, authorization: str | None = None) -> dict | None:
        """Handle one decoded JSON-RPC message.

        Args:
            payload: Decoded request body
            authorization: Authorization header value

        Returns:
            Response object, or None for notifications
        """
        if isinstance(payload, list):
            return rpc_error(
                None, RpcErrorCodes.INVALID_REQUEST, "Invalid Request: batch requests are not supported"
            )
        if not isinstance(payload, dict):
            return rpc_error(
                None, RpcErrorCodes.INVALID_REQUEST, "Invalid Request: expected a JSON-RPC 2.0 object"
            )

        has_id = "id" in payload
        request_id = payload.get("id")

        if payload.get("jsonrpc") != "2.0":
            return rpc_error(request_id, RpcErrorCodes.INVALID_REQUEST, 'Invalid Request: jsonrpc must be "2.0"')

        method = payload.get("method")
        if not isinstance(method, str):
            return rpc_error(request_id, RpcErrorCodes.INVALID_REQUEST, "Invalid Request: method must be a string")

        if not has_id:
            logger.debug(f"Notification received: {method}")
            return None

        try:
            check_bearer_token(authorization, self.token)
        except AuthenticationError as e:
            logger.warning(f"Rejected {method} request: {e}")
            return rpc_error(request_id, RpcErrorCodes.UNAUTHORIZED, str(e))

        params = payload.get("params")
        if not isinstance(params, dict):
            params = {}

        if method == "initialize":
            return rpc_result(request_id, self._initialize(params))
        if method == "ping":
            return rpc_result(
                request_id,
                {"pong": True, "time": datetime.now(timezone.utc).isoformat(timespec="seconds")},
            )
        if method == "tools/list":
            return rpc_result(request_id, {"tools": self.registry.definitions()})
        if method == "tools/call":
            return await self._call_tool(request_id, params)

        return rpc_error(request_id, RpcErrorCodes.METHOD_NOT_FOUND, f"Method not found: {method}")

    def _initialize(self, params: dict) -> dict:
        protocol = params.get("protocolVersion")
        if not isinstance(protocol, str):
            protocol = DEFAULT_PROTOCOL_VERSION
        return {
            "protocolVersion": protocol,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": self.server_version},
        }

    async def _call_tool(self, request_id: Any, params: dict) -> dict:
        name = params.get("name")
        if not isinstance(name, str):
            return rpc_error(request_id, RpcErrorCodes.INVALID_PARAMS, "tools/call: name must be a string")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return rpc_error(
                request_id, RpcErrorCodes.INVALID_PARAMS, "tools/call: arguments must be an object"
            )

        try:
            response = await self.registry.call(name, arguments)
        except UnknownToolError:
            return rpc_error(request_id, RpcErrorCodes.METHOD_NOT_FOUND, f"Unknown tool: {name}")

        return rpc_result(request_id, tool_result_envelope(response))
