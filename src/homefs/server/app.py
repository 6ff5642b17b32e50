"""HTTP endpoint serving the JSON-RPC handler with Starlette."""

import logging

import uvicorn
from starlette.applications import Starlette
from starlette.datastructures import MutableHeaders
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from homefs import __version__
from homefs.config.schema import HomeFSSettings
from homefs.sandbox.workspace import Workspace
from homefs.server.jsonrpc import JsonRpcHandler, RpcErrorCodes, rpc_error
from homefs.server.ratelimit import RateLimiter
from homefs.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
}

SSE_IDLE_COMMENT = b": homefs idle stream\n\n"


class SecurityHeadersMiddleware:
    """Add security headers to every HTTP response."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in SECURITY_HEADERS.items():
                    headers.setdefault(name, value)
            await send(message)

        await self.app(scope, receive, send_with_headers)


async def _read_limited(request: Request, max_bytes: int) -> bytes | None:
    """Read the request body, or return None once it exceeds max_bytes."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        return None

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            return None
    return bytes(body)


def create_app(
    settings: HomeFSSettings,
    workspace: Workspace,
    registry: ToolRegistry | None = None,
) -> Starlette:
    """Build the Starlette application.

    Routes:
    - POST /  JSON-RPC request (single object)
    - GET /   idle event stream for clients that probe for SSE
    - other methods on / answer 405

    Args:
        settings: Effective settings (token, body cap, rate limit)
        workspace: Sandbox workspace for the tools
        registry: Pre-built registry (defaults to one bound to workspace)

    Returns:
        Starlette application
    """
    server = settings.server
    handler = JsonRpcHandler(registry or ToolRegistry(workspace), server.token, __version__)
    limiter = RateLimiter(server.rate_limit_requests, server.rate_limit_window)

    async def rpc_endpoint(request: Request) -> Response:
        if request.method == "GET":
            return Response(
                SSE_IDLE_COMMENT,
                media_type="text/event-stream",
                headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
            )

        if request.method != "POST":
            return JSONResponse(
                rpc_error(
                    None,
                    RpcErrorCodes.INVALID_REQUEST,
                    "Only POST is supported for JSON-RPC requests",
                ),
                status_code=405,
                headers={"Allow": "GET, POST"},
            )

        client = request.client.host if request.client else "unknown"
        if not limiter.allow(client):
            logger.warning(f"Rate limit exceeded for {client}")
            return JSONResponse(
                rpc_error(None, RpcErrorCodes.RATE_LIMITED, "Rate limit exceeded. Try again later."),
                status_code=429,
                headers={"Retry-After": str(limiter.retry_after(client))},
            )

        body = await _read_limited(request, server.max_request_bytes)
        if body is None:
            return JSONResponse(
                rpc_error(None, RpcErrorCodes.INVALID_REQUEST, "Request body too large"),
                status_code=413,
            )

        response = await handler.handle_body(body, request.headers.get("authorization"))
        if response is None:
            return Response(status_code=202)
        return JSONResponse(response)

    return Starlette(
        routes=[Route("/", endpoint=rpc_endpoint, methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])],
        middleware=[Middleware(SecurityHeadersMiddleware)],
    )


def run_server(settings: HomeFSSettings, workspace: Workspace) -> None:
    """Serve the application with uvicorn until interrupted."""
    app = create_app(settings, workspace)
    logger.info(
        f"Starting homefs {__version__} on http://{settings.server.host}:{settings.server.port} "
        f"(home={workspace.home_dir}, auth={'on' if settings.auth_enabled else 'off'})"
    )
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level.lower(),
    )
