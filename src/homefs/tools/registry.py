"""Tool registry and dispatcher.

Binds every wire-level tool name to a toolset method, derives argument models
and JSON schemas from the method signatures, and dispatches validated calls.
"""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, get_type_hints

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from homefs.exceptions import ErrorCodes, HomeFSError
from homefs.sandbox.workspace import Workspace
from homefs.tools.editing import EditTools
from homefs.tools.filesystem import FileSystemTools
from homefs.tools.search import SearchTools
from homefs.utils.responses import create_error_response

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    """Closed set of tool names exposed to clients."""

    INFO = "fs_info"
    LIST = "fs_list"
    READ = "fs_read"
    WRITE = "fs_write"
    MOVE = "fs_move"
    DELETE = "fs_delete"
    TAIL = "fs_tail"
    READ_LINES = "fs_read_lines"
    PATCH = "fs_patch"
    DIFF = "fs_diff"
    SEARCH = "fs_search"


# Accepted on tools/call but not listed
TOOL_ALIASES = {"fs_rm": ToolName.DELETE}


class UnknownToolError(HomeFSError):
    """The requested tool name is neither a tool nor an alias."""

    code = ErrorCodes.INVALID_ARGUMENT


@dataclass(frozen=True)
class ToolSpec:
    """A bound tool: its handler, argument model and description."""

    name: ToolName
    handler: Callable[..., Awaitable[dict]]
    arguments_model: type[BaseModel]
    description: str

    def definition(self) -> dict:
        """MCP tool definition for tools/list."""
        return {
            "name": self.name.value,
            "description": self.description,
            "inputSchema": self.arguments_model.model_json_schema(),
        }


def build_arguments_model(name: str, handler: Callable) -> type[BaseModel]:
    """Create a pydantic model mirroring a tool method's keyword parameters.

    Field metadata (descriptions, aliases, schema hints) comes from the
    Annotated[..., Field(...)] annotations on the method. Unknown arguments are
    rejected.
    """
    hints = get_type_hints(handler, include_extras=True)
    fields: dict[str, Any] = {}
    for param in inspect.signature(handler).parameters.values():
        if param.name == "self":
            continue
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param.name] = (hints.get(param.name, Any), default)

    model_name = "".join(part.capitalize() for part in name.split("_")) + "Arguments"
    return create_model(model_name, __config__=ConfigDict(extra="forbid"), **fields)


def _describe(handler: Callable) -> str:
    doc = inspect.getdoc(handler) or ""
    return " ".join(doc.split("\n\n")[0].split())


def _format_validation_error(error: ValidationError) -> list[dict]:
    return [
        {"field": ".".join(str(p) for p in err["loc"]) or "arguments", "message": err["msg"]}
        for err in error.errors(include_url=False)
    ]


class ToolRegistry:
    """Dispatch table from ToolName to toolset methods.

    Example:
        >>> registry = ToolRegistry(Workspace.create("/home/user"))
        >>> [d["name"] for d in registry.definitions()][:2]
        ['fs_info', 'fs_list']
        >>> await registry.call("fs_read", {"path": "notes.txt"})
    """

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        files = FileSystemTools(workspace)
        editing = EditTools(workspace)
        search = SearchTools(workspace)

        bindings: dict[ToolName, Callable[..., Awaitable[dict]]] = {
            ToolName.INFO: files.get_info,
            ToolName.LIST: files.list_directory,
            ToolName.READ: files.read_file,
            ToolName.WRITE: files.write_file,
            ToolName.MOVE: files.move_path,
            ToolName.DELETE: files.delete_path,
            ToolName.TAIL: files.tail_file,
            ToolName.READ_LINES: files.read_lines,
            ToolName.PATCH: editing.patch_file,
            ToolName.DIFF: editing.diff_files,
            ToolName.SEARCH: search.search_text,
        }

        missing = [tool.value for tool in ToolName if tool not in bindings]
        if missing:
            raise RuntimeError(f"Tools without a handler: {', '.join(missing)}")

        self._tools: dict[ToolName, ToolSpec] = {
            tool: ToolSpec(
                name=tool,
                handler=handler,
                arguments_model=build_arguments_model(tool.value, handler),
                description=_describe(handler),
            )
            for tool, handler in bindings.items()
        }
        logger.debug(f"Registered {len(self._tools)} tools")

    def lookup(self, name: str) -> ToolName:
        """Map a wire name or alias to its ToolName.

        Raises:
            UnknownToolError: If the name is not known
        """
        if name in TOOL_ALIASES:
            return TOOL_ALIASES[name]
        try:
            return ToolName(name)
        except ValueError:
            raise UnknownToolError(f"Unknown tool: {name}", {"name": name}) from None

    def get(self, name: str) -> ToolSpec:
        return self._tools[self.lookup(name)]

    def definitions(self) -> list[dict]:
        """Tool definitions in ToolName order (aliases are not listed)."""
        return [self._tools[tool].definition() for tool in ToolName]

    async def call(self, name: str, arguments: dict | None = None) -> dict:
        """Validate arguments and run a tool.

        Args:
            name: Tool name or alias
            arguments: Raw argument object from the client

        Returns:
            The tool's response dict. Validation failures and unexpected
            exceptions are converted to error responses.

        Raises:
            UnknownToolError: If the name is not known
        """
        spec = self.get(name)
        start = time.perf_counter()

        try:
            parsed = spec.arguments_model.model_validate(arguments or {})
        except ValidationError as e:
            logger.info(f"Rejected {spec.name.value} call: invalid arguments")
            return create_error_response(
                ErrorCodes.INVALID_ARGUMENT,
                f"Invalid arguments for {spec.name.value}",
                {"errors": _format_validation_error(e)},
            )

        kwargs = {field: getattr(parsed, field) for field in type(parsed).model_fields}
        try:
            response = await spec.handler(**kwargs)
        except Exception as e:
            logger.exception(f"Tool {spec.name.value} failed unexpectedly")
            return create_error_response(
                ErrorCodes.INTERNAL_ERROR,
                f"Internal error: {e}",
                {"tool": spec.name.value},
            )

        duration = time.perf_counter() - start
        logger.info(
            f"Tool {spec.name.value} completed in {duration:.3f}s "
            f"(success={response.get('success')})"
        )
        return response
