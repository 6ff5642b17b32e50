"""Tool implementations for homefs."""

from homefs.tools.editing import EditTools
from homefs.tools.filesystem import FileSystemTools
from homefs.tools.registry import TOOL_ALIASES, ToolName, ToolRegistry, UnknownToolError
from homefs.tools.search import SearchTools
from homefs.tools.toolset import HomeToolset

__all__ = [
    "EditTools",
    "FileSystemTools",
    "HomeToolset",
    "SearchTools",
    "TOOL_ALIASES",
    "ToolName",
    "ToolRegistry",
    "UnknownToolError",
]
