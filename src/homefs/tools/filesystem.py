"""Filesystem tools for sandboxed file operations under the home directory.

This module provides the structured filesystem tools exposed to remote
callers. Every path argument is resolved through the sandbox resolver before
any filesystem access, and every mutation is checked against the protected
path set.

Key Features:
- Home directory sandboxing with symlink escape protection
- Bounded directory listing and byte-range reads
- Locked writes (overwrite, append, create) with optional parent creation
- Atomic move/rename and post-order recursive delete
- Tail and line-range reads that stream instead of loading whole files

Recursive delete is not atomic: a failure part-way leaves a partially deleted
tree, and the response names the path that failed.
"""

import logging
import os
from collections import deque
from pathlib import Path
from typing import Annotated

from pydantic import Field

from homefs.config.constants import (
    BINARY_PLACEHOLDER,
    LIST_DEFAULT_ITEMS,
    LIST_FALLBACK_ITEMS,
    LIST_MAX_ITEMS,
    READ_DEFAULT_BYTES,
    READ_LINES_DEFAULT_SPAN,
    READ_LINES_MAX_CONTEXT,
    READ_MAX_BYTES,
    TAIL_DEFAULT_LINES,
    TAIL_MAX_LINES,
)
from homefs.exceptions import ErrorCodes
from homefs.text.tail import tail_lines
from homefs.tools.toolset import HomeToolset
from homefs.utils.files import WRITE_MODES, iso_mtime, locked_write

logger = logging.getLogger(__name__)


def _remove_tree(root: Path) -> int:
    """Delete root and everything beneath it, children before parents.

    Symlinks are unlinked, never followed.

    Returns:
        Number of filesystem entries removed

    Raises:
        OSError: On the first failing step; `filename` names the failing path
    """
    removed = 0
    stack: list[tuple[Path, bool]] = [(root, False)]

    while stack:
        path, expanded = stack.pop()
        if expanded:
            os.rmdir(path)
            removed += 1
            continue

        if path.is_symlink() or not path.is_dir():
            os.unlink(path)
            removed += 1
            continue

        stack.append((path, True))
        with os.scandir(path) as it:
            for entry in it:
                stack.append((Path(entry.path), False))

    return removed


class FileSystemTools(HomeToolset):
    """Filesystem tools for sandboxed file operations.

    This toolset provides structured file operations with security guarantees:
    - All paths resolve to the home directory or beneath it
    - Symlinks whose targets leave home are rejected
    - Protected dotfiles and credential directories are never modified
    - Size caps bound every read and listing

    Example:
        >>> workspace = Workspace.create("/home/user")
        >>> tools = FileSystemTools(workspace)
        >>> result = await tools.list_directory("apps")
        >>> print(result["result"]["count"])
        12
    """

    def get_tools(self) -> list:
        """Get list of filesystem tools.

        Returns:
            List of filesystem tool functions
        """
        return [
            self.get_info,
            self.list_directory,
            self.read_file,
            self.write_file,
            self.move_path,
            self.delete_path,
            self.tail_file,
            self.read_lines,
        ]

    async def get_info(self) -> dict:
        """Get the home, base, apps and logs directories of this sandbox.

        Pure reporting; nothing is read from disk.

        Returns:
            Success response with directory paths:
            {
                "success": True,
                "result": {
                    "home_dir": str,
                    "base_dir": str,
                    "apps_dir": str,
                    "logs_dir": str,
                    "notes": [str, ...]
                },
                "message": "..."
            }
        """
        home = self.workspace.home_dir
        info = {
            "home_dir": home,
            "base_dir": self.workspace.base_dir,
            "apps_dir": f"{home}/apps",
            "logs_dir": f"{home}/logs",
            "notes": [
                "Relative paths are resolved against base_dir; '~/...' is relative to home_dir.",
                "Every path must stay within home_dir; symlinks leading outside it are rejected.",
                "Shell profiles, credential directories and the server config file are read-only.",
            ],
        }
        return self._create_success_response(result=info, message="Workspace directories")

    async def list_directory(
        self,
        path: Annotated[
            str,
            Field(description='Directory to list, like "apps" or "~/apps"; defaults to base_dir'),
        ] = ".",
        recursive: Annotated[bool, Field(description="Recurse into subdirectories")] = False,
        max_items: Annotated[
            int,
            Field(
                description="Maximum number of entries to return (default 200; max 5000)",
                json_schema_extra={"minimum": 1, "maximum": LIST_MAX_ITEMS},
            ),
        ] = LIST_DEFAULT_ITEMS,
    ) -> dict:
        """List files and directories under a path (relative to base_dir or home).

        Directories are visited breadth-first with an explicit work queue, so
        depth is unbounded. Listing stops once max_items entries are collected.
        Symlinked directories are listed but not descended into. Symlinks whose
        target is outside home report the type, size and mtime of the link.

        Args:
            path: Directory path (default: base_dir)
            recursive: If True, walk subdirectories
            max_items: Entry cap (<= 0 becomes 50, capped at 5000)

        Returns:
            Success response with entries:
            {
                "success": True,
                "result": {
                    "root": str,
                    "resolved_root": str,
                    "recursive": bool,
                    "max_items": int,
                    "count": int,
                    "truncated": bool,
                    "items": [
                        {
                            "name": str,
                            "type": "dir" | "file",
                            "relative_path": str,  # relative to home
                            "absolute_path": str,
                            "size": int | None,
                            "modified": str | None  # ISO-8601
                        },
                        ...
                    ]
                },
                "message": "..."
            }
        """
        if max_items <= 0:
            max_items = LIST_FALLBACK_ITEMS
        max_items = min(max_items, LIST_MAX_ITEMS)

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        context = {"path": path, "resolved": str(resolved)}
        if not resolved.exists():
            return self._create_error_response(
                error=ErrorCodes.NOT_FOUND, message="Directory not found", context=context
            )
        if not resolved.is_dir():
            return self._create_error_response(
                error=ErrorCodes.WRONG_TYPE, message="Not a directory", context=context
            )

        items: list[dict] = []
        queue: deque[Path] = deque([resolved])
        truncated = False

        while queue and not truncated:
            directory = queue.popleft()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                if directory == resolved:
                    return self._io_error("list directory", e, context)
                logger.debug(f"Skipping unreadable directory {directory}: {e}")
                continue

            for index, entry in enumerate(entries):
                if len(items) >= max_items:
                    truncated = True
                    break

                # Links leaving home are described by the link itself, not its target
                follow = not self._is_escaping_link(entry)
                try:
                    is_dir = entry.is_dir(follow_symlinks=follow)
                except OSError:
                    is_dir = False
                try:
                    stat = entry.stat(follow_symlinks=follow)
                    size, modified = stat.st_size, iso_mtime(stat.st_mtime)
                except OSError:
                    size, modified = None, None

                items.append(
                    {
                        "name": entry.name,
                        "type": "dir" if is_dir else "file",
                        "relative_path": self._relative(entry.path),
                        "absolute_path": entry.path,
                        "size": size,
                        "modified": modified,
                    }
                )

                if recursive and is_dir and not entry.is_symlink():
                    queue.append(Path(entry.path))

            if len(items) >= max_items and queue:
                truncated = True

        result = {
            "root": path,
            "resolved_root": str(resolved),
            "recursive": recursive,
            "max_items": max_items,
            "count": len(items),
            "truncated": truncated,
            "items": items,
        }
        return self._create_success_response(
            result=result, message=f"Listed {len(items)} entries from: {path}"
        )

    async def read_file(
        self,
        path: Annotated[str, Field(description='File path to read; relative or absolute ("~/...")')],
        offset: Annotated[
            int,
            Field(
                description="Byte offset to start reading from (default 0)",
                json_schema_extra={"minimum": 0},
            ),
        ] = 0,
        max_bytes: Annotated[
            int,
            Field(
                description="Maximum number of bytes to read (default 65536, max 1048576)",
                json_schema_extra={"minimum": 1, "maximum": READ_MAX_BYTES},
            ),
        ] = READ_DEFAULT_BYTES,
    ) -> dict:
        """Read a byte range of a file.

        Content containing null bytes is treated as binary and replaced with a
        placeholder string.

        Args:
            path: File path
            offset: Start byte (negative becomes 0)
            max_bytes: Bytes to read (<= 0 becomes 65536, capped at 1 MiB)

        Returns:
            Success response with:
            {
                "path": str,
                "resolved_path": str,
                "offset": int,
                "max_bytes": int,
                "bytes": int,
                "size": int,
                "truncated": bool,
                "is_binary": bool,
                "content": str
            }
        """
        if not path:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT, message="path is required"
            )

        offset = max(0, offset)
        if max_bytes <= 0:
            max_bytes = READ_DEFAULT_BYTES
        max_bytes = min(max_bytes, READ_MAX_BYTES)

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        context = {"path": path, "resolved": str(resolved)}
        if not resolved.is_file():
            return self._missing_or_wrong_type(resolved, context, "Not a file")

        try:
            with open(resolved, "rb") as f:
                size = os.fstat(f.fileno()).st_size
                f.seek(offset)
                data = f.read(max_bytes)
        except OSError as e:
            return self._io_error("read file", e, context)

        is_binary = b"\x00" in data
        result = {
            "path": path,
            "resolved_path": str(resolved),
            "offset": offset,
            "max_bytes": max_bytes,
            "bytes": len(data),
            "size": size,
            "truncated": offset + len(data) < size,
            "is_binary": is_binary,
            "content": BINARY_PLACEHOLDER if is_binary else data.decode("utf-8", errors="replace"),
        }
        return self._create_success_response(
            result=result, message=f"Read {len(data)} bytes from {path} at offset {offset}"
        )

    async def write_file(
        self,
        path: Annotated[
            str,
            Field(
                description='Target file path; relative to base_dir or absolute within home (e.g. "apps/foo/config.php" or "~/notes.txt")'
            ),
        ],
        content: Annotated[str, Field(description="Text content to write")],
        mode: Annotated[
            str,
            Field(
                description='One of "overwrite", "append", or "create"',
                json_schema_extra={"enum": list(WRITE_MODES)},
            ),
        ] = "overwrite",
        mkdirs: Annotated[
            bool, Field(description="If true, create parent directories as needed")
        ] = False,
    ) -> dict:
        """Write text content to a file within the home directory.

        Modes:
        - overwrite: truncate and write (creates the file if missing)
        - append: add to the end (creates the file if missing)
        - create: fail if the file already exists

        The write holds an exclusive advisory lock on the file.

        Args:
            path: Target file path
            content: Text to write (UTF-8 encoded)
            mode: Write mode (case-insensitive)
            mkdirs: Create missing parent directories

        Returns:
            Success response with:
            {
                "path": str,
                "resolved_path": str,
                "bytes_written": int,
                "mode": str,
                "existed_before": bool
            }
        """
        if not path:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT, message="path is required for write"
            )

        mode = mode.lower()
        if mode not in WRITE_MODES:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT,
                message=f"Invalid mode '{mode}'. Valid modes: {', '.join(WRITE_MODES)}",
                context={"mode": mode},
            )

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        context = {"path": path, "resolved": str(resolved)}
        if error := self._check_not_protected(resolved, {"path": path}, "modify"):
            return error

        if resolved.is_dir():
            return self._create_error_response(
                error=ErrorCodes.WRONG_TYPE, message="Target is a directory", context=context
            )

        existed_before = resolved.exists()
        if mode == "create" and existed_before:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT,
                message="File already exists and mode=create",
                context=context,
            )

        if error := self._ensure_parent(resolved, mkdirs):
            return error

        try:
            bytes_written = locked_write(resolved, content.encode("utf-8"), mode)
        except FileExistsError:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT,
                message="File already exists and mode=create",
                context=context,
            )
        except OSError as e:
            return self._io_error("write file", e, context)

        result = {
            "path": path,
            "resolved_path": str(resolved),
            "bytes_written": bytes_written,
            "mode": mode,
            "existed_before": existed_before,
        }
        return self._create_success_response(
            result=result, message=f"Wrote {bytes_written} bytes to {path} (mode={mode})"
        )

    async def move_path(
        self,
        source: Annotated[
            str,
            Field(
                alias="from",
                description='Source path; relative to base_dir or absolute within home (e.g. "apps/foo" or "~/apps/foo")',
            ),
        ],
        destination: Annotated[
            str,
            Field(
                alias="to",
                description="Destination path; relative to base_dir or absolute within home",
            ),
        ],
        overwrite: Annotated[
            bool, Field(description="If true, allow replacing an existing destination")
        ] = False,
        mkdirs: Annotated[
            bool,
            Field(description="If true, create parent directories for the destination as needed"),
        ] = False,
    ) -> dict:
        """Move or rename a file or directory within the home directory.

        Uses a single rename() system call, never copy and delete, so the move
        is atomic on the same filesystem.

        Args:
            source: Path to move
            destination: New path
            overwrite: Replace an existing destination
            mkdirs: Create missing destination parents

        Returns:
            Success response with:
            {
                "from": str,
                "to": str,
                "resolved_from": str,
                "resolved_to": str,
                "overwrite": bool,
                "mkdirs": bool,
                "moved": True
            }
        """
        if not source or not destination:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT,
                message="from and to are required",
                context={"from": source, "to": destination},
            )

        src = self._resolve_path(source, "from")
        if isinstance(src, dict):
            return src  # Error response
        dst = self._resolve_path(destination, "to")
        if isinstance(dst, dict):
            return dst  # Error response

        context = {"from": source, "to": destination}
        for endpoint in (src, dst):
            if error := self._check_not_protected(endpoint, context, "move"):
                return error

        if not os.path.lexists(src):
            return self._create_error_response(
                error=ErrorCodes.NOT_FOUND,
                message="Source does not exist",
                context={"from": source, "resolved_from": str(src)},
            )

        if os.path.lexists(dst) and not overwrite:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT,
                message="Destination exists and overwrite=false",
                context={"to": destination, "resolved_to": str(dst)},
            )

        if error := self._ensure_parent(dst, mkdirs):
            return error

        try:
            os.rename(src, dst)
        except OSError as e:
            return self._io_error(
                "move/rename",
                e,
                {**context, "resolved_from": str(src), "resolved_to": str(dst)},
            )

        result = {
            "from": source,
            "to": destination,
            "resolved_from": str(src),
            "resolved_to": str(dst),
            "overwrite": overwrite,
            "mkdirs": mkdirs,
            "moved": True,
        }
        return self._create_success_response(
            result=result, message=f"Moved {source} -> {destination}"
        )

    async def delete_path(
        self,
        path: Annotated[
            str,
            Field(
                description='Target to delete; relative to base_dir or absolute within home (e.g. "apps/foo" or "~/logs/foo.log")'
            ),
        ],
        recursive: Annotated[
            bool,
            Field(description="If true, recursively delete directories and contents (use with care)"),
        ] = False,
    ) -> dict:
        """Delete a file, symlink, or directory within the home directory (like rm).

        Without recursive only files, symlinks and empty directories can be
        removed. With recursive, directory trees are removed children first and
        the operation stops at the first failure. A stopped recursive delete is
        not rolled back.

        Args:
            path: Target path
            recursive: Delete directory contents

        Returns:
            Success response with:
            {
                "path": str,
                "resolved_path": str,
                "type": "dir" | "file",
                "recursive": bool,
                "deleted": True,
                "deleted_count": int
            }
        """
        if not path:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT, message="path is required"
            )

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        if error := self._check_not_protected(resolved, {"path": path}, "delete"):
            return error

        context = {"path": path, "resolved": str(resolved)}
        if not os.path.lexists(resolved):
            return self._create_error_response(
                error=ErrorCodes.NOT_FOUND, message="Path does not exist", context=context
            )

        is_dir = resolved.is_dir() and not resolved.is_symlink()

        try:
            if is_dir and not recursive:
                with os.scandir(resolved) as it:
                    if any(True for _ in it):
                        return self._create_error_response(
                            error=ErrorCodes.INVALID_ARGUMENT,
                            message="Directory is not empty (set recursive=true to delete contents)",
                            context=context,
                        )
                os.rmdir(resolved)
                deleted_count = 1
            elif is_dir:
                deleted_count = _remove_tree(resolved)
            else:
                os.unlink(resolved)
                deleted_count = 1
        except OSError as e:
            failed = {**context, "recursive": recursive}
            if e.filename and str(e.filename) != str(resolved):
                failed["failed_path"] = str(e.filename)
            return self._io_error("delete path", e, failed)

        result = {
            "path": path,
            "resolved_path": str(resolved),
            "type": "dir" if is_dir else "file",
            "recursive": recursive,
            "deleted": True,
            "deleted_count": deleted_count,
        }
        return self._create_success_response(result=result, message=f"Deleted {path}")

    async def tail_file(
        self,
        path: Annotated[
            str, Field(description='File path to tail; usually something under "~/logs"')
        ],
        lines: Annotated[
            int,
            Field(
                description="Number of lines from the end (default 200, max 2000)",
                json_schema_extra={"minimum": 1, "maximum": TAIL_MAX_LINES},
            ),
        ] = TAIL_DEFAULT_LINES,
    ) -> dict:
        """Tail the last N lines of a file (useful for logs).

        Reads backwards from the end in fixed-size chunks, so large files are
        never loaded whole.

        Args:
            path: File path
            lines: Line count (<= 0 becomes 200, capped at 2000)

        Returns:
            Success response with:
            {"path": str, "resolved_path": str, "lines": int, "content": str}
        """
        if not path:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT, message="path is required"
            )

        if lines <= 0:
            lines = TAIL_DEFAULT_LINES
        lines = min(lines, TAIL_MAX_LINES)

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        context = {"path": path, "resolved": str(resolved)}
        if not resolved.is_file():
            return self._missing_or_wrong_type(resolved, context, "Not a file")

        try:
            content = tail_lines(resolved, lines)
        except OSError as e:
            return self._io_error("read file", e, context)

        result = {
            "path": path,
            "resolved_path": str(resolved),
            "lines": lines,
            "content": content,
        }
        return self._create_success_response(
            result=result, message=f"Last {lines} lines of {path}"
        )

    async def read_lines(
        self,
        path: Annotated[str, Field(description='File path to read; relative or absolute ("~/...")')],
        start_line: Annotated[
            int,
            Field(
                description="First line to read (1-indexed). Defaults to 1",
                json_schema_extra={"minimum": 1},
            ),
        ] = 1,
        end_line: Annotated[
            int | None,
            Field(
                description="Last line to read (1-indexed, inclusive). Defaults to start_line + 99",
                json_schema_extra={"minimum": 1},
            ),
        ] = None,
        context_lines: Annotated[
            int,
            Field(
                description="Extra lines of context before start_line and after end_line (default 0)",
                json_schema_extra={"minimum": 0, "maximum": READ_LINES_MAX_CONTEXT},
            ),
        ] = 0,
    ) -> dict:
        """Read specific line ranges from a file.

        Streams the file line by line. Lines outside [start_line, end_line] but
        within the context window are tagged with context=True. Counting
        continues past the window, without buffering, to report total_lines.

        Args:
            path: File path
            start_line: First requested line (values below 1 become 1)
            end_line: Last requested line (default start_line + 99)
            context_lines: Context lines on each side (clamped to 0..50)

        Returns:
            Success response with:
            {
                "path": str,
                "resolved_path": str,
                "start_line": int,
                "end_line": int,
                "actual_start": int,
                "actual_end": int,
                "context_lines": int,
                "total_lines": int,
                "lines_returned": int,
                "lines": [{"num": int, "content": str, "context": bool}, ...]
            }
        """
        if not path:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT, message="path is required"
            )

        start_line = max(1, start_line)
        end_line = start_line + READ_LINES_DEFAULT_SPAN - 1 if end_line is None else max(1, end_line)
        context_lines = min(READ_LINES_MAX_CONTEXT, max(0, context_lines))
        actual_start = max(1, start_line - context_lines)
        actual_end = end_line + context_lines

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        context = {"path": path, "resolved": str(resolved)}
        if not resolved.is_file():
            return self._missing_or_wrong_type(resolved, context, "Not a file")

        lines = []
        total_lines = 0
        try:
            with open(resolved, "rb") as f:
                for raw in f:
                    total_lines += 1
                    if total_lines < actual_start or total_lines > actual_end:
                        continue
                    lines.append(
                        {
                            "num": total_lines,
                            "content": raw.decode("utf-8", errors="replace").rstrip("\r\n"),
                            "context": total_lines < start_line or total_lines > end_line,
                        }
                    )
        except OSError as e:
            return self._io_error("read file", e, context)

        result = {
            "path": path,
            "resolved_path": str(resolved),
            "start_line": start_line,
            "end_line": end_line,
            "actual_start": actual_start,
            "actual_end": min(actual_end, total_lines),
            "context_lines": context_lines,
            "total_lines": total_lines,
            "lines_returned": len(lines),
            "lines": lines,
        }
        return self._create_success_response(
            result=result, message=f"Read {len(lines)} lines from {path}"
        )

    def _missing_or_wrong_type(self, resolved: Path, context: dict, message: str) -> dict:
        if not resolved.exists():
            return self._create_error_response(
                error=ErrorCodes.NOT_FOUND, message="File not found", context=context
            )
        return self._create_error_response(
            error=ErrorCodes.WRONG_TYPE, message=message, context=context
        )

    def _ensure_parent(self, target: Path, mkdirs: bool) -> dict | None:
        """Make sure target's parent directory exists, creating it when allowed."""
        parent = target.parent
        if parent.is_dir():
            return None

        if not mkdirs:
            return self._create_error_response(
                error=ErrorCodes.NOT_FOUND,
                message="Parent directory does not exist",
                context={"dir": str(parent)},
            )

        try:
            parent.mkdir(mode=0o770, parents=True, exist_ok=True)
        except OSError as e:
            return self._io_error("create parent directory", e, {"dir": str(parent)})
        return None
