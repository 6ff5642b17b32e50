"""Line-based patching and diff tools.

Patches are applied to an in-memory copy of the file and written back in one
locked write. The read-modify-write cycle is not atomic against concurrent
writers.
"""

import logging
import shutil
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field

from homefs.config.constants import DIFF_DEFAULT_CONTEXT, DIFF_MAX_CONTEXT
from homefs.exceptions import ErrorCodes
from homefs.text.diff import unified_diff
from homefs.text.patch import PatchError, apply_patches, parse_patches
from homefs.tools.toolset import HomeToolset
from homefs.utils.files import locked_write

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


def _read_text(path: Path) -> str:
    return path.read_bytes().decode("utf-8", errors="replace")


class EditTools(HomeToolset):
    """Tools that modify or compare file contents line by line."""

    def get_tools(self) -> list:
        return [self.patch_file, self.diff_files]

    async def patch_file(
        self,
        path: Annotated[str, Field(description="File path to patch")],
        patches: Annotated[
            list[dict[str, Any]],
            Field(
                description=(
                    "Ordered patch operations. Each has 'op' (replace, insert, delete, "
                    "replace_string). replace/delete use start_line and end_line, insert "
                    "uses start_line and content, replace_string uses search, replace and "
                    "count (-1 for all). Line numbers are 1-indexed and refer to the file "
                    "as modified by the preceding operations."
                )
            ),
        ],
        dry_run: Annotated[
            bool, Field(description="If true, return the result without writing the file")
        ] = False,
        backup: Annotated[
            bool, Field(description="If true, create a .bak backup before patching")
        ] = False,
    ) -> dict:
        """Apply line-based patches to a file.

        Operations run in order against the buffer left by the previous one.
        Any invalid operation aborts the whole patch before anything is written.

        Args:
            path: File to patch
            patches: Patch operation objects
            dry_run: Preview only; adds a unified diff of the change
            backup: Copy the original to <path>.bak before writing

        Returns:
            Success response with:
            {
                "path": str,
                "resolved_path": str,
                "dry_run": bool,
                "operations": [dict, ...],
                "original_lines": int,
                "new_lines": int,
                # dry run
                "changed": bool,
                "diff": str,
                # real run
                "backup": bool,
                "backup_path": str | None,
                "bytes_written": int
            }
        """
        if not path:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT, message="path is required"
            )
        if not patches:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT,
                message="patches array is required and cannot be empty",
            )

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        if error := self._check_not_protected(resolved, {"path": path}, "modify"):
            return error

        context = {"path": path, "resolved": str(resolved)}
        if not resolved.is_file():
            if not resolved.exists():
                return self._create_error_response(
                    error=ErrorCodes.NOT_FOUND, message="File not found", context=context
                )
            return self._create_error_response(
                error=ErrorCodes.WRONG_TYPE, message="Not a file", context=context
            )

        try:
            original = _read_text(resolved)
        except OSError as e:
            return self._io_error("read file", e, context)

        original_lines = original.split("\n")
        try:
            operations = parse_patches(patches)
            new_lines, reports = apply_patches(original_lines, operations)
        except PatchError as e:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT,
                message=str(e),
                context={"path": path, "patch_index": e.index, **e.context},
            )

        new_content = "\n".join(new_lines)
        result: dict[str, Any] = {
            "path": path,
            "resolved_path": str(resolved),
            "dry_run": dry_run,
            "operations": reports,
            "original_lines": len(original_lines),
            "new_lines": len(new_lines),
        }

        if dry_run:
            result["changed"] = new_content != original
            result["diff"] = (
                unified_diff(original_lines, new_lines, path, path, DIFF_DEFAULT_CONTEXT)
                if result["changed"]
                else ""
            )
            return self._create_success_response(
                result=result, message=f"Dry run: {len(reports)} operations on {path}"
            )

        backup_path = None
        if backup:
            backup_path = str(resolved) + BACKUP_SUFFIX
            try:
                shutil.copy2(resolved, backup_path)
            except OSError as e:
                return self._io_error("create backup", e, {**context, "backup_path": backup_path})

        try:
            bytes_written = locked_write(resolved, new_content.encode("utf-8"))
        except OSError as e:
            return self._io_error("write patched file", e, context)

        result.update(
            {"backup": backup, "backup_path": backup_path, "bytes_written": bytes_written}
        )
        logger.info(f"Patched {resolved}: {len(reports)} operations, {bytes_written} bytes")
        return self._create_success_response(
            result=result, message=f"Applied {len(reports)} operations to {path}"
        )

    async def diff_files(
        self,
        path: Annotated[str, Field(description="First file path (the original)")],
        path2: Annotated[
            str | None,
            Field(description="Path to the second file (optional if content2 is provided)"),
        ] = None,
        content2: Annotated[
            str | None,
            Field(description="Content to compare against the file (alternative to path2)"),
        ] = None,
        context_lines: Annotated[
            int,
            Field(
                description="Lines of context around changes (default 3, max 20)",
                json_schema_extra={"minimum": 0, "maximum": DIFF_MAX_CONTEXT},
            ),
        ] = DIFF_DEFAULT_CONTEXT,
    ) -> dict:
        """Generate a unified diff between a file and another file or given content.

        Args:
            path: Original file
            path2: Second file; takes precedence over content2
            content2: Replacement text to compare against
            context_lines: Context around each change (clamped to 0..20)

        Returns:
            Success response with:
            {
                "path": str,
                "resolved_path": str,
                "path2": str | None,
                "resolved_path2": str | None,
                "context_lines": int,
                "identical": bool,
                "lines_file1": int,
                "lines_file2": int,
                "diff": str  # "" when identical
            }
        """
        if not path:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT, message="path is required"
            )
        if not path2 and content2 is None:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT,
                message="Either path2 or content2 is required",
            )

        context_lines = min(DIFF_MAX_CONTEXT, max(0, context_lines))

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        first = self._read_compare_file(path, resolved, "path")
        if isinstance(first, dict):
            return first

        resolved2 = None
        label2 = "new"
        if path2:
            resolved2 = self._resolve_path(path2, "path2")
            if isinstance(resolved2, dict):
                return resolved2  # Error response
            second = self._read_compare_file(path2, resolved2, "path2")
            if isinstance(second, dict):
                return second
            label2 = path2
        else:
            second = content2

        lines1 = first.split("\n")
        lines2 = second.split("\n")
        identical = first == second

        result = {
            "path": path,
            "resolved_path": str(resolved),
            "path2": path2 or None,
            "resolved_path2": str(resolved2) if resolved2 is not None else None,
            "context_lines": context_lines,
            "identical": identical,
            "lines_file1": len(lines1),
            "lines_file2": len(lines2),
            "diff": "" if identical else unified_diff(lines1, lines2, path, label2, context_lines),
        }
        return self._create_success_response(
            result=result,
            message="Files are identical" if identical else f"Diff of {path} against {label2}",
        )

    def _read_compare_file(self, user_path: str, resolved: Path, arg_name: str) -> str | dict:
        context = {arg_name: user_path, "resolved": str(resolved)}
        if not resolved.is_file():
            if not resolved.exists():
                return self._create_error_response(
                    error=ErrorCodes.NOT_FOUND, message="File not found", context=context
                )
            return self._create_error_response(
                error=ErrorCodes.WRONG_TYPE, message="Not a file", context=context
            )
        try:
            return _read_text(resolved)
        except OSError as e:
            return self._io_error("read file", e, context)
