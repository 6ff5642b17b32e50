"""Recursive literal text search."""

import logging
import os
from pathlib import Path
from typing import Annotated

from pydantic import Field

from homefs.config.constants import (
    BINARY_SNIFF_BYTES,
    SEARCH_DEFAULT_RESULTS,
    SEARCH_FALLBACK_RESULTS,
    SEARCH_MAX_RESULTS,
    SEARCH_SNIPPET_CHARS,
)
from homefs.exceptions import ErrorCodes
from homefs.tools.toolset import HomeToolset
from homefs.utils.files import looks_binary

logger = logging.getLogger(__name__)


def _normalize_extensions(extensions: list[str] | None) -> set[str]:
    return {ext.lower().lstrip(".") for ext in extensions or [] if ext}


def _matches_extension(name: str, extensions: set[str]) -> bool:
    if not extensions:
        return True
    suffix = Path(name).suffix.lower().lstrip(".")
    return suffix != "" and suffix in extensions


class SearchTools(HomeToolset):
    """Case-sensitive substring search over files under the home directory."""

    def get_tools(self) -> list:
        return [self.search_text]

    async def search_text(
        self,
        query: Annotated[str, Field(description="Text to search for (case-sensitive substring)")],
        path: Annotated[
            str,
            Field(description='Directory or file to search; default is base_dir (e.g. "apps" or "~/logs")'),
        ] = ".",
        max_results: Annotated[
            int,
            Field(
                description="Maximum number of matches to return (default 50, max 500)",
                json_schema_extra={"minimum": 1, "maximum": SEARCH_MAX_RESULTS},
            ),
        ] = SEARCH_DEFAULT_RESULTS,
        extensions: Annotated[
            list[str] | None,
            Field(description='Optional list of file extensions (e.g. ["log", "txt", "php"])'),
        ] = None,
    ) -> dict:
        """Search text files under a directory for a substring.

        Directories are walked depth-first with an explicit stack. The search
        stops as soon as max_results matches are collected. Files with a null
        byte in their first 8 KiB are skipped, as are unreadable files and
        directories. Symlinked directories are not descended into, and symlinked
        files are only read when their target stays inside home.

        Args:
            query: Substring to find
            path: Directory or single file to search
            max_results: Match cap (<= 0 becomes 10, capped at 500)
            extensions: Extension filter, case-insensitive, leading dot optional

        Returns:
            Success response with:
            {
                "path": str,
                "resolved_root": str,
                "query": str,
                "max_results": int,
                "count": int,
                "truncated": bool,
                "matches": [
                    {"path": str, "line": int, "snippet": str},  # path relative to home
                    ...
                ]
            }
        """
        if not query:
            return self._create_error_response(
                error=ErrorCodes.INVALID_ARGUMENT, message="query is required"
            )

        if max_results <= 0:
            max_results = SEARCH_FALLBACK_RESULTS
        max_results = min(max_results, SEARCH_MAX_RESULTS)
        wanted = _normalize_extensions(extensions)

        resolved = self._resolve_path(path)
        if isinstance(resolved, dict):
            return resolved  # Error response

        matches: list[dict] = []

        if resolved.is_dir():
            stack: list[str] = [str(resolved)]
            while stack and len(matches) < max_results:
                directory = stack.pop()
                try:
                    with os.scandir(directory) as it:
                        entries = sorted(it, key=lambda e: e.name)
                except OSError as e:
                    logger.debug(f"Skipping unreadable directory {directory}: {e}")
                    continue

                for entry in entries:
                    if len(matches) >= max_results:
                        break
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                            continue
                        if self._is_escaping_link(entry) or not entry.is_file():
                            continue
                    except OSError:
                        continue
                    if _matches_extension(entry.name, wanted):
                        self._search_file(entry.path, query, max_results, matches)
        elif resolved.is_file():
            self._search_file(str(resolved), query, max_results, matches)
        else:
            return self._create_error_response(
                error=ErrorCodes.NOT_FOUND,
                message="Path not found",
                context={"path": path, "resolved": str(resolved)},
            )

        result = {
            "path": path,
            "resolved_root": str(resolved),
            "query": query,
            "max_results": max_results,
            "count": len(matches),
            "truncated": len(matches) >= max_results,
            "matches": matches,
        }
        return self._create_success_response(
            result=result, message=f"Found {len(matches)} matches for '{query}'"
        )

    def _search_file(self, file_path: str, query: str, max_results: int, matches: list[dict]) -> None:
        """Append matches from one file until the global cap is reached."""
        try:
            if looks_binary(file_path, BINARY_SNIFF_BYTES):
                return
            with open(file_path, encoding="utf-8", errors="replace") as f:
                for line_num, line in enumerate(f, start=1):
                    if len(matches) >= max_results:
                        return
                    if query in line:
                        matches.append(
                            {
                                "path": self._relative(file_path),
                                "line": line_num,
                                "snippet": line.strip()[:SEARCH_SNIPPET_CHARS],
                            }
                        )
        except OSError as e:
            logger.debug(f"Skipping unreadable file {file_path}: {e}")
