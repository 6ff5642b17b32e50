"""Path canonicalization and sandbox resolution.

This module is the security core of homefs. Every user-supplied path passes
through resolve_path() before any filesystem primitive sees it, and the result
is guaranteed to equal the home directory or lie beneath it.

Resolution is two-phase:
- Lexical: tilde/absolute/relative classification, then canonicalize_path()
- Filesystem: real-path resolution of whatever part of the path exists, so a
  symlink inside home that points outside it is caught
"""

import logging
import os
import re
from pathlib import Path

from homefs.exceptions import PathEscapeError, SymlinkUnresolvableError

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"/+")


def canonicalize_path(path: str) -> str:
    """Normalize a path string without touching the filesystem.

    Backslashes become forward slashes, `.` and empty segments are dropped, and
    `..` pops the previous segment. A `..` with nothing left to pop is dropped,
    so leading `../../..` bottoms out at `/` or `.` instead of escaping.

    Args:
        path: Any string

    Returns:
        Canonical path string ('/' or '.' when nothing remains)

    Example:
        >>> canonicalize_path("/home/u//apps/./x/../y")
        '/home/u/apps/y'
        >>> canonicalize_path("../../a")
        'a'
    """
    path = path.replace("\\", "/")
    is_absolute = path.startswith("/")

    parts: list[str] = []
    for segment in _SEPARATORS.split(path):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)

    normalized = ("/" if is_absolute else "") + "/".join(parts)
    if normalized == "":
        return "/" if is_absolute else "."
    return normalized


def is_within(path: str, home_dir: str) -> bool:
    """Check that path equals home_dir or lies beneath it."""
    home_dir = home_dir.rstrip("/")
    return path == home_dir or path.startswith(home_dir + "/")


def determine_home_dir(override: str | None = None) -> str:
    """Determine the sandbox root.

    Priority order:
        1. Explicit override (settings or HOMEFS_HOME)
        2. $HOME, if it is an existing directory
        3. Path.home()

    The result is real-path resolved so that symlink resolution of paths
    beneath it compares against the same prefix.

    Args:
        override: Optional explicit home directory

    Returns:
        Absolute home directory without trailing slash
    """
    candidate = override
    if not candidate:
        env_home = os.getenv("HOME")
        if env_home and os.path.isdir(env_home):
            candidate = env_home
        else:
            candidate = str(Path.home())

    home = os.path.realpath(os.path.expanduser(candidate))
    return home.rstrip("/") or "/"


def _expand(user_path: str, base_dir: str, home_dir: str) -> str:
    """Turn a tilde, absolute or relative path into an absolute string."""
    if user_path in ("", "."):
        return base_dir

    if user_path.startswith("~"):
        rest = user_path[1:].lstrip("/")
        return home_dir + ("/" + rest if rest else "")
    if user_path.startswith("/"):
        return user_path
    return base_dir + "/" + user_path


def resolve_base_dir(base_setting: str, home_dir: str) -> str:
    """Resolve the configured base directory, failing closed to home.

    Evaluated once at startup using lexical rules only. A misconfigured value
    never raises; it snaps back to home_dir so the sandbox cannot be disabled
    by configuration.

    Args:
        base_setting: Configured base_dir ('~', '~/apps', 'apps', '/home/u/apps')
        home_dir: Absolute home directory

    Returns:
        Absolute base directory within home_dir
    """
    home_dir = home_dir.rstrip("/")
    base_setting = base_setting.strip()

    if base_setting in ("", "~"):
        return home_dir

    full = canonicalize_path(_expand(base_setting, home_dir, home_dir))

    if not is_within(full, home_dir):
        logger.warning(
            f"Configured base_dir {base_setting!r} resolves outside {home_dir}; using home directory"
        )
        return home_dir

    return full


def _real_existing(full: str) -> str:
    """Real-path resolve the existing part of an absolute canonical path.

    Raises:
        SymlinkUnresolvableError: If a symlink on the path cannot be resolved
    """
    head = full
    tail: list[str] = []
    while not os.path.lexists(head):
        parent = os.path.dirname(head)
        if parent == head:
            return full
        tail.append(os.path.basename(head))
        head = parent

    try:
        real = os.path.realpath(head, strict=True)
    except OSError as e:
        if os.path.islink(head):
            raise SymlinkUnresolvableError(
                "Cannot resolve symlink target", {"symlink": head}
            ) from e
        # Exists but cannot be resolved (e.g. permissions); keep the lexical path
        logger.debug(f"Real-path resolution failed for {head}: {e}")
        return full

    if not tail:
        return real
    return canonicalize_path(real + "/" + "/".join(reversed(tail)))


def resolve_path(user_path: str, base_dir: str, home_dir: str) -> str:
    """Resolve a user-supplied path into an absolute path within home_dir.

    Args:
        user_path: Path from the caller ('notes.txt', '~/logs/a.log', '/home/u/x')
        base_dir: Root for relative paths (already confined to home_dir)
        home_dir: Sandbox root

    Returns:
        Absolute, canonical, symlink-resolved path equal to home_dir or beneath it

    Raises:
        PathEscapeError: If the resolved path falls outside home_dir
        SymlinkUnresolvableError: If a symlink on the path is broken or inaccessible

    Example:
        >>> resolve_path("~/apps/../logs", "/home/u", "/home/u")
        '/home/u/logs'
    """
    user_path = user_path.strip()
    home_dir = home_dir.rstrip("/")
    base_dir = base_dir.rstrip("/") or home_dir

    full = canonicalize_path(_expand(user_path, base_dir, home_dir))
    full = _real_existing(full)

    if not is_within(full, home_dir):
        logger.warning(f"Path escape blocked: {user_path!r} -> {full} (home: {home_dir})")
        raise PathEscapeError(
            "Resolved path escapes home directory", {"path": user_path, "resolved": full}
        )

    logger.debug(f"Path resolved: {user_path!r} -> {full}")
    return full
