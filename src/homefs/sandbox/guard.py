"""Protected-path guard for mutation operations.

Write, move (either endpoint), delete and patch must refuse to touch these
paths even when they are inside the sandbox. Read and list are not guarded.
"""

from collections.abc import Iterable

from homefs.config.constants import CONFIG_FILE_NAME

# Names relative to the home directory; each also protects everything beneath it
PROTECTED_NAMES = (
    CONFIG_FILE_NAME,
    ".bashrc",
    ".bash_profile",
    ".bash_login",
    ".profile",
    ".zshrc",
    ".zprofile",
    ".ssh",
    ".gnupg",
)


def protected_paths(home_dir: str, extra: Iterable[str] = ()) -> tuple[str, ...]:
    """Build the absolute protected set for a home directory.

    Args:
        home_dir: Absolute home directory
        extra: Additional absolute paths to protect (e.g. a relocated config file)

    Returns:
        Tuple of absolute paths
    """
    home_dir = home_dir.rstrip("/")
    paths = [f"{home_dir}/{name}" for name in PROTECTED_NAMES]
    for path in extra:
        path = path.rstrip("/")
        if path and path not in paths:
            paths.append(path)
    return tuple(paths)


def is_protected_path(path: str, home_dir: str, extra: Iterable[str] = ()) -> bool:
    """Check whether a resolved path must not be modified.

    A path is protected when it equals a protected entry or lies beneath one.
    Ancestors of a protected entry are protected too, so the home directory
    and any parent of a relocated config file can never be moved or deleted.

    Args:
        path: Resolved absolute path
        home_dir: Absolute home directory
        extra: Additional absolute paths to protect

    Returns:
        True if mutation must be refused

    Example:
        >>> is_protected_path("/home/u/.ssh/id_rsa", "/home/u")
        True
        >>> is_protected_path("/home/u/.sshrc", "/home/u")
        False
        >>> is_protected_path("/home/u/etc", "/home/u", ["/home/u/etc/homefs.json"])
        True
    """
    if path.rstrip("/") == home_dir.rstrip("/"):
        return True

    for protected in protected_paths(home_dir, extra):
        if path == protected or path.startswith(protected + "/"):
            return True
        if protected.startswith(path.rstrip("/") + "/"):
            return True
    return False
