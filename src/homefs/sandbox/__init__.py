"""Path sandboxing for homefs."""

from homefs.sandbox.guard import PROTECTED_NAMES, is_protected_path, protected_paths
from homefs.sandbox.paths import (
    canonicalize_path,
    determine_home_dir,
    is_within,
    resolve_base_dir,
    resolve_path,
)
from homefs.sandbox.workspace import Workspace

__all__ = [
    "PROTECTED_NAMES",
    "Workspace",
    "canonicalize_path",
    "determine_home_dir",
    "is_protected_path",
    "is_within",
    "protected_paths",
    "resolve_base_dir",
    "resolve_path",
]
