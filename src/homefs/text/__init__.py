"""Text algorithms used by the file tools (tail, line patches, diffs)."""

from homefs.text.diff import edit_script, unified_diff
from homefs.text.patch import PatchError, apply_patches, parse_patches
from homefs.text.tail import tail_lines

__all__ = [
    "PatchError",
    "apply_patches",
    "edit_script",
    "parse_patches",
    "tail_lines",
    "unified_diff",
]
