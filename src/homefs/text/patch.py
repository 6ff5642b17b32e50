"""Line-based patch operations applied to an in-memory line buffer.

Operations are applied in order and each one sees the buffer produced by the
previous ones, so line numbers always refer to the current state of the
buffer. Line numbers are 1-based.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

VALID_OPS = ["replace", "insert", "delete", "replace_string"]


class PatchError(Exception):
    """A patch operation is malformed or cannot be applied.

    Attributes:
        index: Position of the failing operation in the patch list
        context: Diagnostic values
    """

    def __init__(self, index: int, message: str, context: dict | None = None):
        self.index = index
        self.context = dict(context or {})
        super().__init__(f"Patch {index}: {message}")


class _PatchOp(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ReplaceOp(_PatchOp):
    """Replace lines [start_line, end_line] with content."""

    op: Literal["replace"]
    start_line: int = 0
    end_line: int | None = None
    content: str = ""


class InsertOp(_PatchOp):
    """Insert content before start_line."""

    op: Literal["insert"]
    start_line: int = 0
    content: str = ""


class DeleteOp(_PatchOp):
    """Delete lines [start_line, end_line]."""

    op: Literal["delete"]
    start_line: int = 0
    end_line: int | None = None


class ReplaceStringOp(_PatchOp):
    """Replace up to `count` occurrences of search (-1 for all) in the joined text."""

    op: Literal["replace_string"]
    search: str = ""
    replace: str = ""
    count: int = 1


PatchOperation = Annotated[
    ReplaceOp | InsertOp | DeleteOp | ReplaceStringOp, Field(discriminator="op")
]

_patch_adapter: TypeAdapter[PatchOperation] = TypeAdapter(PatchOperation)


def parse_patches(raw_patches: list[Any]) -> list[PatchOperation]:
    """Validate raw patch dicts into typed operations.

    Args:
        raw_patches: Patch objects as received from the caller

    Returns:
        List of typed patch operations

    Raises:
        PatchError: On the first malformed patch (missing/unknown op, bad field types)
    """
    operations = []
    for idx, raw in enumerate(raw_patches):
        if not isinstance(raw, dict) or not isinstance(raw.get("op"), str):
            raise PatchError(idx, "'op' is required", {"patch": raw})
        if raw["op"] not in VALID_OPS:
            raise PatchError(idx, f"unknown operation '{raw['op']}'", {"valid_ops": VALID_OPS})
        try:
            operations.append(_patch_adapter.validate_python(raw))
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in e.errors()
            )
            raise PatchError(idx, f"invalid fields ({details})", {"patch": raw}) from e
    return operations


def _split_content(content: str) -> list[str]:
    return content.split("\n") if content != "" else []


def _line_range(idx: int, start: int, end: int | None, what: str = "") -> tuple[int, int]:
    end = start if end is None else end
    if start < 1 or end < start:
        raise PatchError(idx, f"invalid line range{what}", {"start": start, "end": end})
    return start, end


def apply_patches(lines: list[str], operations: list[PatchOperation]) -> tuple[list[str], list[dict]]:
    """Apply patch operations in order to a copy of a line buffer.

    Args:
        lines: File contents split on '\\n'
        operations: Parsed patch operations

    Returns:
        Tuple of (new line buffer, per-operation report dicts)

    Raises:
        PatchError: If an operation has an invalid range or its search text is absent

    Example:
        >>> ops = parse_patches([
        ...     {"op": "delete", "start_line": 2, "end_line": 3},
        ...     {"op": "insert", "start_line": 2, "content": "X"},
        ... ])
        >>> apply_patches(["1", "2", "3", "4", ""], ops)[0]
        ['1', 'X', '4', '']
    """
    buffer = list(lines)
    reports: list[dict] = []

    for idx, operation in enumerate(operations):
        if isinstance(operation, ReplaceOp):
            start, end = _line_range(idx, operation.start_line, operation.end_line)
            new_lines = _split_content(operation.content)
            removed = len(buffer[start - 1 : end])
            buffer[start - 1 : end] = new_lines
            reports.append(
                {
                    "op": "replace",
                    "start": start,
                    "end": end,
                    "removed_count": removed,
                    "added_count": len(new_lines),
                }
            )

        elif isinstance(operation, InsertOp):
            before_line = operation.start_line
            if before_line < 1:
                raise PatchError(
                    idx, "start_line must be >= 1 for insert", {"start_line": before_line}
                )
            new_lines = _split_content(operation.content)
            buffer[before_line - 1 : before_line - 1] = new_lines
            reports.append(
                {"op": "insert", "before_line": before_line, "added_count": len(new_lines)}
            )

        elif isinstance(operation, DeleteOp):
            start, end = _line_range(idx, operation.start_line, operation.end_line, " for delete")
            removed = len(buffer[start - 1 : end])
            del buffer[start - 1 : end]
            reports.append({"op": "delete", "start": start, "end": end, "removed_count": removed})

        else:
            buffer, report = _replace_string(idx, buffer, operation)
            reports.append(report)

    return buffer, reports


def _replace_string(idx: int, buffer: list[str], operation: ReplaceStringOp) -> tuple[list[str], dict]:
    if operation.search == "":
        raise PatchError(idx, "'search' cannot be empty for replace_string")
    if operation.count == 0 or operation.count < -1:
        raise PatchError(
            idx, "count must be -1 (all) or a positive number", {"count": operation.count}
        )

    text = "\n".join(buffer)
    occurrences = text.count(operation.search)
    if occurrences == 0:
        raise PatchError(idx, "search string not found", {"search": operation.search})

    if operation.count == -1:
        replaced = occurrences
        text = text.replace(operation.search, operation.replace)
    else:
        replaced = min(operation.count, occurrences)
        text = text.replace(operation.search, operation.replace, operation.count)

    report = {
        "op": "replace_string",
        "search": operation.search,
        "occurrences": occurrences,
        "replaced_count": replaced,
    }
    return text.split("\n"), report
