"""Unified diff generation with a bounded greedy lookahead.

After a divergence the two sides are realigned at the nearest point (by total
lines skipped, within a fixed window) where a run of at least two equal lines
starts, or where an equal run reaches the end of both sides. This is cheaper
than a full LCS and produces an applicable diff, though not always a minimal
one for inputs with many repeated lines.
"""

from homefs.config.constants import DIFF_DEFAULT_CONTEXT, DIFF_LOOKAHEAD

# Edit script entry: (tag, index in a or None, index in b or None), tag in " ", "-", "+"
EditOp = tuple[str, int | None, int | None]


def _run_length(a: list[str], b: list[str], i: int, j: int) -> int:
    run = 0
    while i + run < len(a) and j + run < len(b) and a[i + run] == b[j + run]:
        run += 1
    return run


def _find_realignment(
    a: list[str], b: list[str], i: int, j: int, lookahead: int
) -> tuple[int, int] | None:
    m, n = len(a), len(b)
    for distance in range(1, lookahead + 1):
        for a_skip in range(distance + 1):
            ai, bj = i + a_skip, j + distance - a_skip
            if ai >= m or bj >= n or a[ai] != b[bj]:
                continue
            run = _run_length(a, b, ai, bj)
            if run >= 2 or (ai + run == m and bj + run == n):
                return ai, bj
    return None


def edit_script(a: list[str], b: list[str], lookahead: int = DIFF_LOOKAHEAD) -> list[EditOp]:
    """Compute an edit script turning a into b.

    Args:
        a: Original lines
        b: New lines
        lookahead: Maximum lines skipped on either side when searching for a realignment

    Returns:
        List of (tag, a_index, b_index) entries in output order
    """
    ops: list[EditOp] = []
    i = j = 0
    m, n = len(a), len(b)

    while i < m or j < n:
        if i < m and j < n and a[i] == b[j]:
            ops.append((" ", i, j))
            i += 1
            j += 1
            continue

        realign = _find_realignment(a, b, i, j, lookahead)
        if realign is None:
            # Nothing lines up inside the window: treat the whole window as changed
            a_stop, b_stop = min(m, i + lookahead), min(n, j + lookahead)
        else:
            a_stop, b_stop = realign

        while i < a_stop:
            ops.append(("-", i, None))
            i += 1
        while j < b_stop:
            ops.append(("+", None, j))
            j += 1

    return ops


def _group_changes(ops: list[EditOp], context: int) -> list[tuple[int, int]]:
    changes = [k for k, op in enumerate(ops) if op[0] != " "]
    if not changes:
        return []

    groups = []
    start = prev = changes[0]
    for k in changes[1:]:
        if k - prev - 1 > 2 * context:
            groups.append((start, prev))
            start = k
        prev = k
    groups.append((start, prev))
    return groups


def _hunk_header(ops: list[EditOp], lo: int, hi: int) -> str:
    a_before = sum(1 for op in ops[:lo] if op[0] != "+")
    b_before = sum(1 for op in ops[:lo] if op[0] != "-")
    a_count = sum(1 for op in ops[lo:hi] if op[0] != "+")
    b_count = sum(1 for op in ops[lo:hi] if op[0] != "-")
    a_start = a_before + 1 if a_count else a_before
    b_start = b_before + 1 if b_count else b_before
    return f"@@ -{a_start},{a_count} +{b_start},{b_count} @@"


def unified_diff(
    a: list[str],
    b: list[str],
    from_label: str,
    to_label: str,
    context: int = DIFF_DEFAULT_CONTEXT,
    lookahead: int = DIFF_LOOKAHEAD,
) -> str:
    """Render a unified diff between two line lists.

    Changes separated by more than 2 * context equal lines go into separate
    hunks; each hunk carries at most `context` lines before and after.

    Args:
        a: Original lines
        b: New lines
        from_label: Label for the '---' header
        to_label: Label for the '+++' header
        context: Context lines around each change
        lookahead: Realignment search window

    Returns:
        Diff text (headers only when a and b are equal)

    Example:
        >>> print(unified_diff(["a", "b", "c"], ["a", "x", "c"], "old", "new", 1))
        --- old
        +++ new
        @@ -1,3 +1,3 @@
         a
        -b
        +x
         c
    """
    context = max(0, context)
    ops = edit_script(a, b, lookahead)
    output = [f"--- {from_label}", f"+++ {to_label}"]

    for start, end in _group_changes(ops, context):
        lo = max(0, start - context)
        hi = min(len(ops), end + context + 1)
        output.append(_hunk_header(ops, lo, hi))
        for tag, ai, bj in ops[lo:hi]:
            line = a[ai] if ai is not None else b[bj]
            output.append(f"{tag}{line}")

    return "\n".join(output)
