"""Read the last lines of a file without loading all of it."""

import os
from pathlib import Path

from homefs.config.constants import TAIL_CHUNK_SIZE


def tail_lines(path: Path | str, lines: int, chunk_size: int = TAIL_CHUNK_SIZE) -> str:
    """Return the last `lines` lines of a file.

    The file is read backwards in fixed-size chunks until more than `lines`
    newlines are buffered (so the earliest returned line is complete) or the
    start of the file is reached. A single trailing newline terminates the last
    line rather than starting an empty one.

    Args:
        path: File to read
        lines: Number of lines to return (values below 1 are treated as 1)
        chunk_size: Bytes read per backwards step

    Returns:
        The lines joined with '\\n', without a trailing newline

    Raises:
        OSError: If the file cannot be opened or read

    Example:
        >>> tail_lines("log.txt", 3)  # file contains "a\\nb\\nc\\nd\\n"
        'b\\nc\\nd'
    """
    lines = max(1, lines)

    with open(path, "rb") as f:
        f.seek(0, os.SEEK_END)
        pos = f.tell()
        buffer = b""

        while pos > 0 and buffer.count(b"\n") <= lines:
            read_size = min(chunk_size, pos)
            pos -= read_size
            f.seek(pos)
            buffer = f.read(read_size) + buffer

    text = buffer.decode("utf-8", errors="replace")
    if text.endswith("\n"):
        text = text[:-1]
    if text == "":
        return ""

    return "\n".join(text.split("\n")[-lines:])
