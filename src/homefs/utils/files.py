"""Low-level file helpers shared by the write and patch tools."""

import fcntl
import os
from datetime import datetime
from pathlib import Path

WRITE_MODES = ("overwrite", "append", "create")


def locked_write(path: Path | str, data: bytes, mode: str = "overwrite") -> int:
    """Write bytes to a file while holding an exclusive advisory lock.

    The lock covers only this write, so concurrent writers to the same file do
    not interleave. It does not make a caller's read-modify-write atomic.

    Args:
        path: Target file
        data: Bytes to write
        mode: "overwrite" (truncate), "append", or "create" (fails if the file exists)

    Returns:
        Number of bytes written

    Raises:
        FileExistsError: If mode is "create" and the file exists
        OSError: If the file cannot be opened, locked or written
    """
    if mode not in WRITE_MODES:
        raise ValueError(f"Invalid write mode: {mode}")

    flags = os.O_WRONLY | os.O_CREAT
    if mode == "append":
        flags |= os.O_APPEND
    elif mode == "create":
        flags |= os.O_EXCL

    fd = os.open(path, flags, 0o666)
    with os.fdopen(fd, "ab" if mode == "append" else "wb") as f:
        fcntl.flock(f, fcntl.LOCK_EX)
        try:
            if mode == "overwrite":
                f.truncate(0)
            f.write(data)
            f.flush()
        finally:
            fcntl.flock(f, fcntl.LOCK_UN)

    return len(data)


def iso_mtime(timestamp: float) -> str:
    """Format a modification timestamp as local ISO-8601 with offset."""
    return datetime.fromtimestamp(timestamp).astimezone().isoformat(timespec="seconds")


def looks_binary(path: Path | str, sniff_bytes: int) -> bool:
    """Check the first sniff_bytes of a file for null bytes."""
    with open(path, "rb") as f:
        return b"\x00" in f.read(sniff_bytes)
