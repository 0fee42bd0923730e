"""File discovery and in-place writes for the output tree."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable

from distshrink.utils.naming import byte_length


def find_files(root: Path, extensions: Iterable[str]) -> list[Path]:
    """Return every file under ``root`` with one of ``extensions``, sorted."""
    wanted = {ext.lower() for ext in extensions}
    return sorted(
        path for path in root.rglob("*") if path.is_file() and path.suffix.lower() in wanted
    )


def read_text(path: Path) -> str:
    # newline="" keeps \r\n intact so untouched bytes stay untouched
    with open(path, "r", encoding="utf-8", newline="") as fh:
        return fh.read()


def write_if_smaller(path: Path, original: str, updated: str, dry_run: bool = False) -> int:
    """Write ``updated`` over ``path`` when it is strictly smaller.

    Returns the number of bytes saved; nothing is written (and the file's
    timestamp is left alone) when the result is not smaller.
    """
    saved = byte_length(original) - byte_length(updated)
    if saved <= 0:
        return 0
    if not dry_run:
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(updated)
    return saved
