"""Filesystem helpers for staging trees."""

from __future__ import annotations

import os
from pathlib import Path


def iter_tree_files(root: Path, exclude: frozenset[str] = frozenset()) -> list[Path]:
    """List files and symlinks under root, sorted, relative to root.

    Symlinks are reported but never followed, so a link to a directory
    appears as a single entry.

    Args:
        root: Directory to walk.
        exclude: Top-level entry names to skip (e.g. {"DEBIAN"}).

    Returns:
        Sorted list of relative paths.
    """
    entries: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root)
        if rel_dir == Path("."):
            dirnames[:] = [d for d in dirnames if d not in exclude]
            filenames = [f for f in filenames if f not in exclude]
        for dirname in list(dirnames):
            if (current / dirname).is_symlink():
                entries.append(rel_dir / dirname)
                dirnames.remove(dirname)
        for filename in filenames:
            entries.append(rel_dir / filename)
    return sorted(entries, key=lambda p: p.as_posix())


def tree_size_bytes(root: Path, exclude: frozenset[str] = frozenset()) -> int:
    """Sum the byte sizes of regular files and symlinks under root.

    Symlinks count as their own size (lstat), directories count as zero.

    Args:
        root: Directory to measure.
        exclude: Top-level entry names to skip.

    Returns:
        Total size in bytes. Zero if root does not exist.
    """
    if not root.is_dir():
        return 0
    return sum((root / rel).lstat().st_size for rel in iter_tree_files(root, exclude))


def bytes_to_kb_rounded_up(size_bytes: int) -> int:
    """Convert a byte count to whole KiB, rounding up."""
    return (size_bytes + 1023) // 1024
