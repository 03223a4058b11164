"""Housekeeping commands: clean, logs and backup."""

from __future__ import annotations

import logging
import shutil
import tarfile
from collections import deque
from datetime import datetime
from pathlib import Path

from ffbuild.config.models import FFBuildConfig
from ffbuild.errors import MissingPrerequisiteError

logger = logging.getLogger(__name__)

BACKUP_EXCLUDED_SUFFIXES = (".o",)
BACKUP_EXCLUDED_DIRS = (".deps",)


def run_clean(config: FFBuildConfig) -> list[Path]:
    """Remove the build and dist roots.

    Returns:
        Directories that were removed.
    """
    removed = []
    for path in (config.paths.build_dir, config.paths.dist_dir):
        if path.exists():
            shutil.rmtree(path)
            removed.append(path)
            logger.info("Removed %s", path)
    return removed


def tail_log(log_file: Path, lines: int = 50) -> list[str]:
    """Last lines of the build log (empty if it does not exist)."""
    if lines < 1 or not log_file.exists():
        return []
    with log_file.open(encoding="utf-8", errors="replace") as fh:
        return [line.rstrip("\n") for line in deque(fh, maxlen=lines)]


def _backup_filter(info: tarfile.TarInfo) -> tarfile.TarInfo | None:
    parts = Path(info.name).parts
    if any(part in BACKUP_EXCLUDED_DIRS for part in parts):
        return None
    if info.name.endswith(BACKUP_EXCLUDED_SUFFIXES):
        return None
    return info


def run_backup(config: FFBuildConfig, dest_dir: Path | None = None) -> Path:
    """Snapshot build and dist roots into a timestamped tarball.

    Object files and .deps directories are left out.

    Returns:
        Path of the backup archive.

    Raises:
        MissingPrerequisiteError: If neither root exists.
    """
    roots = [p for p in (config.paths.build_dir, config.paths.dist_dir) if p.exists()]
    if not roots:
        raise MissingPrerequisiteError("Nothing to back up: no build or dist directory")

    dest_dir = dest_dir or config.paths.build_dir.parent
    dest_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    archive = dest_dir / f"ffmpeg-build-backup-{stamp}.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        for root in roots:
            tar.add(root, arcname=root.name, filter=_backup_filter)
    logger.info("Backup written to %s", archive)
    return archive
