"""Stage completion records.

Each stage writes build/.ffbuild/<stage>.json when it finishes. Later
stages read these records instead of sourcing shell files, and a missing
record is a missing-prerequisite error naming the stage to run.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ffbuild.errors import MissingPrerequisiteError

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"


def record_path(state_dir: Path, stage: str) -> Path:
    return state_dir / f"{stage}{RECORD_SUFFIX}"


def write_record(state_dir: Path, stage: str, data: dict[str, Any]) -> Path:
    """Write a stage record atomically.

    Returns:
        Path of the record file.
    """
    state_dir.mkdir(parents=True, exist_ok=True)
    payload = {
        "stage": stage,
        "completed_at": datetime.now(timezone.utc).isoformat(),
        **data,
    }
    path = record_path(state_dir, stage)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str))
    tmp.replace(path)
    logger.debug("Wrote %s record", stage)
    return path


def read_record(state_dir: Path, stage: str) -> dict[str, Any] | None:
    """Read a stage record, or None if absent or unreadable."""
    path = record_path(state_dir, stage)
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable %s record: %s", stage, e)
        return None


def require_record(state_dir: Path, stage: str, needed_by: str) -> dict[str, Any]:
    """Read a stage record that another stage depends on.

    Raises:
        MissingPrerequisiteError: If the record does not exist.
    """
    record = read_record(state_dir, stage)
    if record is None:
        raise MissingPrerequisiteError(
            f"'{needed_by}' requires a completed '{stage}' stage; "
            f"run 'ffbuild {stage}' first",
            stage=stage,
            artifact=record_path(state_dir, stage),
        )
    return record


def remove_record(state_dir: Path, stage: str) -> None:
    record_path(state_dir, stage).unlink(missing_ok=True)
