"""Build and host information."""

from __future__ import annotations

import os
import platform
import shutil
from pathlib import Path
from typing import Any

from ffbuild import __version__
from ffbuild.core.formatting import format_file_size
from ffbuild.core.fs_utils import tree_size_bytes
from ffbuild.pipeline.build import staged_binary
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.records import read_record

PACKAGE_SUFFIXES = (".deb", ".tar.gz")
OS_RELEASE = Path("/etc/os-release")
MEMINFO = Path("/proc/meminfo")


def os_description() -> str:
    """PRETTY_NAME from os-release, else the platform string."""
    try:
        for line in OS_RELEASE.read_text().splitlines():
            if line.startswith("PRETTY_NAME="):
                return line.split("=", 1)[1].strip().strip('"')
    except OSError:
        pass
    return platform.platform()


def total_memory_bytes() -> int | None:
    try:
        for line in MEMINFO.read_text().splitlines():
            if line.startswith("MemTotal:"):
                return int(line.split()[1]) * 1024
    except (OSError, ValueError, IndexError):
        return None
    return None


def system_info(path: Path) -> dict[str, Any]:
    probe = path
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    memory = total_memory_bytes()
    return {
        "os": os_description(),
        "architecture": platform.machine(),
        "cpu_count": os.cpu_count(),
        "memory": format_file_size(memory) if memory else "unknown",
        "disk_free": format_file_size(shutil.disk_usage(probe).free),
    }


def list_packages(dist_dir: Path) -> list[dict[str, Any]]:
    if not dist_dir.is_dir():
        return []
    return [
        {"name": p.name, "size": format_file_size(p.stat().st_size)}
        for p in sorted(dist_dir.iterdir())
        if p.is_file() and p.name.endswith(PACKAGE_SUFFIXES)
    ]


def collect_info(ctx: PipelineContext) -> dict[str, Any]:
    """Everything `ffbuild info` reports."""
    paths = ctx.config.paths
    build_record = read_record(paths.state_dir, "build")
    binary = staged_binary(ctx)
    features = (build_record or {}).get("features", {})
    return {
        "ffbuild_version": __version__,
        "ffmpeg_version": ctx.config.build.ffmpeg_version,
        "build": {
            "status": "built" if build_record and binary.exists() else "not built",
            "build_dir": str(paths.build_dir),
            "size": format_file_size(tree_size_bytes(paths.build_dir)),
            "completed_at": (build_record or {}).get("completed_at"),
        },
        "stages": {
            stage: read_record(paths.state_dir, stage) is not None
            for stage in ("setup", "build", "package", "install", "test")
        },
        "features": {
            "enabled": features.get("enabled", []),
            "omitted": features.get("omitted", []),
            "suspected_dropped": features.get("suspected_dropped"),
        },
        "packages": list_packages(paths.dist_dir),
        "system": system_info(paths.build_dir),
    }
