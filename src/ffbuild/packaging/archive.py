"""Portable tarball and Debian package writers."""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

from ffbuild.packaging.manifest import CONTROL_DIR, PackageManifest
from ffbuild.packaging.templates import render_template
from ffbuild.steps.executor import StepExecutor
from ffbuild.steps.models import BuildStep

logger = logging.getLogger(__name__)


def portable_archive_name(version: str) -> str:
    return f"ffmpeg-{version}-ubuntu-x64-portable.tar.gz"


def write_archive(staging_root: Path, dist_dir: Path, name: str) -> Path:
    """Write a gzip tarball of the staging tree.

    Members are stored relative to the staging root (usr/local/...), so
    extracting into / installs the files.
    """
    dist_dir.mkdir(parents=True, exist_ok=True)
    archive = dist_dir / name
    with tarfile.open(archive, "w:gz") as tar:
        for entry in sorted(staging_root.iterdir()):
            tar.add(entry, arcname=entry.name)
    logger.info("Created %s", archive)
    return archive


def build_deb(
    package_root: Path,
    dist_dir: Path,
    manifest: PackageManifest,
    executor: StepExecutor,
) -> Path:
    """Write the control file and build the .deb with dpkg-deb.

    Raises:
        StepExecutionError: If dpkg-deb fails to build or inspect the package.
    """
    control_dir = package_root / CONTROL_DIR
    control_dir.mkdir(parents=True, exist_ok=True)
    (control_dir / "control").write_text(manifest.render_control())

    dist_dir.mkdir(parents=True, exist_ok=True)
    deb_path = dist_dir / manifest.deb_filename
    step = BuildStep.create(
        "dpkg-deb",
        [
            ["dpkg-deb", "--build", "--root-owner-group", package_root, deb_path],
            ["dpkg-deb", "--info", deb_path],
        ],
        inputs=[control_dir / "control"],
        description=f"Build {deb_path.name}",
    )
    executor.execute(step).raise_for_status()
    logger.info("Created %s", deb_path)
    return deb_path


def write_install_instructions(
    dist_dir: Path,
    version: str,
    package_name: str,
    deb_name: str,
    archive_name: str,
    prefix: str,
    bundled_lib_dir: str,
    enabled: list[str],
) -> Path:
    """Write dist/INSTALL.md."""
    dist_dir.mkdir(parents=True, exist_ok=True)
    path = dist_dir / "INSTALL.md"
    path.write_text(
        render_template(
            "INSTALL.md.j2",
            version=version,
            package_name=package_name,
            deb_name=deb_name,
            archive_name=archive_name,
            prefix=prefix.rstrip("/"),
            bundled_lib_dir=bundled_lib_dir,
            enabled=enabled,
        )
    )
    return path
