"""Package manifest and installed-size computation.

The manifest is derived from a finished package root only. It is never
assembled incrementally, so the same tree always yields the same
manifest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ffbuild.core.fs_utils import (
    bytes_to_kb_rounded_up,
    iter_tree_files,
    tree_size_bytes,
)
from ffbuild.packaging.templates import render_template
from ffbuild.recipe.models import PackageMetadataModel

logger = logging.getLogger(__name__)

CONTROL_DIR = "DEBIAN"


def compute_installed_size_kb(root: Path) -> int:
    """Installed size of a package root in KiB.

    Sums regular file sizes (symlinks by their own size), excludes the
    DEBIAN control directory, and rounds up to a whole KiB.
    """
    size = tree_size_bytes(root, exclude=frozenset({CONTROL_DIR}))
    return bytes_to_kb_rounded_up(size)


@dataclass(frozen=True)
class PackageManifest:
    """Metadata describing one Debian package."""

    name: str
    version: str
    architecture: str
    installed_size_kb: int
    maintainer: str
    depends: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    provides: tuple[str, ...] = ()
    section: str = "multimedia"
    priority: str = "optional"
    homepage: str = ""
    summary: str = ""
    description: str = ""
    files: tuple[str, ...] = ()

    @property
    def deb_filename(self) -> str:
        return f"{self.name}_{self.version}_{self.architecture}.deb"

    @property
    def description_lines(self) -> list[str]:
        """Extended description lines; blank lines become "."."""
        lines = self.description.strip("\n").splitlines()
        return [line.strip() or "." for line in lines]

    def render_control(self) -> str:
        """Debian control file text."""
        return render_template("control.j2", m=self)


def build_manifest(
    package_root: Path,
    name: str,
    version: str,
    architecture: str,
    maintainer: str,
    metadata: PackageMetadataModel,
) -> PackageManifest:
    """Derive a manifest from a package root.

    Args:
        package_root: Directory that will become the package contents.
        name: Package name.
        version: Full Debian version (upstream-revision).
        architecture: Debian architecture (e.g., "amd64").
        maintainer: Maintainer field.
        metadata: Descriptive fields from the recipe.

    Returns:
        Manifest whose file list and size match the tree exactly.
    """
    files = tuple(
        p.as_posix() for p in iter_tree_files(package_root, frozenset({CONTROL_DIR}))
    )
    size_kb = compute_installed_size_kb(package_root)
    logger.debug("Manifest for %s: %d files, %d KiB", name, len(files), size_kb)
    return PackageManifest(
        name=name,
        version=version,
        architecture=architecture,
        installed_size_kb=size_kb,
        maintainer=maintainer,
        depends=tuple(metadata.depends),
        conflicts=tuple(metadata.conflicts),
        provides=tuple(metadata.provides),
        section=metadata.section,
        priority=metadata.priority,
        homepage=metadata.homepage,
        summary=metadata.summary,
        description=metadata.description,
        files=files,
    )
