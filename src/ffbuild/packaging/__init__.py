"""Staging, manifest, maintainer scripts and package writers."""

from ffbuild.packaging.archive import (
    build_deb,
    portable_archive_name,
    write_archive,
    write_install_instructions,
)
from ffbuild.packaging.hooks import HOOK_MODE, HOOK_NAMES, render_hook, write_hooks
from ffbuild.packaging.manifest import (
    CONTROL_DIR,
    PackageManifest,
    build_manifest,
    compute_installed_size_kb,
)
from ffbuild.packaging.stager import DocContext, Stager

__all__ = [
    "CONTROL_DIR",
    "HOOK_MODE",
    "HOOK_NAMES",
    "DocContext",
    "PackageManifest",
    "Stager",
    "build_deb",
    "build_manifest",
    "compute_installed_size_kb",
    "portable_archive_name",
    "render_hook",
    "write_archive",
    "write_hooks",
    "write_install_instructions",
]
