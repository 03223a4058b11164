"""Package stage: portable archive and Debian package."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ffbuild.errors import MissingPrerequisiteError
from ffbuild.logging.context import step_context
from ffbuild.packaging.archive import (
    build_deb,
    portable_archive_name,
    write_archive,
    write_install_instructions,
)
from ffbuild.packaging.hooks import write_hooks
from ffbuild.packaging.manifest import CONTROL_DIR, build_manifest
from ffbuild.packaging.stager import DocContext, Stager
from ffbuild.pipeline.build import staged_binary
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.records import require_record, write_record

logger = logging.getLogger(__name__)

STAGE = "package"


@dataclass(frozen=True)
class PackageOptions:
    """Overrides for package metadata."""

    revision: str | None = None
    maintainer: str | None = None


def run_package(ctx: PipelineContext, options: PackageOptions | None = None) -> dict:
    """Create the portable archive and the .deb from the staged build.

    Returns:
        The package record.

    Raises:
        MissingPrerequisiteError: If the build stage has not completed.
        StepExecutionError: If dpkg-deb fails.
    """
    options = options or PackageOptions()
    config = ctx.config
    paths = config.paths
    metadata = ctx.recipe.package

    with step_context(STAGE):
        build_record = require_record(paths.state_dir, "build", STAGE)
        binary = staged_binary(ctx)
        if not binary.exists():
            raise MissingPrerequisiteError(
                f"Staged binary {binary} is missing; run 'ffbuild build --force'",
                stage="build",
                artifact=binary,
            )

        version = build_record.get("ffmpeg_version", config.build.ffmpeg_version)
        revision = options.revision or config.package.revision
        maintainer = options.maintainer or config.package.maintainer
        full_version = f"{version}-{revision}"
        features = build_record.get("features", {})
        enabled = list(features.get("enabled", []))

        with step_context(step="archive"):
            archive = write_archive(
                paths.staging_dir, paths.dist_dir, portable_archive_name(version)
            )

        with step_context(step="deb"):
            stager = Stager(
                paths.staging_dir,
                paths.packaging_dir / config.package.name,
                config.package.name,
                prefix=config.build.install_prefix,
            )
            package_root = stager.stage(
                metadata.bundled_lib_dir,
                DocContext(
                    version=version,
                    full_version=full_version,
                    maintainer=maintainer,
                    homepage=metadata.homepage,
                    bundled_lib_dir=metadata.bundled_lib_dir,
                    enabled=enabled,
                    omitted=list(features.get("omitted", [])),
                ),
            )
            write_hooks(
                package_root / CONTROL_DIR,
                config.package.name,
                config.build.install_prefix,
                list(metadata.symlink_binaries),
            )
            manifest = build_manifest(
                package_root,
                name=config.package.name,
                version=full_version,
                architecture=config.package.architecture,
                maintainer=maintainer,
                metadata=metadata,
            )
            deb = build_deb(package_root, paths.dist_dir, manifest, ctx.executor())

        instructions = write_install_instructions(
            paths.dist_dir,
            version=version,
            package_name=config.package.name,
            deb_name=deb.name,
            archive_name=archive.name,
            prefix=config.build.install_prefix,
            bundled_lib_dir=metadata.bundled_lib_dir,
            enabled=enabled,
        )

        record = {
            "ffmpeg_version": version,
            "package_version": full_version,
            "archive": str(archive),
            "deb": str(deb),
            "instructions": str(instructions),
            "installed_size_kb": manifest.installed_size_kb,
            "file_count": len(manifest.files),
        }
        write_record(paths.state_dir, STAGE, record)
        logger.info("Packages written to %s", paths.dist_dir)
        return record
