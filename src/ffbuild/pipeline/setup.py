"""Setup stage: host checks, system packages and tool detection."""

from __future__ import annotations

import logging
import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path

from ffbuild.errors import MissingPrerequisiteError
from ffbuild.logging.context import step_context
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.records import write_record
from ffbuild.recipe.models import SetupModel
from ffbuild.steps.models import BuildStep
from ffbuild.tools.requirements import (
    BUILD_REQUIREMENTS,
    PACKAGE_REQUIREMENTS,
    SETUP_REQUIREMENTS,
    ensure_requirements,
    requirement_tool_names,
)

logger = logging.getLogger(__name__)

STAGE = "setup"
SUPPORTED_SYSTEM = "Linux"
SUPPORTED_MACHINES = ("x86_64", "amd64")
GIB = 1024**3


@dataclass(frozen=True)
class SetupOptions:
    """Flags for the setup stage."""

    minimal: bool = False
    no_hwaccel: bool = False
    skip_install: bool = False


def check_platform(system: str | None = None, machine: str | None = None) -> None:
    """Require Linux on x86_64.

    Raises:
        MissingPrerequisiteError: On any other platform.
    """
    system = system or platform.system()
    machine = machine or platform.machine()
    if system != SUPPORTED_SYSTEM:
        raise MissingPrerequisiteError(
            f"Builds are supported on Linux only (found {system})", stage=STAGE
        )
    if machine.lower() not in SUPPORTED_MACHINES:
        raise MissingPrerequisiteError(
            f"Builds are supported on x86_64 only (found {machine})", stage=STAGE
        )


def check_disk_space(path: Path, min_free_gb: float) -> float:
    """Require min_free_gb free on the filesystem holding path.

    Returns:
        Free space in GiB.

    Raises:
        MissingPrerequisiteError: If less space is available.
    """
    probe = path
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    free_gb = shutil.disk_usage(probe).free / GIB
    if free_gb < min_free_gb:
        raise MissingPrerequisiteError(
            f"Insufficient disk space: {free_gb:.1f} GiB free, "
            f"at least {min_free_gb:g} GiB required",
            stage=STAGE,
        )
    return free_gb


def apt_packages(setup: SetupModel, options: SetupOptions) -> list[str]:
    """System packages to install, deduplicated in recipe order."""
    groups = [setup.build_tools, setup.codec_dev, setup.system]
    if not options.no_hwaccel:
        groups.append(setup.hwaccel)
    if not options.minimal:
        groups.append(setup.headers)
    return list(dict.fromkeys(pkg for group in groups for pkg in group))


def install_packages_step(packages: list[str]) -> BuildStep:
    """apt-get update and install, elevated with sudo when not root."""
    prefix = [] if os.geteuid() == 0 else ["sudo"]
    return BuildStep.create(
        "apt-install",
        [
            [*prefix, "apt-get", "update"],
            [*prefix, "apt-get", "install", "-y", "--no-install-recommends", *packages],
        ],
        description=f"Install {len(packages)} system packages",
    )


def run_setup(ctx: PipelineContext, options: SetupOptions | None = None) -> dict:
    """Prepare the host for building.

    Returns:
        The setup record written to the state directory.

    Raises:
        MissingPrerequisiteError: On unsupported platform, low disk space or
            missing required tools.
        StepExecutionError: If package installation fails.
    """
    options = options or SetupOptions()
    config = ctx.config

    with step_context(STAGE):
        check_platform()
        free_gb = check_disk_space(
            config.paths.build_dir, config.build.min_free_disk_gb
        )
        logger.info("Disk space OK: %.1f GiB free", free_gb)

        packages = apt_packages(ctx.recipe.setup, options)
        if config.in_docker:
            logger.info("Running in Docker; system packages come from the image")
        elif options.skip_install:
            logger.info("Skipping system package installation")
        elif packages:
            ensure_requirements(
                ctx.detect(requirement_tool_names(SETUP_REQUIREMENTS)),
                SETUP_REQUIREMENTS,
                stage=STAGE,
            )
            env = ctx.build_environment.with_extra(DEBIAN_FRONTEND="noninteractive")
            step = install_packages_step(packages)
            ctx.executor(env).execute(step).raise_for_status()

        requirements = BUILD_REQUIREMENTS + PACKAGE_REQUIREMENTS
        registry = ctx.detect(requirement_tool_names(requirements))
        ensure_requirements(registry, requirements, stage=STAGE)

        for path in (
            config.paths.build_dir,
            config.paths.sources_dir,
            config.paths.codec_prefix,
            config.paths.dist_dir,
        ):
            path.mkdir(parents=True, exist_ok=True)

        record = {
            "ffmpeg_version": config.build.ffmpeg_version,
            "threads": config.build.threads,
            "codec_prefix": str(config.paths.codec_prefix),
            "in_docker": config.in_docker,
            "options": {
                "minimal": options.minimal,
                "no_hwaccel": options.no_hwaccel,
                "skip_install": options.skip_install,
            },
            "packages": packages,
            "tools": registry.summary(),
        }
        write_record(config.paths.state_dir, STAGE, record)
        logger.info("Setup complete")
        return record
