"""Install stage: back up an existing FFmpeg and unpack the portable archive.

After extraction the installed binaries are run and checked with ldd, and
an uninstall script listing every installed file is written next to them.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ffbuild.errors import MissingPrerequisiteError, StepExecutionError
from ffbuild.logging.context import step_context
from ffbuild.packaging.archive import portable_archive_name
from ffbuild.packaging.templates import render_template
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.records import write_record
from ffbuild.pipeline.setup import install_packages_step
from ffbuild.steps.environment import BuildEnvironment
from ffbuild.steps.models import BuildStep
from ffbuild.tools.requirements import (
    INSTALL_REQUIREMENTS,
    ensure_requirements,
    requirement_tool_names,
)

logger = logging.getLogger(__name__)

STAGE = "install"
BACKUP_BINARIES = ("ffmpeg", "ffprobe", "ffplay")
BACKUP_LIBRARY_PATTERNS = ("libav*", "libsw*", "libpostproc*")
LD_CONF_NAME = "ffmpeg.conf"
VERIFY_BINARIES = ("ffmpeg", "ffprobe")
UNINSTALL_SCRIPT = "uninstall-ffmpeg.sh"
SCRIPT_MODE = 0o755


@dataclass(frozen=True)
class InstallOptions:
    """Flags for the install stage."""

    install_root: Path = Path("/")
    backup: bool = True
    backup_dir: Path | None = None
    install_deps: bool = True


def check_root(install_root: Path) -> None:
    """Require root when installing into the live system.

    Raises:
        MissingPrerequisiteError: If installing into / without root.
    """
    if install_root == Path("/") and os.geteuid() != 0:
        raise MissingPrerequisiteError(
            "Installing into / must be run as root (use sudo), "
            "or pass --install-root"
        )


def install_runtime_packages(ctx: PipelineContext, packages: list[str]) -> list[str]:
    """apt-get install the runtime libraries the binaries link against.

    Raises:
        StepExecutionError: If apt-get fails.
    """
    if not packages:
        return []
    env = ctx.build_environment.with_extra(DEBIAN_FRONTEND="noninteractive")
    step = install_packages_step(packages)
    ctx.executor(env).execute(step).raise_for_status()
    logger.info("Installed %d runtime package(s)", len(packages))
    return list(packages)


def backup_existing(prefix_dir: Path, backup_dir: Path) -> list[Path]:
    """Copy existing FFmpeg binaries and libraries into backup_dir.

    Returns:
        Paths written inside backup_dir.
    """
    candidates = [prefix_dir / "bin" / name for name in BACKUP_BINARIES]
    lib_dir = prefix_dir / "lib"
    for pattern in BACKUP_LIBRARY_PATTERNS:
        candidates.extend(sorted(lib_dir.glob(pattern)))

    saved = []
    for path in candidates:
        if not (path.exists() or path.is_symlink()):
            continue
        target = backup_dir / path.relative_to(prefix_dir)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, target, follow_symlinks=False)
        saved.append(target)
    if saved:
        logger.info("Backed up %d existing file(s) to %s", len(saved), backup_dir)
    return saved


def extract_archive_into(archive: Path, install_root: Path) -> list[Path]:
    """Unpack the portable archive.

    Returns:
        Installed files and symlinks, as paths under install_root.
    """
    install_root.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive) as tar:
        members = [m.name for m in tar.getmembers() if not m.isdir()]
        tar.extractall(install_root, filter="tar")
    logger.info("Extracted %s into %s", archive.name, install_root)
    return [install_root / name for name in members]


def write_ld_config(install_root: Path, prefix: str, bundled_lib_dir: str) -> Path:
    """Register the library directories with the dynamic linker."""
    conf_dir = install_root / "etc" / "ld.so.conf.d"
    conf_dir.mkdir(parents=True, exist_ok=True)
    path = conf_dir / LD_CONF_NAME
    prefix = prefix.rstrip("/")
    path.write_text(f"{prefix}/lib\n{prefix}/{bundled_lib_dir}\n")
    return path


def ldconfig_command(install_root: Path) -> list[str | Path]:
    if install_root == Path("/"):
        return ["ldconfig"]
    return ["ldconfig", "-r", install_root]


def verify_installation(ctx: PipelineContext, install_root: Path) -> dict[str, str]:
    """Run the installed binaries and check their shared libraries resolve.

    A version line that does not mention the configured version is only
    a warning. ldd is skipped with a warning when unavailable.

    Returns:
        First line of `-version` output per binary.

    Raises:
        StepExecutionError: If a binary fails to run or ldd reports a
            library that is not found.
    """
    config = ctx.config
    prefix_dir = install_root / config.build.install_prefix.lstrip("/")
    env = BuildEnvironment(
        codec_prefix=config.paths.codec_prefix,
        threads=config.build.threads,
        library_paths=(
            prefix_dir / "lib",
            prefix_dir / ctx.recipe.package.bundled_lib_dir,
        ),
    )
    executor = ctx.executor(env)

    versions = {}
    for name in VERIFY_BINARIES:
        binary = prefix_dir / "bin" / name
        step = BuildStep.create(
            f"verify-{name}",
            [[binary, "-version"]],
            inputs=[binary],
            description=f"Run installed {name} -version",
        )
        result = executor.run(step, ctx.prober)
        result.raise_for_status()
        first_line = result.output.splitlines()[0] if result.output else ""
        if config.build.ffmpeg_version not in first_line:
            logger.warning("%s version unexpected: %s", name, first_line or "<empty>")
        versions[name] = first_line

    if not ctx.detect(["ldd"]).is_available("ldd"):
        logger.warning("ldd not available; skipping library dependency check")
        return versions

    binary = prefix_dir / "bin" / "ffmpeg"
    step = BuildStep.create("verify-ldd", [["ldd", binary]], inputs=[binary])
    result = executor.run(step, ctx.prober)
    result.raise_for_status()
    missing = [
        line.split()[0]
        for line in result.output.splitlines()
        if "not found" in line
    ]
    if missing:
        raise StepExecutionError(
            "Installed ffmpeg has missing library dependencies: "
            f"{', '.join(missing)}",
            step_name=step.name,
            output=result.output_tail(),
        )
    logger.info("Library dependencies verified")
    return versions


def write_uninstall_script(
    ctx: PipelineContext,
    install_root: Path,
    installed: list[Path],
    ld_config: Path,
) -> Path:
    """Write a script removing exactly the files this install added."""
    config = ctx.config
    prefix_dir = install_root / config.build.install_prefix.lstrip("/")
    script = prefix_dir / "bin" / UNINSTALL_SCRIPT
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(
        render_template(
            "uninstall.sh.j2",
            version=config.build.ffmpeg_version,
            require_root=install_root == Path("/"),
            files=sorted(str(path) for path in installed),
            bundled_dir=str(prefix_dir / ctx.recipe.package.bundled_lib_dir),
            ld_config=str(ld_config),
            ldconfig=" ".join(str(arg) for arg in ldconfig_command(install_root)),
        )
    )
    script.chmod(SCRIPT_MODE)
    logger.info("Uninstall script written to %s", script)
    return script


def run_install(ctx: PipelineContext, options: InstallOptions | None = None) -> dict:
    """Install the portable archive under the install root.

    Returns:
        The install record.

    Raises:
        MissingPrerequisiteError: If the archive has not been packaged,
            ldconfig is unavailable, or / is targeted without root.
        StepExecutionError: If apt-get, ldconfig or verification fails.
    """
    options = options or InstallOptions()
    config = ctx.config
    version = config.build.ffmpeg_version
    archive = config.paths.dist_dir / portable_archive_name(version)
    install_root = options.install_root

    with step_context(STAGE):
        if not archive.exists():
            raise MissingPrerequisiteError(
                f"Portable archive {archive.name} not found; "
                "run 'ffbuild package' first",
                stage="package",
                artifact=archive,
            )

        check_root(install_root)
        ensure_requirements(
            ctx.detect(requirement_tool_names(INSTALL_REQUIREMENTS)),
            INSTALL_REQUIREMENTS,
            stage=STAGE,
        )

        runtime_packages: list[str] = []
        if not options.install_deps:
            logger.info("Skipping runtime dependencies (--no-deps)")
        elif install_root != Path("/"):
            logger.info("Skipping runtime dependencies for alternate root")
        else:
            runtime_packages = install_runtime_packages(
                ctx, ctx.recipe.package.runtime_packages
            )

        prefix_dir = install_root / config.build.install_prefix.lstrip("/")
        saved: list[Path] = []
        backup_dir = None
        if options.backup:
            stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
            default_dir = Path(f"/tmp/ffmpeg-backup-{stamp}")  # nosec B108
            backup_dir = options.backup_dir or default_dir
            saved = backup_existing(prefix_dir, backup_dir)

        installed = extract_archive_into(archive, install_root)

        ld_conf = write_ld_config(
            install_root,
            config.build.install_prefix,
            ctx.recipe.package.bundled_lib_dir,
        )
        step = BuildStep.create("ldconfig", [ldconfig_command(install_root)])
        ctx.executor().execute(step).raise_for_status()

        versions = verify_installation(ctx, install_root)
        uninstall = write_uninstall_script(ctx, install_root, installed, ld_conf)

        record = {
            "ffmpeg_version": version,
            "install_root": str(install_root),
            "ld_config": str(ld_conf),
            "backup_dir": str(backup_dir) if saved else None,
            "backed_up": [str(p) for p in saved],
            "runtime_packages": runtime_packages,
            "installed_files": len(installed),
            "verified": versions,
            "uninstall_script": str(uninstall),
        }
        write_record(config.paths.state_dir, STAGE, record)
        logger.info("Installed FFmpeg %s", version)
        return record
