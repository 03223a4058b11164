"""Docker build orchestration.

Builds the builder image (Ubuntu 22.04 first, Ubuntu 20.04 as fallback),
runs the full pipeline in a container with the build and dist roots
mounted, and retries the container run with the stale container removed
between attempts.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from ffbuild.config.models import DockerConfig, FFBuildConfig
from ffbuild.errors import MissingPrerequisiteError
from ffbuild.orchestration.retry import RetryController, RetryOutcome
from ffbuild.steps.executor import StepExecutor
from ffbuild.steps.models import BuildStep, StepResult
from ffbuild.tools.detection import detect_tools
from ffbuild.tools.models import ToolRegistry
from ffbuild.tools.requirements import (
    DOCKER_REQUIREMENTS,
    ensure_requirements,
    requirement_tool_names,
)

logger = logging.getLogger(__name__)

CONTAINER_BUILD_DIR = "/build/build"
CONTAINER_DIST_DIR = "/build/dist"
BASE_IMAGES = {"22.04": "primary", "20.04": "fallback"}


class DockerBuilder:
    """Runs ffbuild inside Docker.

    Args:
        config: Resolved configuration.
        executor: Executor for docker commands.
        context_dir: Docker build context holding the Dockerfiles.
        sleep: Sleep function used between retries.
        detect: Tool detection function.
    """

    def __init__(
        self,
        config: FFBuildConfig,
        executor: StepExecutor,
        context_dir: Path | None = None,
        sleep: Callable[[float], None] = time.sleep,
        detect: Callable[[Iterable[str]], ToolRegistry] = detect_tools,
    ) -> None:
        self.config = config
        self.docker: DockerConfig = config.docker
        self.executor = executor
        self.context_dir = context_dir or Path.cwd()
        self._sleep = sleep
        self._detect = detect

    def _docker(self, name: str, *args: str | Path) -> StepResult:
        step = BuildStep.create(
            name, [["docker", *args]], description=f"docker {args[0]}"
        )
        return self.executor.execute(step)

    def check_docker(self) -> None:
        """Require the docker CLI and a running daemon.

        Raises:
            MissingPrerequisiteError: If either is unavailable.
        """
        ensure_requirements(
            self._detect(requirement_tool_names(DOCKER_REQUIREMENTS)),
            DOCKER_REQUIREMENTS,
            stage="docker",
        )
        if not self._docker("docker-info", "info").succeeded:
            raise MissingPrerequisiteError("Docker daemon not running. Start Docker.")
        logger.info("Docker check passed")

    def dockerfile_for(self, base: str) -> Path:
        which = BASE_IMAGES.get(base)
        if which is None:
            raise ValueError(
                f"Unknown base image {base!r}; choose from {', '.join(BASE_IMAGES)}"
            )
        dockerfile = (
            self.docker.dockerfile_primary
            if which == "primary"
            else self.docker.dockerfile_fallback
        )
        return dockerfile if dockerfile.is_absolute() else self.context_dir / dockerfile

    def _build_with(
        self, base: str, no_cache: bool = False, pull: bool = False
    ) -> str:
        dockerfile = self.dockerfile_for(base)
        if not dockerfile.exists():
            raise MissingPrerequisiteError(
                f"Dockerfile for Ubuntu {base} not found: {dockerfile}",
                artifact=dockerfile,
            )
        args: list[str | Path] = ["build", "-f", dockerfile, "-t", self.docker.image]
        if no_cache:
            args.append("--no-cache")
        if pull:
            args.append("--pull")
        args.append(self.context_dir)
        logger.info("Building image %s on Ubuntu %s", self.docker.image, base)
        self._docker(f"image-{base}", *args).raise_for_status()
        return base

    def build_image(
        self,
        force_base: str | None = None,
        no_cache: bool = False,
        pull: bool = False,
    ) -> RetryOutcome[str]:
        """Build the builder image.

        Args:
            force_base: "22.04" or "20.04" to use one base with no fallback.
            no_cache: Pass --no-cache to docker build.
            pull: Pass --pull to docker build.

        Returns:
            Outcome whose value is the base image that was used.

        Raises:
            RetryExhaustedError: If every base image failed.
        """
        controller = RetryController(1, name="docker image build")
        if force_base is not None:
            self.dockerfile_for(force_base)
            return controller.run(lambda: self._build_with(force_base, no_cache, pull))

        outcome = controller.run(
            lambda: self._build_with("22.04", no_cache, pull),
            fallback=lambda: self._build_with("20.04", no_cache, pull),
        )
        if outcome.used_fallback:
            logger.warning("Ubuntu 22.04 image failed; built on Ubuntu 20.04")
        return outcome

    def remove_container(self, name: str | None = None) -> None:
        """docker rm -f, tolerating an absent container."""
        result = self._docker("container-rm", "rm", "-f", name or self.docker.container)
        if not result.succeeded:
            logger.debug("No container to remove: %s", result.message)

    def container_exists(self) -> bool:
        result = self._docker(
            "container-list", "ps", "-a", "--format", "{{.Names}}"
        )
        return result.succeeded and self.docker.container in result.output.split()

    def _volume_args(self) -> list[str]:
        paths = self.config.paths
        return [
            "-v",
            f"{paths.build_dir.resolve()}:{CONTAINER_BUILD_DIR}",
            "-v",
            f"{paths.dist_dir.resolve()}:{CONTAINER_DIST_DIR}",
        ]

    def run_build(self) -> RetryOutcome[StepResult]:
        """Run the pipeline in a fresh container, retrying failed runs.

        Raises:
            RetryExhaustedError: If every attempt failed.
        """
        paths = self.config.paths
        paths.build_dir.mkdir(parents=True, exist_ok=True)
        paths.dist_dir.mkdir(parents=True, exist_ok=True)
        self.remove_container()

        def attempt() -> StepResult:
            result = self._docker(
                "container-run",
                "run",
                "--name",
                self.docker.container,
                *self._volume_args(),
                "-e",
                f"THREADS={self.config.build.threads}",
                "-e",
                "FFBUILD_DOCKER_BUILD=1",
                self.docker.image,
            )
            result.raise_for_status()
            return result

        controller = RetryController(
            self.docker.max_retries,
            teardown=self.remove_container,
            delay_seconds=self.docker.retry_delay,
            sleep=self._sleep,
            name="docker build",
        )
        return controller.run(attempt)

    def extract_artifacts(self) -> list[Path]:
        """Copy build and dist trees out of the container.

        Returns:
            Destination roots that received files.
        """
        extracted = []
        pairs = (
            (CONTAINER_BUILD_DIR, self.config.paths.build_dir),
            (CONTAINER_DIST_DIR, self.config.paths.dist_dir),
        )
        for source, dest in pairs:
            dest.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(dir=dest.parent) as tmp:
                target = Path(tmp) / "out"
                result = self._docker(
                    "container-cp", "cp", f"{self.docker.container}:{source}", target
                )
                if not result.succeeded or not target.exists():
                    logger.warning("Could not copy %s from container", source)
                    continue
                shutil.copytree(target, dest, symlinks=True, dirs_exist_ok=True)
                extracted.append(dest)
        return extracted

    def package(self) -> StepResult:
        """Run `ffbuild package` in a throwaway container.

        Raises:
            MissingPrerequisiteError: If no build container exists.
            StepExecutionError: If packaging fails.
        """
        if not self.container_exists():
            raise MissingPrerequisiteError(
                f"No build container {self.docker.container} found; "
                "run 'ffbuild docker-build' first",
                stage="docker-build",
            )
        result = self._docker(
            "container-package",
            "run",
            "--rm",
            *self._volume_args(),
            "-e",
            "FFBUILD_DOCKER_BUILD=1",
            self.docker.image,
            "ffbuild",
            "package",
        )
        result.raise_for_status()
        return result

    def logs(self) -> str | None:
        """Output of the build container, or None if it does not exist."""
        if not self.container_exists():
            logger.warning("Container %s not found", self.docker.container)
            return None
        result = self._docker("container-logs", "logs", self.docker.container)
        result.raise_for_status()
        return result.output

    def clean(self) -> None:
        """Remove the build container and image."""
        self.remove_container()
        result = self._docker("image-rm", "rmi", self.docker.image)
        if not result.succeeded:
            logger.warning(
                "Could not remove image %s: %s", self.docker.image, result.message
            )
        logger.info("Docker artifacts cleaned")

    def build(
        self,
        force_base: str | None = None,
        no_cache: bool = False,
        pull: bool = False,
    ) -> dict:
        """check_docker, build_image, run_build, extract_artifacts.

        The container is kept for docker-logs and docker-package until the
        next build or clean-docker.
        """
        self.check_docker()
        image = self.build_image(force_base, no_cache=no_cache, pull=pull)
        run = self.run_build()
        extracted = self.extract_artifacts()
        return {
            "base_image": image.value,
            "image_fallback": image.used_fallback,
            "run_attempts": run.attempts,
            "extracted": [str(p) for p in extracted],
        }
