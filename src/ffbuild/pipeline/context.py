"""Shared inputs for pipeline stages."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from ffbuild.config.models import FFBuildConfig
from ffbuild.core.subprocess_utils import run_command
from ffbuild.pipeline.sources import SourceFetcher
from ffbuild.recipe.models import RecipeModel
from ffbuild.steps.environment import BuildEnvironment
from ffbuild.steps.executor import Runner, StepExecutor
from ffbuild.steps.prober import DependencyProber
from ffbuild.tools.detection import detect_tools
from ffbuild.tools.models import ToolRegistry


@dataclass
class PipelineContext:
    """Configuration, recipe and injectable collaborators for one run.

    Attributes:
        config: Resolved configuration.
        recipe: Validated build recipe.
        runner: Command runner used by every executor.
        fetcher: HTTP source fetcher.
        sleep: Sleep function used between retries.
        prober: Dependency prober shared by all stages.
        detect: Tool detection function.
    """

    config: FFBuildConfig
    recipe: RecipeModel
    runner: Runner = run_command
    fetcher: SourceFetcher = field(default_factory=SourceFetcher)
    sleep: Callable[[float], None] = time.sleep
    prober: DependencyProber = field(default_factory=DependencyProber)
    detect: Callable[[Iterable[str]], ToolRegistry] = detect_tools

    @property
    def bundled_rpath(self) -> str:
        """Runtime search path of the bundled codec libraries on the target."""
        prefix = self.config.build.install_prefix.rstrip("/")
        return f"{prefix}/{self.recipe.package.bundled_lib_dir.strip('/')}"

    @property
    def build_environment(self) -> BuildEnvironment:
        """Environment that resolves bundled codecs before system libraries."""
        return BuildEnvironment.for_codec_prefix(
            self.config.paths.codec_prefix,
            self.config.build.threads,
            rpath=self.bundled_rpath,
        )

    def executor(self, environment: BuildEnvironment | None = None) -> StepExecutor:
        """Executor logging to the build log."""
        return StepExecutor(
            environment or self.build_environment,
            log_file=self.config.paths.log_file,
            timeout=self.config.build.step_timeout,
            runner=self.runner,
        )

    def close(self) -> None:
        self.fetcher.close()
