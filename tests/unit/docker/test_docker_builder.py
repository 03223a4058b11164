"""Tests for Docker build orchestration."""

from pathlib import Path

import pytest

from ffbuild.docker import DockerBuilder
from ffbuild.errors import MissingPrerequisiteError, RetryExhaustedError
from ffbuild.steps import BuildEnvironment, StepExecutor
from ffbuild.tools.models import ToolInfo, ToolRegistry, ToolStatus


class FakeDocker:
    """Runner simulating the docker CLI."""

    def __init__(self, failures=None):
        # docker subcommand -> number of times it fails before succeeding
        self.failures = dict(failures or {})
        self.calls: list[list[str]] = []
        self.containers: set[str] = set()

    def subcommands(self, name: str) -> list[list[str]]:
        return [argv for argv in self.calls if argv[1] == name]

    def __call__(self, args, timeout=None, cwd=None, env=None, **kwargs):
        argv = [str(a) for a in args]
        self.calls.append(argv)
        sub = argv[1]
        if sub == "build" and "-f" in argv:
            key = f"build:{Path(argv[argv.index('-f') + 1]).name}"
        else:
            key = sub
        if self.failures.get(key, 0) > 0:
            self.failures[key] -= 1
            return "", f"docker {sub} failed", 1
        if sub == "run" and "--name" in argv:
            self.containers.add(argv[argv.index("--name") + 1])
            return "pipeline done\n", "", 0
        if sub == "rm":
            self.containers.discard(argv[-1])
        if sub == "ps":
            return "\n".join(sorted(self.containers)) + "\n", "", 0
        if sub == "logs":
            return "build log\n", "", 0
        if sub == "cp":
            target = Path(argv[-1])
            target.mkdir(parents=True)
            (target / "artifact.txt").write_text(argv[-2])
        return "", "", 0


@pytest.fixture
def context_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "context"
    directory.mkdir()
    (directory / "Dockerfile").write_text("FROM ubuntu:20.04\n")
    (directory / "Dockerfile.ubuntu22").write_text("FROM ubuntu:22.04\n")
    return directory


def make_builder(build_config, context_dir, fake, detect=None):
    executor = StepExecutor(
        BuildEnvironment(codec_prefix=build_config.paths.codec_prefix), runner=fake
    )
    build_config.docker.retry_delay = 0
    return DockerBuilder(
        build_config,
        executor,
        context_dir=context_dir,
        sleep=lambda seconds: None,
        detect=detect or _registry_with,
    )


def _registry_with(names):
    return ToolRegistry(
        tools={n: ToolInfo(name=n, status=ToolStatus.AVAILABLE) for n in names}
    )


class TestCheckDocker:
    def test_missing_cli(self, build_config, context_dir):
        builder = make_builder(
            build_config, context_dir, FakeDocker(), detect=lambda names: ToolRegistry()
        )

        with pytest.raises(MissingPrerequisiteError, match="docker is not available"):
            builder.check_docker()

    def test_daemon_not_running(self, build_config, context_dir):
        builder = make_builder(build_config, context_dir, FakeDocker({"info": 1}))

        with pytest.raises(MissingPrerequisiteError, match="daemon not running"):
            builder.check_docker()


class TestBuildImage:
    def test_primary_image(self, build_config, context_dir):
        fake = FakeDocker()

        outcome = make_builder(build_config, context_dir, fake).build_image(pull=True)

        assert outcome.value == "22.04"
        assert not outcome.used_fallback
        (build,) = fake.subcommands("build")
        assert build[build.index("-f") + 1] == str(context_dir / "Dockerfile.ubuntu22")
        assert "--pull" in build
        assert "--no-cache" not in build

    def test_falls_back_to_focal(self, build_config, context_dir):
        fake = FakeDocker({"build:Dockerfile.ubuntu22": 1})

        outcome = make_builder(build_config, context_dir, fake).build_image()

        assert outcome.value == "20.04"
        assert outcome.used_fallback
        assert len(fake.subcommands("build")) == 2

    def test_forced_base_has_no_fallback(self, build_config, context_dir):
        fake = FakeDocker({"build:Dockerfile.ubuntu22": 1})

        with pytest.raises(RetryExhaustedError):
            make_builder(build_config, context_dir, fake).build_image(force_base="22.04")

        assert len(fake.subcommands("build")) == 1

    def test_missing_dockerfile(self, build_config, tmp_path: Path):
        with pytest.raises(MissingPrerequisiteError, match="Dockerfile for Ubuntu 22.04"):
            make_builder(build_config, tmp_path, FakeDocker()).build_image()

    def test_unknown_base(self, build_config, context_dir):
        with pytest.raises(ValueError):
            make_builder(build_config, context_dir, FakeDocker()).build_image("18.04")


class TestRunBuild:
    def test_retries_with_container_teardown(self, build_config, context_dir):
        fake = FakeDocker({"run": 1})
        builder = make_builder(build_config, context_dir, fake)

        outcome = builder.run_build()

        assert outcome.attempts == 2
        # one rm before the first run, one teardown after the failed run
        assert len(fake.subcommands("rm")) == 2
        run = fake.subcommands("run")[-1]
        assert "FFBUILD_DOCKER_BUILD=1" in run
        assert f"THREADS={build_config.build.threads}" in run

    def test_exhausted(self, build_config, context_dir):
        fake = FakeDocker({"run": 5})

        with pytest.raises(RetryExhaustedError) as exc_info:
            make_builder(build_config, context_dir, fake).run_build()

        assert exc_info.value.attempts == build_config.docker.max_retries


class TestBuild:
    def test_full_docker_build_keeps_container(self, build_config, context_dir):
        fake = FakeDocker()
        builder = make_builder(build_config, context_dir, fake)

        summary = builder.build()

        assert summary["base_image"] == "22.04"
        assert summary["run_attempts"] == 1
        assert len(summary["extracted"]) == 2
        assert (build_config.paths.dist_dir / "artifact.txt").exists()
        assert builder.container_exists()
        assert builder.logs().strip() == "build log"

    def test_package_requires_container(self, build_config, context_dir):
        builder = make_builder(build_config, context_dir, FakeDocker())

        with pytest.raises(MissingPrerequisiteError, match="docker-build"):
            builder.package()

    def test_package_runs_throwaway_container(self, build_config, context_dir):
        fake = FakeDocker()
        builder = make_builder(build_config, context_dir, fake)
        builder.run_build()

        builder.package()

        package_run = fake.subcommands("run")[-1]
        assert "--rm" in package_run
        assert package_run[-2:] == ["ffbuild", "package"]

    def test_clean(self, build_config, context_dir):
        fake = FakeDocker()
        builder = make_builder(build_config, context_dir, fake)
        builder.run_build()

        builder.clean()

        assert not builder.container_exists()
        assert fake.subcommands("rmi")
        assert builder.logs() is None
