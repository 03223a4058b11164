"""Shared test fixtures for ffbuild."""

from __future__ import annotations

import io
import logging
import tarfile
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from ffbuild.config.models import (
    BuildConfig,
    FFBuildConfig,
    PathsConfig,
    RetryConfig,
)
from ffbuild.pipeline.context import PipelineContext
from ffbuild.pipeline.sources import SourceFetcher
from ffbuild.recipe import parse_recipe
from ffbuild.recipe.models import RecipeModel
from ffbuild.tools.models import ToolInfo, ToolRegistry, ToolStatus

FFMPEG_VERSION = "5.1.2"

TEST_RECIPE = {
    "schema_version": 1,
    "ffmpeg": {
        "source_url": "https://example.test/ffmpeg-{version}.tar.gz",
        "configure_flags": ["--enable-shared", "--enable-gpl"],
    },
    "codec_libraries": [
        {
            "name": "x264",
            "feature_flag": "--enable-libx264",
            "artifact": "lib/libx264.so",
            "priority": 10,
            "source": {"git": {"url": "https://example.test/x264.git"}},
            "configure_args": ["--enable-shared"],
        },
        {
            "name": "opus",
            "feature_flag": "--enable-libopus",
            "artifact": "lib/libopus.so",
            "priority": 20,
            "source": {
                "archive": {
                    "url": "https://example.test/opus-1.4.tar.gz",
                    "directory": "opus-1.4",
                }
            },
        },
        {
            "name": "x265",
            "feature_flag": "--enable-libx265",
            "artifact": "lib/libx265.so",
            "optional": True,
            "priority": 30,
            "source": {"git": {"url": "https://example.test/x265.git"}},
            "build_system": "cmake",
            "cmake_source_dir": "source",
        },
    ],
    "package": {
        "summary": "FFmpeg test build",
        "description": "First paragraph.\n\nSecond paragraph.\n",
        "depends": ["libc6 (>= 2.29)"],
        "runtime_packages": ["libfreetype6", "zlib1g"],
        "conflicts": ["ffmpeg"],
        "provides": ["ffmpeg"],
    },
    "setup": {
        "build_tools": ["build-essential", "cmake"],
        "codec_dev": ["libopus-dev"],
        "system": ["zlib1g-dev"],
        "hwaccel": ["libva-dev"],
        "headers": ["libc6-dev"],
    },
}

# Source directory name -> artifact installed into the codec prefix
SOURCE_ARTIFACTS = {
    "x264": "lib/libx264.so",
    "opus-1.4": "lib/libopus.so",
    "x265": "lib/libx265.so",
}


def make_tarball(members: dict[str, bytes]) -> bytes:
    """Build a gzip tarball in memory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def source_tarballs() -> dict[str, bytes]:
    """Download URL path -> tarball bytes for the test recipe."""
    return {
        "/opus-1.4.tar.gz": make_tarball({"opus-1.4/configure": b"#!/bin/sh\n"}),
        f"/ffmpeg-{FFMPEG_VERSION}.tar.gz": make_tarball(
            {f"ffmpeg-{FFMPEG_VERSION}/configure": b"#!/bin/sh\n"}
        ),
    }


def make_fetcher(tarballs: dict[str, bytes] | None = None) -> SourceFetcher:
    """SourceFetcher backed by an in-memory transport."""
    tarballs = source_tarballs() if tarballs is None else tarballs

    def handler(request: httpx.Request) -> httpx.Response:
        body = tarballs.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    return SourceFetcher(client=httpx.Client(transport=httpx.MockTransport(handler)))


def available_registry(names: Iterable[str]) -> ToolRegistry:
    """Registry reporting every tool as installed."""
    now = datetime.now(timezone.utc)
    return ToolRegistry(
        tools={
            name: ToolInfo(
                name=name,
                path=Path(f"/usr/bin/{name}"),
                version="99.0",
                version_tuple=(99, 0),
                status=ToolStatus.AVAILABLE,
                detected_at=now,
            )
            for name in names
        }
    )


FailRule = Callable[[list[str], Path | None], bool]


class FakeBuildRunner:
    """Stand-in for run_command that simulates the external build tools.

    Each call is recorded as (argv, cwd). Commands matching a rule in
    ``fail_rules`` return exit code 1 without side effects.
    """

    def __init__(self, codec_prefix: Path) -> None:
        self.codec_prefix = codec_prefix
        self.calls: list[tuple[list[str], Path | None]] = []
        self.fail_rules: list[FailRule] = []
        self.install_prefix = "/usr/local"

    def fail_when(self, rule: FailRule) -> None:
        self.fail_rules.append(rule)

    def commands(self, program: str) -> list[list[str]]:
        return [argv for argv, _ in self.calls if Path(argv[0]).name == program]

    def __call__(self, args, timeout=None, cwd=None, env=None, **kwargs):
        argv = [str(a) for a in args]
        self.calls.append((argv, cwd))
        if any(rule(argv, cwd) for rule in self.fail_rules):
            return "", f"{argv[0]}: simulated failure", 1
        return self._simulate(argv, cwd)

    def _remember_prefix(self, argv: list[str]) -> None:
        for arg in argv:
            if arg.startswith("--prefix="):
                self.install_prefix = arg.split("=", 1)[1]

    def _install_codec(self, cwd: Path) -> None:
        artifact = SOURCE_ARTIFACTS.get(cwd.name)
        if artifact:
            target = self.codec_prefix / artifact
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"\x7fELF codec")

    def _simulate(self, argv: list[str], cwd: Path | None):
        program = Path(argv[0]).name
        if program == "git" and "clone" in argv:
            dest = Path(argv[-1])
            (dest / ".git").mkdir(parents=True, exist_ok=True)
            (dest / "configure").write_text("#!/bin/sh\n")
        elif program == "configure" and cwd is not None:
            (cwd / "Makefile").write_text("all:\n")
            if cwd.name.startswith("ffmpeg-"):
                self._remember_prefix(argv)
        elif argv[:2] == ["make", "install"] and cwd is not None:
            self._install_codec(cwd)
        elif argv[:2] == ["cmake", "--install"]:
            self._install_codec(Path(argv[2]).parent)
        elif program == "make" and len(argv) > 1 and argv[1].startswith("DESTDIR="):
            destdir = Path(argv[1].split("=", 1)[1])
            prefix = destdir / self.install_prefix.lstrip("/")
            (prefix / "bin").mkdir(parents=True, exist_ok=True)
            (prefix / "lib").mkdir(parents=True, exist_ok=True)
            (prefix / "bin" / "ffmpeg").write_bytes(b"\x7fELF ffmpeg" * 100)
            (prefix / "bin" / "ffprobe").write_bytes(b"\x7fELF ffprobe" * 50)
            (prefix / "lib" / "libavcodec.so.59").write_bytes(b"\x7fELF avcodec" * 300)
            link = prefix / "lib" / "libavcodec.so"
            if not link.is_symlink():
                link.symlink_to("libavcodec.so.59")
        elif program == "ldd":
            return "\tlibavcodec.so.59 => /staging/libavcodec.so.59 (0x0001)\n", "", 0
        elif program == "dpkg-deb" and "--build" in argv:
            Path(argv[-1]).write_bytes(b"!<arch>\n")
        elif program in ("ffmpeg", "ffprobe"):
            return f"{program} version {FFMPEG_VERSION} Copyright (c) 2000-2022\n", "", 0
        return "", "", 0


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo configure_logging so caplog sees ffbuild records."""
    logger = logging.getLogger("ffbuild")
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def test_recipe() -> RecipeModel:
    """Three-library recipe: two required, one optional."""
    return parse_recipe(TEST_RECIPE, source="test recipe")


@pytest.fixture
def build_config(tmp_path: Path) -> FFBuildConfig:
    """Configuration rooted in a temporary directory."""
    return FFBuildConfig(
        paths=PathsConfig(build_dir=tmp_path / "build", dist_dir=tmp_path / "dist"),
        build=BuildConfig(ffmpeg_version=FFMPEG_VERSION, threads=2, min_free_disk_gb=0),
        retry=RetryConfig(max_retries=2, delay_seconds=0),
    )


@pytest.fixture
def fake_runner(build_config: FFBuildConfig) -> FakeBuildRunner:
    return FakeBuildRunner(build_config.paths.codec_prefix)


@pytest.fixture
def pipeline_context(
    build_config: FFBuildConfig,
    test_recipe: RecipeModel,
    fake_runner: FakeBuildRunner,
    monkeypatch: pytest.MonkeyPatch,
) -> PipelineContext:
    """PipelineContext with simulated tools, downloads and host checks."""
    monkeypatch.setattr("ffbuild.pipeline.setup.check_platform", lambda: None)
    ctx = PipelineContext(
        config=build_config,
        recipe=test_recipe,
        runner=fake_runner,
        fetcher=make_fetcher(),
        sleep=lambda seconds: None,
        detect=available_registry,
    )
    yield ctx
    ctx.close()


@pytest.fixture
def tarball_factory() -> Callable[[dict[str, bytes]], bytes]:
    return make_tarball


@pytest.fixture
def fetcher_factory() -> Callable[..., SourceFetcher]:
    return make_fetcher
