"""Tests for codec library builds."""

from pathlib import Path

import pytest

from ffbuild.errors import (
    OptionalFeatureError,
    RetryExhaustedError,
    StepExecutionError,
)
from ffbuild.pipeline.codecs import CMAKE_BUILD_DIR, CodecBuilder


def library(recipe, name):
    return next(lib for lib in recipe.codec_libraries if lib.name == name)


def fails_in(directory: str):
    return lambda argv, cwd: cwd is not None and Path(cwd).name == directory


class TestBuildSteps:
    def test_autotools_step(self, pipeline_context, test_recipe):
        builder = CodecBuilder(pipeline_context)
        x264 = library(test_recipe, "x264")
        src = builder.source_dir(x264)

        step = builder.build_step(x264, src)

        prefix = pipeline_context.config.paths.codec_prefix
        assert step.commands == (
            ("./configure", f"--prefix={prefix}", "--enable-shared"),
            ("make", "-j2"),
            ("make", "install"),
        )
        assert step.outputs == (prefix / "lib" / "libx264.so",)
        assert step.cwd == src

    def test_cmake_step(self, pipeline_context, test_recipe):
        builder = CodecBuilder(pipeline_context)
        x265 = library(test_recipe, "x265")
        src = builder.source_dir(x265)

        step = builder.build_step(x265, src)

        assert step.commands[0][:3] == ("cmake", "-S", str(src / "source"))
        assert step.commands[2] == ("cmake", "--install", str(src / CMAKE_BUILD_DIR))
        assert step.optional

    def test_archive_source_dir(self, pipeline_context, test_recipe):
        builder = CodecBuilder(pipeline_context)

        src = builder.source_dir(library(test_recipe, "opus"))

        assert src == pipeline_context.config.paths.sources_dir / "opus-1.4"


class TestBuildAll:
    def test_all_libraries_available(self, pipeline_context, fake_runner):
        capabilities = CodecBuilder(pipeline_context).build_all()

        assert list(capabilities) == ["x264", "opus", "x265"]
        assert all(cap.available for cap in capabilities.values())
        assert len(fake_runner.commands("git")) == 2

    def test_second_run_skips_built_libraries(self, pipeline_context, fake_runner):
        CodecBuilder(pipeline_context).build_all()
        calls = len(fake_runner.calls)

        capabilities = CodecBuilder(pipeline_context).build_all()

        assert len(fake_runner.calls) == calls
        assert {cap.reason for cap in capabilities.values()} == {"already built"}

    def test_optional_failure_disables_feature(
        self, pipeline_context, fake_runner, caplog: pytest.LogCaptureFixture
    ):
        fake_runner.fail_when(lambda argv, cwd: argv[:2] == ["cmake", "--build"])

        with caplog.at_level("WARNING"):
            capabilities = CodecBuilder(pipeline_context).build_all()

        assert capabilities["x265"].available is False
        assert capabilities["x264"].available
        assert len(fake_runner.commands("cmake")) == 2
        assert "Optional library x265 failed to build" in caplog.text

    def test_optional_failure_raises_feature_error(
        self, pipeline_context, fake_runner, test_recipe
    ):
        fake_runner.fail_when(lambda argv, cwd: argv[:2] == ["cmake", "--build"])

        with pytest.raises(OptionalFeatureError) as exc_info:
            CodecBuilder(pipeline_context).build_optional(library(test_recipe, "x265"))

        assert exc_info.value.feature == "x265"
        assert isinstance(exc_info.value.__cause__, StepExecutionError)

    def test_required_failure_retried_then_fatal(self, pipeline_context, fake_runner):
        fake_runner.fail_when(fails_in("x264"))

        with pytest.raises(RetryExhaustedError) as exc_info:
            CodecBuilder(pipeline_context).build_all()

        assert exc_info.value.attempts == 2
        assert len(fake_runner.commands("git")) == 2
        assert not (pipeline_context.config.paths.sources_dir / "x264").exists()

    def test_required_transient_failure_recovers(self, pipeline_context, fake_runner):
        failures = []

        def fail_once(argv, cwd):
            if argv[0] == "./configure" and Path(cwd).name == "opus-1.4" and not failures:
                failures.append(argv)
                return True
            return False

        fake_runner.fail_when(fail_once)

        capabilities = CodecBuilder(pipeline_context).build_all()

        assert capabilities["opus"].available
        assert len(failures) == 1

    def test_missing_download_is_retried_then_fatal(
        self, pipeline_context, fetcher_factory
    ):
        pipeline_context.fetcher = fetcher_factory({})

        with pytest.raises(RetryExhaustedError, match="opus build failed after 2"):
            CodecBuilder(pipeline_context).build_all()


def test_salvage_copies_missing_files(pipeline_context, test_recipe):
    x265 = library(test_recipe, "x265").model_copy(
        update={"salvage": ["libx265.so*", "x265.pc"]}
    )
    builder = CodecBuilder(pipeline_context)
    build_dir = builder.source_dir(x265) / CMAKE_BUILD_DIR
    build_dir.mkdir(parents=True)
    (build_dir / "libx265.so.199").write_bytes(b"elf")
    (build_dir / "x265.pc").write_text("Name: x265\n")

    copied = builder.salvage(x265, builder.source_dir(x265))

    prefix = pipeline_context.config.paths.codec_prefix
    assert sorted(copied) == [
        prefix / "lib" / "libx265.so.199",
        prefix / "lib/pkgconfig/x265.pc",
    ]
