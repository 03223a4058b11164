"""Tests for step models, the dependency prober and the build environment."""

from pathlib import Path

from ffbuild.steps import (
    BuildEnvironment,
    BuildStep,
    CapabilityResult,
    DependencyProber,
    ProbeAction,
    StepLog,
    StepResult,
    StepStatus,
)


class TestBuildStep:
    def test_create_stringifies(self, tmp_path: Path):
        step = BuildStep.create("s", [["ls", tmp_path]], outputs=[tmp_path / "out"])

        assert step.commands == (("ls", str(tmp_path)),)
        assert step.outputs == (tmp_path / "out",)
        assert step.is_idempotent

    def test_no_outputs_not_idempotent(self):
        assert not BuildStep.create("s", [["true"]]).is_idempotent


class TestStepResult:
    def test_output_tail(self):
        result = StepResult(
            "s", StepStatus.FAILED, output="\n".join(str(i) for i in range(30))
        )

        assert result.output_tail(3) == "27\n28\n29"

    def test_raise_for_status_ignores_success(self):
        StepResult("s", StepStatus.SUCCEEDED).raise_for_status()
        StepResult("s", StepStatus.SKIPPED).raise_for_status()


class TestCapabilityResult:
    def test_built(self, tmp_path: Path):
        artifact = tmp_path / "libopus.so"
        artifact.write_bytes(b"elf")

        cap = CapabilityResult.from_step(
            "opus", StepResult("opus", StepStatus.SUCCEEDED), artifact
        )

        assert cap.available
        assert cap.reason == "built"
        assert cap.artifact == artifact

    def test_skipped_is_already_built(self, tmp_path: Path):
        artifact = tmp_path / "libopus.so"
        artifact.write_bytes(b"elf")

        cap = CapabilityResult.from_step(
            "opus", StepResult("opus", StepStatus.SKIPPED), artifact
        )

        assert cap.reason == "already built"

    def test_success_without_artifact_unavailable(self, tmp_path: Path):
        cap = CapabilityResult.from_step(
            "opus", StepResult("opus", StepStatus.SUCCEEDED), tmp_path / "libopus.so"
        )

        assert not cap.available
        assert "libopus.so is missing" in cap.reason

    def test_failure_unavailable(self, tmp_path: Path):
        cap = CapabilityResult.from_step(
            "x265",
            StepResult("x265", StepStatus.FAILED, message="cmake exited with 1"),
            tmp_path / "libx265.so",
        )

        assert not cap.available
        assert cap.reason == "cmake exited with 1"


def test_step_log_names():
    log = StepLog()
    log.add(StepResult("a", StepStatus.SUCCEEDED))
    log.add(StepResult("b", StepStatus.SKIPPED))
    log.add(StepResult("c", StepStatus.SUCCEEDED))

    assert log.names(StepStatus.SUCCEEDED) == ["a", "c"]


class TestDependencyProber:
    def test_run_without_outputs(self):
        decision = DependencyProber().probe(BuildStep.create("s", [["true"]]))

        assert decision.action == ProbeAction.RUN
        assert decision.reason == "no declared outputs"

    def test_partial_outputs_run(self, tmp_path: Path):
        present = tmp_path / "a"
        present.write_text("")
        step = BuildStep.create("s", [["true"]], outputs=[present, tmp_path / "b"])

        decision = DependencyProber().probe(step)

        assert decision.should_run
        assert decision.reason == f"missing output {tmp_path / 'b'}"

    def test_all_outputs_skip(self, tmp_path: Path):
        present = tmp_path / "a"
        present.write_text("")
        step = BuildStep.create("s", [["true"]], outputs=[present])

        assert not DependencyProber().probe(step).should_run
        assert DependencyProber().probe(step, force=True).reason == "forced"

    def test_missing_inputs(self, tmp_path: Path):
        step = BuildStep.create("s", [["true"]], inputs=[tmp_path, tmp_path / "nope"])

        assert DependencyProber().missing_inputs(step) == [tmp_path / "nope"]


class TestBuildEnvironment:
    def test_prepends_to_inherited_paths(self, tmp_path: Path):
        environment = BuildEnvironment.for_codec_prefix(tmp_path, threads=4)

        env = environment.to_env({"PKG_CONFIG_PATH": "/opt/pc", "LD_LIBRARY_PATH": "/opt"})

        assert env["PKG_CONFIG_PATH"].split(":")[0] == str(tmp_path / "lib" / "pkgconfig")
        assert env["PKG_CONFIG_PATH"].endswith(":/opt/pc")
        assert env["LD_LIBRARY_PATH"] == f"{tmp_path / 'lib'}:/opt"
        assert env["CPPFLAGS"] == f"-I{tmp_path / 'include'}"
        assert env["LDFLAGS"] == f"-L{tmp_path / 'lib'}"
        assert env["MAKEFLAGS"] == "-j4"

    def test_rpath_and_extra(self, tmp_path: Path):
        environment = BuildEnvironment.for_codec_prefix(
            tmp_path, threads=1, rpath="/usr/local/lib/ffmpeg-codecs"
        ).with_extra(DEBIAN_FRONTEND="noninteractive")

        env = environment.to_env({})

        assert env["LDFLAGS"].endswith("-Wl,-rpath,/usr/local/lib/ffmpeg-codecs")
        assert env["DEBIAN_FRONTEND"] == "noninteractive"

    def test_base_not_modified(self, tmp_path: Path):
        base = {"PATH": "/usr/bin"}

        BuildEnvironment.for_codec_prefix(tmp_path, threads=1).to_env(base)

        assert base == {"PATH": "/usr/bin"}
