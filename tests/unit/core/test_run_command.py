"""Tests for core subprocess utilities."""

import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ffbuild.core.subprocess_utils import run_command


class TestRunCommand:
    """Tests for run_command function."""

    def test_successful_command(self):
        """run_command returns stdout, stderr, returncode for successful command."""
        stdout, stderr, returncode = run_command(["echo", "hello"])

        assert stdout.strip() == "hello"
        assert returncode == 0

    def test_command_with_path_args(self, tmp_path: Path):
        """run_command converts Path arguments to strings."""
        stdout, stderr, returncode = run_command(["ls", tmp_path])

        assert returncode == 0

    def test_command_failure_returns_non_zero(self):
        """run_command returns non-zero returncode for failed command."""
        stdout, stderr, returncode = run_command(["ls", "/nonexistent_path_12345"])

        assert returncode != 0
        assert stderr != ""

    def test_timeout_raises_exception(self):
        """run_command raises TimeoutExpired for long-running commands."""
        with pytest.raises(subprocess.TimeoutExpired):
            run_command(["sleep", "10"], timeout=0.5)

    def test_missing_executable_raises(self):
        """run_command lets FileNotFoundError propagate."""
        with pytest.raises(FileNotFoundError):
            run_command(["ffbuild-no-such-tool-12345"])

    def test_captures_stderr(self):
        """run_command captures stderr output."""
        stdout, stderr, returncode = run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('error message')"]
        )

        assert "error message" in stderr

    def test_uses_explicit_environment(self):
        """run_command passes env to the child without touching os.environ."""
        stdout, _, _ = run_command(
            [sys.executable, "-c", "import os; print(os.environ['FFBUILD_PROBE'])"],
            env={"FFBUILD_PROBE": "value", "PATH": "/usr/bin:/bin"},
        )

        assert stdout.strip() == "value"

    def test_runs_in_cwd(self, tmp_path: Path):
        """run_command runs the command in cwd."""
        stdout, _, _ = run_command(["pwd"], cwd=tmp_path)

        assert Path(stdout.strip()).resolve() == tmp_path.resolve()

    @patch("ffbuild.core.subprocess_utils.subprocess.run")
    def test_passes_kwargs_to_subprocess(self, mock_run: MagicMock):
        """run_command passes additional kwargs to subprocess.run."""
        mock_result = MagicMock()
        mock_result.stdout = None
        mock_result.stderr = None
        mock_result.returncode = 0
        mock_run.return_value = mock_result

        stdout, stderr, _ = run_command(["echo", "test"], stdin=subprocess.DEVNULL)

        call_kwargs = mock_run.call_args[1]
        assert call_kwargs["stdin"] is subprocess.DEVNULL
        assert stdout == ""
        assert stderr == ""
