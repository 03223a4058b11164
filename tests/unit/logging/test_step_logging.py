"""Unit tests for step context logging."""

import json
import logging
from pathlib import Path

import pytest

from ffbuild.config.models import LoggingConfig
from ffbuild.logging import (
    JSONFormatter,
    StepContextFilter,
    clear_step_context,
    configure_logging,
    get_step_context,
    set_step_context,
    step_context,
)


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        "ffbuild.test", logging.INFO, __file__, 1, message, (), None
    )


@pytest.fixture(autouse=True)
def _reset_context():
    clear_step_context()
    yield
    clear_step_context()


class TestStepContext:
    def test_set_and_get(self) -> None:
        set_step_context("build", "x264")

        assert get_step_context() == ("build", "x264")

    def test_nested_step_keeps_stage(self) -> None:
        with step_context("build"):
            with step_context(step="opus"):
                assert get_step_context() == ("build", "opus")
            assert get_step_context() == ("build", None)
        assert get_step_context() == (None, None)

    def test_restored_after_exception(self) -> None:
        with pytest.raises(RuntimeError):
            with step_context("package", "deb"):
                raise RuntimeError("boom")

        assert get_step_context() == (None, None)


class TestStepContextFilter:
    def test_tags(self) -> None:
        context_filter = StepContextFilter()

        record = _record()
        context_filter.filter(record)
        assert record.step_tag == ""

        with step_context("setup"):
            record = _record()
            context_filter.filter(record)
            assert record.step_tag == "[setup] "

            with step_context(step="apt"):
                record = _record()
                context_filter.filter(record)
                assert record.step_tag == "[setup:apt] "
                assert record.stage == "setup"
                assert record.step == "apt"


class TestJSONFormatter:
    def test_includes_stage_and_extra(self) -> None:
        record = _record("compiled")
        record.stage = "build"
        record.step = "x265"
        record.returncode = 0

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "compiled"
        assert entry["level"] == "INFO"
        assert entry["stage"] == "build"
        assert entry["step"] == "x265"
        assert entry["context"] == {"returncode": 0}

    def test_filter_attributes_not_in_context(self) -> None:
        record = _record()
        StepContextFilter().filter(record)

        entry = json.loads(JSONFormatter().format(record))

        assert "context" not in entry
        assert "stage" not in entry


class TestConfigureLogging:
    def test_file_handler_and_no_duplicates(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "ffbuild.log"
        config = LoggingConfig(level="debug", file=log_file, include_stderr=False)

        configure_logging(config)
        logger = configure_logging(config)
        try:
            with step_context("build", "x264"):
                logging.getLogger("ffbuild.test").info("compiling")
            for handler in logger.handlers:
                handler.flush()

            assert len(logger.handlers) == 1
            assert logger.level == logging.DEBUG
            assert "[build:x264] compiling" in log_file.read_text()
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

    def test_json_format(self, tmp_path: Path) -> None:
        log_file = tmp_path / "ffbuild.json"
        config = LoggingConfig(file=log_file, format="json", include_stderr=False)

        logger = configure_logging(config)
        try:
            logging.getLogger("ffbuild.test").warning("careful")
            for handler in logger.handlers:
                handler.flush()

            entry = json.loads(log_file.read_text().splitlines()[0])
            assert entry["message"] == "careful"
            assert entry["level"] == "WARNING"
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
