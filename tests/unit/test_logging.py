"""
Unit tests for the logging module.

Tests cover:
- Sink configuration (console, daily file, error file) and the switches for each
- Context manager for request/engine/assessment year fields
- Custom formatting with context fields
"""

import pytest
from loguru import logger

from tp_compliance.utils.log_setup import EngineNames, format_record, log_context, setup_logging

pytestmark = pytest.mark.usefixtures("clean_loguru")


def read_daily_log(logs_dir):
    log_files = [p for p in logs_dir.glob("*.log") if p.name != "errors.log"]
    assert len(log_files) == 1
    return log_files[0].read_text(encoding="utf-8")


class TestLoggerInitialization:
    """Test logger setup and directory creation"""

    def test_creates_logs_directory_if_missing(self, tmp_path):
        logs_dir = tmp_path / "logs"
        assert not logs_dir.exists()

        setup_logging(log_dir=str(logs_dir))

        assert logs_dir.is_dir()

    def test_configures_three_handlers(self, tmp_path):
        """Console, daily file and error file"""
        setup_logging(log_dir=str(tmp_path / "logs"))

        assert len(logger._core.handlers) == 3

    def test_console_disabled(self, tmp_path):
        setup_logging(log_dir=str(tmp_path / "logs"), console=False)

        assert len(logger._core.handlers) == 2

    def test_file_sinks_disabled(self, tmp_path):
        """No directory is created when file sinks are off"""
        logs_dir = tmp_path / "logs"

        setup_logging(log_dir=str(logs_dir), file=False)

        assert len(logger._core.handlers) == 1
        assert not logs_dir.exists()

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path):
        setup_logging(log_dir=str(tmp_path / "logs"))
        setup_logging(log_dir=str(tmp_path / "logs"))

        assert len(logger._core.handlers) == 3

    def test_none_log_dir_falls_back(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        setup_logging(log_dir=None)

        assert (tmp_path / "logs").is_dir()


class TestSinks:
    """Level filtering per sink"""

    def test_console_filters_by_level(self, tmp_path, capsys):
        setup_logging(log_dir=str(tmp_path / "logs"), file=False)

        logger.debug("Debug message - should not appear")
        logger.info("Info message - should appear")

        output = capsys.readouterr().err
        assert "Debug message" not in output
        assert "Info message" in output

    def test_daily_file_captures_debug(self, tmp_path):
        logs_dir = tmp_path / "logs"
        setup_logging(log_dir=str(logs_dir), console=False)

        logger.debug("Debug detail")

        assert "Debug detail" in read_daily_log(logs_dir)

    def test_error_sink_captures_errors_only(self, tmp_path):
        logs_dir = tmp_path / "logs"
        setup_logging(log_dir=str(logs_dir), console=False)

        logger.warning("Warning message")
        logger.error("Error message")

        content = (logs_dir / "errors.log").read_text(encoding="utf-8")
        assert "Warning message" not in content
        assert "Error message" in content


class TestContextManager:
    """Test log_context manager for adding contextual fields"""

    def test_context_adds_fields_to_logs(self, tmp_path):
        logs_dir = tmp_path / "logs"
        setup_logging(log_dir=str(logs_dir), console=False)

        with log_context(request_id="req-42", engine=EngineNames.THIN_CAP, assessment_year="2024-25"):
            logger.info("Computing limitation")

        content = read_daily_log(logs_dir)
        assert "req-42" in content
        assert "thin_cap" in content
        assert "2024-25" in content

    def test_context_is_removed_after_exit(self, tmp_path):
        logs_dir = tmp_path / "logs"
        setup_logging(log_dir=str(logs_dir), console=False)

        with log_context(request_id="req-1"):
            logger.info("Inside context")
        logger.info("Outside context")

        lines = read_daily_log(logs_dir).splitlines()
        outside = next(line for line in lines if "Outside context" in line)
        assert "req-1" not in outside

    def test_nested_contexts_combine(self, tmp_path):
        logs_dir = tmp_path / "logs"
        setup_logging(log_dir=str(logs_dir), console=False)

        with log_context(engine=EngineNames.PENALTY), log_context(assessment_year="2023-24"):
            logger.info("Nested context")

        line = next(line for line in read_daily_log(logs_dir).splitlines() if "Nested context" in line)
        assert "penalty" in line
        assert "2023-24" in line

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValueError, match="Invalid context field"):
            with log_context(document_id="DOC001"):
                pass


class TestFormatRecord:
    """Console format includes context fields only when set"""

    def test_plain_record(self):
        fmt = format_record({"extra": {}, "exception": None})

        assert "{message}" in fmt
        assert "REQ:" not in fmt

    def test_record_with_context(self):
        fmt = format_record(
            {"extra": {"request_id": "r1", "engine": "forex", "assessment_year": "2024-25"}, "exception": None}
        )

        assert "REQ:{extra[request_id]}" in fmt
        assert "{extra[engine]}" in fmt
        assert "AY {extra[assessment_year]}" in fmt

    def test_record_with_exception(self):
        fmt = format_record({"extra": {}, "exception": object()})

        assert fmt.endswith("{exception}\n")
