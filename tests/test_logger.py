"""Tests for the logging setup and decorators."""

import logging

import pytest

from podlabel.logger import log_function, log_with_timer, setup_logging


class TestSetupLogging:
    def test_file_handler_only_by_default(self, tmp_path):
        log_file = tmp_path / "logs" / "pipeline.log"

        logger = setup_logging("podlabel", log_file)
        logging.getLogger("podlabel.pipeline").info("Stage started")

        assert [type(h) for h in logger.handlers] == [logging.FileHandler]
        assert "podlabel.pipeline - INFO - Stage started" in log_file.read_text(encoding="utf-8")

    def test_verbose_adds_console_handler(self, tmp_path):
        logger = setup_logging("podlabel", tmp_path / "pipeline.log", verbose=True)

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2

    def test_is_idempotent(self, tmp_path):
        first = setup_logging("podlabel", tmp_path / "pipeline.log")
        second = setup_logging("podlabel", tmp_path / "pipeline.log", verbose=True)

        assert first is second
        assert len(second.handlers) == 1


class TestDecorators:
    def test_log_function_logs_entry_args_and_result(self, caplog):
        @log_function(logger_name="podlabel.test", log_args=True, log_result=True)
        def add(a, b=0):
            return a + b

        with caplog.at_level(logging.INFO, logger="podlabel.test"):
            assert add(2, b=3) == 5

        messages = [r.message for r in caplog.records]
        assert "Calling add with args: 2, b=3" in messages
        assert any(m.startswith("Completed add") and "5" in m for m in messages)

    def test_log_function_logs_and_reraises(self, caplog):
        @log_function(logger_name="podlabel.test")
        def explode():
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger="podlabel.test"):
            with pytest.raises(RuntimeError):
                explode()

        [error] = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert "Exception in explode" in error.message
        assert "RuntimeError: boom" in error.message

    def test_log_with_timer_keeps_metadata(self):
        @log_with_timer("podlabel.test")
        def diarize(audio_url):
            """Docstring."""
            return audio_url

        assert diarize.__name__ == "diarize"
        assert diarize.__doc__ == "Docstring."
        assert diarize("x") == "x"
