"""Tests for soulsynth logging setup."""

import json
import logging

import pytest

from soulsynth.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_json_records_go_to_stderr(self, restore_root_logger, capsys):
        setup_logging(level="INFO", json_output=True)

        logging.getLogger("soulsynth.pipeline").info("Synthesis complete")

        captured = capsys.readouterr()
        record = json.loads(captured.err.strip().splitlines()[-1])
        assert captured.out == ""
        assert record["event"] == "Synthesis complete"
        assert record["logger"] == "soulsynth.pipeline"
        assert record["level"] == "info"

    def test_level_from_environment(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("SOULSYNTH_LOG_LEVEL", "debug")

        setup_logging(json_output=True)

        assert restore_root_logger.level == logging.DEBUG

    def test_repeated_setup_keeps_one_handler(self, restore_root_logger):
        setup_logging(json_output=True)
        setup_logging(json_output=True)

        assert len(restore_root_logger.handlers) == 1
