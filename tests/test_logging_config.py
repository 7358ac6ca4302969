"""Tests for the logging setup."""

import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from utils.logging_config import get_logger, setup_logging


class TestGetLogger:
    def test_prefixes_module_names(self):
        assert get_logger("scanner").name == "spark.scanner"
        assert get_logger("spark.scanner").name == "spark.scanner"
        assert get_logger().name == "spark"

    def test_similar_prefix_is_namespaced(self):
        assert get_logger("sparkle").name == "spark.sparkle"


class TestSetupLogging:
    def test_file_handler(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SPARK_LOG_LEVEL", raising=False)
        log_file = tmp_path / "logs" / "spark.log"
        try:
            logger = setup_logging(log_file=str(log_file))
            assert len(logger.handlers) == 2
            get_logger("test").info("scan finished")
            for handler in logger.handlers:
                handler.flush()
            assert "spark.test: scan finished" in log_file.read_text()
        finally:
            setup_logging()

    def test_env_level_and_handlers_replaced(self, monkeypatch):
        monkeypatch.setenv("SPARK_LOG_LEVEL", "debug")
        try:
            logger = setup_logging()
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 1
        finally:
            monkeypatch.delenv("SPARK_LOG_LEVEL")
            setup_logging()
