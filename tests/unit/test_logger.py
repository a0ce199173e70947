"""Tests for logging setup."""

import logging
import uuid

import pytest

from workhub.core.logger import get_logger, setup_logger


class TestSetupLogger:

    def test_console_handler(self):
        name = f"workhub-test-{uuid.uuid4().hex[:8]}"
        logger = setup_logger(name, level="debug")
        assert logger.level == logging.DEBUG
        assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)

    def test_file_handler(self, tmp_path):
        name = f"workhub-test-{uuid.uuid4().hex[:8]}"
        logger = setup_logger(name, log_dir=str(tmp_path), file_logging=True, console_logging=False)
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in (tmp_path / f"{name}.log").read_text()

    def test_no_duplicate_handlers(self):
        name = f"workhub-test-{uuid.uuid4().hex[:8]}"
        setup_logger(name)
        logger = setup_logger(name)
        assert len(logger.handlers) == 1

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            setup_logger("workhub-bad-level", level="LOUD")


class TestGetLogger:

    def test_namespaced_under_app(self):
        assert get_logger("sync").name == "workhub.sync"
        assert get_logger("workhub.api").name == "workhub.api"
