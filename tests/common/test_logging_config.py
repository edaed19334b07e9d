"""Tests for logging configuration."""

import logging

from lazy_dubber.common.logging_config import (
    configure_third_party_loggers,
    get_log_file_path,
    setup_logging,
    setup_service_logging,
)


class TestSetupLogging:
    def test_configures_service_and_package_loggers(self):
        logger = setup_logging("test_service", log_level="debug")

        assert logger.name == "test_service"
        assert logger.level == logging.DEBUG
        assert logging.getLogger("lazy_dubber").level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging("test_service")
        logger = setup_logging("test_service")

        assert len(logger.handlers) == 1

    def test_file_logging(self, tmp_path):
        log_file = tmp_path / "logs" / "translator.log"

        logger = setup_logging("test_file_service", log_file=str(log_file))
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "hello" in log_file.read_text(encoding="utf-8")


def test_get_log_file_path():
    path = get_log_file_path("translator")

    assert path.startswith("./logs/translator_")
    assert path.endswith(".log")


def test_configure_third_party_loggers():
    configure_third_party_loggers("ERROR")

    assert logging.getLogger("openai").level == logging.ERROR
    assert logging.getLogger("httpx").level == logging.ERROR


def test_setup_service_logging_returns_service_logger():
    logger = setup_service_logging("test_worker")

    assert isinstance(logger, logging.Logger)
    assert logger.name == "test_worker"
    assert logging.getLogger("redis").level == logging.WARNING
