"""Logging setup for the translator worker and library modules."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from lazy_dubber.common.config import settings
from lazy_dubber.common.utils import DateTimeUtils

PACKAGE_LOGGER = "lazy_dubber"

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("openai", "httpx", "httpcore", "redis", "asyncio")


def _resolve_level(level: Optional[str]) -> int:
    return getattr(logging, (level or settings.log_level).upper(), logging.INFO)


def _build_handlers(log_file: Optional[str], level: int) -> List[logging.Handler]:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging(
    service_name: str, log_file: Optional[str] = None, log_level: Optional[str] = None
) -> logging.Logger:
    """
    Send a service's logs, and every ``lazy_dubber.*`` module log, to stdout.

    Calling it again replaces the handlers instead of stacking them.

    Args:
        service_name: Name of the service (e.g., 'translator')
        log_file: Optional log file path. If None, logs only to console
        log_level: Optional log level override. If None, uses settings.log_level

    Returns:
        The service logger
    """
    level = _resolve_level(log_level)
    handlers = _build_handlers(log_file, level)

    for name in (service_name, PACKAGE_LOGGER):
        target = logging.getLogger(name)
        target.setLevel(level)
        target.handlers.clear()
        for handler in handlers:
            target.addHandler(handler)
        target.propagate = False

    return logging.getLogger(service_name)


def get_log_file_path(service_name: str, log_dir: str = "./logs") -> str:
    """Daily log file path, e.g. ``./logs/translator_20240101.log``."""
    date_string = DateTimeUtils.get_date_string_for_log_file()
    return f"{log_dir}/{service_name}_{date_string}.log"


def configure_third_party_loggers(level: str = "WARNING") -> None:
    """
    Raise the level of chatty client libraries.

    Args:
        level: Log level applied to every logger in ``NOISY_LOGGERS``
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(log_level)


def setup_service_logging(
    service_name: str, enable_file_logging: bool = False
) -> logging.Logger:
    """
    Configure logging for a runnable service.

    Args:
        service_name: Name of the service
        enable_file_logging: Also write to a dated file under ./logs

    Returns:
        The service logger
    """
    configure_third_party_loggers()
    log_file = get_log_file_path(service_name) if enable_file_logging else None
    return setup_logging(service_name, log_file)
