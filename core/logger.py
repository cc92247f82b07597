"""
Service Logger Setup

Configures the root logger of a microservice from LoggingConfig.

Usage:
    from core.logger import setup_service_logger

    logger = setup_service_logger("order_service")
"""

import logging
import sys
from typing import Optional

from core.config import get_settings

_configured = set()


def setup_service_logger(service_name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for a service and return its logger.

    Args:
        service_name: Logger name, also used to avoid double configuration
        level: Log level override (defaults to LOG_LEVEL)

    Returns:
        The service logger
    """
    logging_config = get_settings().logging
    log_level = (level or logging_config.log_level).upper()

    logger = logging.getLogger(service_name)
    if service_name in _configured:
        return logger

    formatter = logging.Formatter(logging_config.log_format)
    root = logging.getLogger()
    root.setLevel(log_level)

    if logging_config.enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    if logging_config.log_file:
        file_handler = logging.FileHandler(logging_config.log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Third-party clients are chatty at DEBUG
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    _configured.add(service_name)
    logger.info(f"Logging configured for {service_name} at {log_level}")
    return logger
