"""
Configuration Manager

Per-service view over the global store configuration.

Usage:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("order_service")
    config = config_manager.get_service_config()
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from core.config import StoreConfig, get_settings

logger = logging.getLogger(__name__)


def _int(val: Optional[str], default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class ServiceConfig:
    """Runtime settings of one microservice"""
    service_name: str
    service_host: str = "0.0.0.0"
    service_port: int = 8210
    log_level: str = "INFO"
    debug: bool = False


class ConfigManager:
    """
    Configuration access for a single service.

    Resolves the service's own host/port from the environment and exposes
    the shared StoreConfig sections.
    """

    def __init__(self, service_name: str, settings: Optional[StoreConfig] = None):
        self.service_name = service_name
        self.settings = settings or get_settings()

    def get_service_config(self) -> ServiceConfig:
        """Build the ServiceConfig for this service"""
        return ServiceConfig(
            service_name=self.service_name,
            service_host=os.getenv("HOST", "0.0.0.0"),
            service_port=_int(os.getenv("PORT"), 8210),
            log_level=self.settings.logging.log_level,
            debug=self.settings.debug,
        )

    def print_config_summary(self) -> None:
        """Log the effective configuration (secrets masked)"""
        service = self.get_service_config()
        infra = self.settings.infrastructure
        mail = self.settings.mail
        orders = self.settings.orders

        logger.info(f"=== {self.service_name} configuration ({self.settings.environment}) ===")
        logger.info(f"  listen:      {service.service_host}:{service.service_port}")
        logger.info(f"  postgres:    {infra.postgres_host}:{infra.postgres_port}/{infra.postgres_db}")
        logger.info(f"  nats:        {infra.nats_servers if infra.nats_enabled else 'disabled'}")
        logger.info(f"  resend:      {'configured' if mail.resend_api_key else 'not configured'}")
        logger.info(f"  admin email: {mail.admin_email or 'not configured'}")
        logger.info(f"  tx timeout:  {orders.transaction_timeout}s")
        logger.info(f"  cancel keeps record: {orders.cancel_retain_record}")
        logger.info(f"  strict status transitions: {orders.strict_status_transitions}")
