#!/usr/bin/env python3
"""Store platform configuration

Main configuration for the SuperMart order service.
Combines the infrastructure and logging sub-configs with the store settings
(mail, order transaction behaviour, back-office roles).
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .infra_config import InfraConfig
from .logging_config import LoggingConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default

def _list(val: str) -> List[str]:
    return [item.strip() for item in val.split(",") if item.strip()]


# ===========================================
# Mail Configuration
# ===========================================

@dataclass
class MailConfig:
    """Outgoing email settings"""
    mail_from: str = '"SuperMart" <no-reply@SuperMart.com>'
    admin_email: Optional[str] = None
    resend_api_key: Optional[str] = None
    resend_base_url: str = "https://api.resend.com"
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> 'MailConfig':
        return cls(
            mail_from=os.getenv("MAIL_FROM", '"SuperMart" <no-reply@SuperMart.com>'),
            admin_email=os.getenv("ADMIN_EMAIL"),
            resend_api_key=os.getenv("RESEND_API_KEY"),
            resend_base_url=os.getenv("RESEND_BASE_URL", "https://api.resend.com"),
            timeout=_float(os.getenv("MAIL_TIMEOUT", "30"), 30.0),
        )


# ===========================================
# Order Transaction Configuration
# ===========================================

@dataclass
class OrderConfig:
    """Order lifecycle behaviour"""
    # Upper bound for one checkout / cancellation transaction, in seconds
    transaction_timeout: float = 30.0
    # Keep cancelled orders (status=cancelled) instead of deleting them
    cancel_retain_record: bool = True
    # Enforce the allowed-transitions table on status updates
    strict_status_transitions: bool = False
    # Roles allowed to force-set an order status
    status_roles: List[str] = field(default_factory=lambda: ["admin", "cashier", "storekeeper"])

    @classmethod
    def from_env(cls) -> 'OrderConfig':
        return cls(
            transaction_timeout=_float(os.getenv("ORDER_TRANSACTION_TIMEOUT", "30"), 30.0),
            cancel_retain_record=_bool(os.getenv("ORDER_CANCEL_RETAIN_RECORD", "true")),
            strict_status_transitions=_bool(os.getenv("ORDER_STRICT_STATUS_TRANSITIONS", "false")),
            status_roles=_list(os.getenv("ORDER_STATUS_ROLES", "admin,cashier,storekeeper")),
        )


# ===========================================
# Main Store Configuration
# ===========================================

@dataclass
class StoreConfig:
    """Main store configuration with all sub-configs"""

    # Environment
    environment: str = "development"
    debug: bool = False
    auto_migrate: bool = False

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    infrastructure: InfraConfig = field(default_factory=InfraConfig)
    mail: MailConfig = field(default_factory=MailConfig)
    orders: OrderConfig = field(default_factory=OrderConfig)

    @classmethod
    def from_env(cls) -> 'StoreConfig':
        """Load complete configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            environment=env,
            debug=_bool(os.getenv("DEBUG", "true" if env == "development" else "false")),
            auto_migrate=_bool(os.getenv("AUTO_MIGRATE", "false")),
            logging=LoggingConfig.from_env(),
            infrastructure=InfraConfig.from_env(),
            mail=MailConfig.from_env(),
            orders=OrderConfig.from_env(),
        )
