#!/usr/bin/env python3
"""
Core Module for the SuperMart microservices

Shared infrastructure components used by every service.

COMPONENTS:
    - config/: Environment driven configuration (infra, logging, store settings)
    - config_manager.py: Per-service configuration access
    - logger.py: Service logger setup
    - postgres_client.py: asyncpg pool wrapper with transaction scopes
    - nats_client.py: NATS JetStream event bus
    - auth_dependencies.py: FastAPI identity dependencies

USAGE:
    from core.config_manager import ConfigManager

    config = ConfigManager("order_service").get_service_config()
"""

__version__ = "1.0.0"
