"""
Configuration module for settings, constants and database connections.
"""
from .settings import Settings, get_settings
from .database import (
    PostgresConfig,
    get_postgres_config,
    create_postgres_pool,
)

__all__ = [
    'Settings',
    'get_settings',
    'PostgresConfig',
    'get_postgres_config',
    'create_postgres_pool',
]
