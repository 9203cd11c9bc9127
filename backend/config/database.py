"""
Database Configuration
======================

Connection configuration for the room directory (PostgreSQL).
The pool is created once at process start and closed at shutdown;
components receive it explicitly instead of reaching for a global.
"""
from dataclasses import dataclass
from typing import Optional

import asyncpg

from .settings import Settings, get_settings


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""
    host: str
    port: int
    user: str
    password: str
    database: str
    min_size: int = 2
    max_size: int = 10
    dsn: Optional[str] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        min_size: int = 2,
        max_size: int = 10
    ) -> 'PostgresConfig':
        """Create config from application settings."""
        return cls(
            host=settings.postgres_host,
            port=settings.postgres_port,
            user=settings.postgres_user,
            password=settings.postgres_password,
            database=settings.postgres_db,
            min_size=min_size,
            max_size=max_size,
            dsn=settings.database_url,
        )

    def to_asyncpg_kwargs(self) -> dict:
        """Convert to asyncpg.create_pool kwargs."""
        if self.dsn:
            return {
                'dsn': self.dsn,
                'min_size': self.min_size,
                'max_size': self.max_size,
            }
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database,
            'min_size': self.min_size,
            'max_size': self.max_size,
        }


def get_postgres_config(
    settings: Optional[Settings] = None,
    min_size: int = 2,
    max_size: int = 10
) -> PostgresConfig:
    """Get PostgreSQL configuration from settings."""
    return PostgresConfig.from_settings(
        settings or get_settings(), min_size=min_size, max_size=max_size
    )


async def create_postgres_pool(
    settings: Optional[Settings] = None,
    min_size: int = 2,
    max_size: int = 10
) -> asyncpg.Pool:
    """Create PostgreSQL connection pool from settings."""
    config = get_postgres_config(settings, min_size=min_size, max_size=max_size)
    return await asyncpg.create_pool(**config.to_asyncpg_kwargs())
