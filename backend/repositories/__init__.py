"""
Repository Pattern - Storage abstraction layer

Repositories hide storage details (PostgreSQL) from business logic.
Consumers work with domain models, not storage-specific types.

The asyncpg pool is created once at startup (config.database) and passed
to each repository; repositories never open connections of their own.

Storage:
- RoomRepository: PostgreSQL (rooms table)
"""
from .room_repository import RoomRepository

__all__ = [
    'RoomRepository',
]
