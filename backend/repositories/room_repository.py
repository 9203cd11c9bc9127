"""
Room Repository - PostgreSQL storage for the room directory

Storage: PostgreSQL (rooms table)

Holds only what the ledger does not: display name, privacy flag, password
hash and the yield checkpoint, plus a copy of the creation parameters so
listing rooms does not need one RPC per room.
"""
import logging
from decimal import Decimal
from typing import List, Optional

import asyncpg

from models.domain.room import RoomRecord

logger = logging.getLogger(__name__)

# Amounts and millisecond timestamps can exceed 2^53; NUMERIC keeps them exact
SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS rooms (
        id BIGSERIAL PRIMARY KEY,
        room_id TEXT NOT NULL UNIQUE,
        name TEXT,
        vault_id TEXT,
        creator_address TEXT NOT NULL,
        total_periods INTEGER NOT NULL,
        deposit_amount NUMERIC(20, 0) NOT NULL,
        strategy_id INTEGER NOT NULL,
        is_private BOOLEAN NOT NULL DEFAULT FALSE,
        password_hash TEXT,
        start_time_ms NUMERIC(20, 0) NOT NULL,
        period_length_ms NUMERIC(20, 0) NOT NULL,
        transaction_digest TEXT NOT NULL,
        accumulated_yield DOUBLE PRECISION NOT NULL DEFAULT 0,
        last_yield_update_ms NUMERIC(20, 0) NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS rooms_created_at_idx ON rooms (created_at DESC);
    CREATE INDEX IF NOT EXISTS rooms_creator_address_idx ON rooms (creator_address);
    CREATE INDEX IF NOT EXISTS rooms_password_hash_idx ON rooms (password_hash);
"""

ROOM_COLUMNS = """
    room_id, name, vault_id, creator_address, total_periods, deposit_amount,
    strategy_id, is_private, password_hash, start_time_ms, period_length_ms,
    transaction_digest, accumulated_yield, last_yield_update_ms, created_at
"""


def _row_to_room(row) -> RoomRecord:
    return RoomRecord(
        room_id=row['room_id'],
        name=row['name'],
        vault_id=row['vault_id'],
        creator_address=row['creator_address'],
        total_periods=int(row['total_periods']),
        deposit_amount=int(row['deposit_amount']),
        strategy_id=int(row['strategy_id']),
        is_private=bool(row['is_private']),
        password_hash=row['password_hash'],
        start_time_ms=int(row['start_time_ms']),
        period_length_ms=int(row['period_length_ms']),
        transaction_digest=row['transaction_digest'],
        accumulated_yield=float(row['accumulated_yield'] or 0),
        last_yield_update_ms=int(row['last_yield_update_ms'] or 0),
        created_at=row['created_at'],
    )


class RoomRepository:
    """
    Repository for RoomRecord domain model

    Each call is its own unit of work; nothing spans operations.
    """

    def __init__(self, db_pool: asyncpg.Pool):
        self.db_pool = db_pool

    async def ensure_schema(self):
        """Create the rooms table and indexes if they do not exist."""
        async with self.db_pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Room directory schema ready")

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get(self, room_id: str) -> Optional[RoomRecord]:
        """
        Retrieve room by ledger object id.

        Args:
            room_id: Room object id (0x...)

        Returns:
            RoomRecord or None
        """
        async with self.db_pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT {ROOM_COLUMNS}
                FROM rooms
                WHERE room_id = $1
            """, room_id)

            if not row:
                return None

            return _row_to_room(row)

    async def list_all(self, limit: Optional[int] = None) -> List[RoomRecord]:
        """All rooms, newest first."""
        async with self.db_pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT {ROOM_COLUMNS}
                FROM rooms
                ORDER BY created_at DESC
                LIMIT $1
            """, limit)

            return [_row_to_room(row) for row in rows]

    async def list_by_creator(self, creator_address: str) -> List[RoomRecord]:
        async with self.db_pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT {ROOM_COLUMNS}
                FROM rooms
                WHERE creator_address = $1
                ORDER BY created_at DESC
            """, creator_address)

            return [_row_to_room(row) for row in rows]

    async def find_by_password_hash(self, password_hash: str) -> Optional[RoomRecord]:
        """
        Private room whose stored hash matches.

        Args:
            password_hash: keccak-256 hex of the candidate password

        Returns:
            RoomRecord or None
        """
        async with self.db_pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT {ROOM_COLUMNS}
                FROM rooms
                WHERE password_hash = $1
                ORDER BY created_at DESC
                LIMIT 1
            """, password_hash)

            if not row:
                return None

            return _row_to_room(row)

    async def exists(self, room_id: str) -> bool:
        async with self.db_pool.acquire() as conn:
            return bool(await conn.fetchval("""
                SELECT EXISTS(SELECT 1 FROM rooms WHERE room_id = $1)
            """, room_id))

    async def count(self) -> int:
        async with self.db_pool.acquire() as conn:
            return int(await conn.fetchval("SELECT COUNT(*) FROM rooms"))

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def upsert(self, room: RoomRecord) -> RoomRecord:
        """
        Insert or replace the room keyed by room_id.

        Re-running with identical fields leaves the record unchanged; the
        creation time and the yield checkpoint are never overwritten here.
        """
        async with self.db_pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                INSERT INTO rooms (
                    room_id, name, vault_id, creator_address, total_periods,
                    deposit_amount, strategy_id, is_private, password_hash,
                    start_time_ms, period_length_ms, transaction_digest
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
                ON CONFLICT (room_id) DO UPDATE SET
                    name = EXCLUDED.name,
                    vault_id = EXCLUDED.vault_id,
                    creator_address = EXCLUDED.creator_address,
                    total_periods = EXCLUDED.total_periods,
                    deposit_amount = EXCLUDED.deposit_amount,
                    strategy_id = EXCLUDED.strategy_id,
                    is_private = EXCLUDED.is_private,
                    password_hash = EXCLUDED.password_hash,
                    start_time_ms = EXCLUDED.start_time_ms,
                    period_length_ms = EXCLUDED.period_length_ms,
                    transaction_digest = EXCLUDED.transaction_digest,
                    updated_at = NOW()
                RETURNING {ROOM_COLUMNS}
            """,
                room.room_id,
                room.name,
                room.vault_id,
                room.creator_address,
                room.total_periods,
                Decimal(room.deposit_amount),
                room.strategy_id,
                room.is_private,
                room.password_hash,
                Decimal(room.start_time_ms),
                Decimal(room.period_length_ms),
                room.transaction_digest,
            )

        logger.info(f"Stored room {room.room_id} (vault {room.vault_id})")
        return _row_to_room(row)

    async def update_yield_checkpoint(
        self,
        room_id: str,
        accumulated_yield: float,
        last_update_ms: int,
    ) -> bool:
        """
        Advance the yield checkpoint.

        Both values only move forward; a stale write-back racing a newer one
        cannot roll the checkpoint back.

        Returns:
            True if the room exists
        """
        async with self.db_pool.acquire() as conn:
            status = await conn.execute("""
                UPDATE rooms
                SET accumulated_yield = GREATEST(accumulated_yield, $2),
                    last_yield_update_ms = GREATEST(last_yield_update_ms, $3),
                    updated_at = NOW()
                WHERE room_id = $1
            """, room_id, accumulated_yield, Decimal(last_update_ms))

        updated = status.endswith(' 1')
        if not updated:
            logger.warning(f"Yield checkpoint for unknown room {room_id}")
        return updated

    async def delete_all(self) -> int:
        """Administrative wipe of the directory. Returns rows removed."""
        async with self.db_pool.acquire() as conn:
            status = await conn.execute("DELETE FROM rooms")
        deleted = int(status.split()[-1]) if status else 0
        logger.warning(f"Deleted {deleted} room(s) from directory")
        return deleted
