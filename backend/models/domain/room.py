"""
Room domain models
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from config.constants import USDC_DECIMALS


def _as_int(value: Any, default: int = 0) -> int:
    """Move u64 values arrive as strings; Balance<T> as {'fields': {'value': ...}}"""
    if isinstance(value, dict):
        value = value.get('fields', {}).get('value', value.get('value'))
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class RoomRecord:
    """
    Room directory record - the metadata the ledger does not carry

    Storage: PostgreSQL (rooms table)

    room_id is assigned by the ledger when create_room executes, never by
    the client. Amounts and timestamps are integers (base units / epoch ms).
    """
    room_id: str
    creator_address: str
    total_periods: int
    deposit_amount: int
    strategy_id: int
    start_time_ms: int
    period_length_ms: int
    transaction_digest: str

    vault_id: Optional[str] = None
    name: Optional[str] = None

    # Private rooms: only the hash is kept, the password is shown once
    is_private: bool = False
    password_hash: Optional[str] = None

    # Yield checkpoint
    accumulated_yield: float = 0.0
    last_yield_update_ms: int = 0

    created_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.name or f"Savings Room #{self.room_id[:8]}"

    @property
    def deposit_amount_display(self) -> float:
        return self.deposit_amount / USDC_DECIMALS

    def to_public_dict(self) -> Dict[str, Any]:
        """Client-facing view (never includes the password hash)"""
        return {
            'roomId': self.room_id,
            'name': self.display_name,
            'vaultId': self.vault_id,
            'creatorAddress': self.creator_address,
            'totalPeriods': self.total_periods,
            'depositAmount': self.deposit_amount,
            'strategyId': self.strategy_id,
            'isPrivate': self.is_private,
            'startTimeMs': self.start_time_ms,
            'periodLengthMs': self.period_length_ms,
            'transactionDigest': self.transaction_digest,
            'createdAt': int(self.created_at.timestamp() * 1000) if self.created_at else None,
        }


@dataclass
class RoomState:
    """
    Live Room object fields as read from the ledger

    Field names follow the Move struct; missing fields default to zero so a
    partially indexed object still renders.
    """
    room_id: str
    total_periods: int = 0
    deposit_amount: int = 0
    strategy_id: int = 0
    status: int = 0
    start_time_ms: int = 0
    period_length_ms: int = 0
    total_weight: int = 0
    object_type: Optional[str] = None

    @classmethod
    def from_fields(cls, room_id: str, fields: Dict[str, Any],
                    object_type: Optional[str] = None) -> 'RoomState':
        return cls(
            room_id=room_id,
            total_periods=_as_int(fields.get('total_periods')),
            deposit_amount=_as_int(fields.get('deposit_amount')),
            strategy_id=_as_int(fields.get('strategy_id', fields.get('strategy'))),
            status=_as_int(fields.get('status')),
            start_time_ms=_as_int(fields.get('start_time_ms', fields.get('start_time'))),
            period_length_ms=_as_int(fields.get('period_length_ms', fields.get('period_length'))),
            total_weight=_as_int(fields.get('total_weight')),
            object_type=object_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'roomId': self.room_id,
            'totalPeriods': self.total_periods,
            'depositAmount': self.deposit_amount,
            'strategyId': self.strategy_id,
            'status': self.status,
            'startTimeMs': self.start_time_ms,
            'periodLengthMs': self.period_length_ms,
            'totalWeight': self.total_weight,
        }


@dataclass
class VaultBalances:
    """Current Vault balances in base units (no per-user breakdown)"""
    vault_id: str
    principal: int = 0
    reward: int = 0

    @classmethod
    def from_fields(cls, vault_id: str, fields: Dict[str, Any]) -> 'VaultBalances':
        return cls(
            vault_id=vault_id,
            principal=_as_int(fields.get('principal')),
            reward=_as_int(fields.get('reward')),
        )

    @property
    def principal_display(self) -> float:
        return self.principal / USDC_DECIMALS

    @property
    def reward_display(self) -> float:
        return self.reward / USDC_DECIMALS


@dataclass
class PlayerPosition:
    """
    One user's participation in one Room

    Not persisted locally; read from the ledger on demand.
    """
    position_id: str
    owner: Optional[str] = None
    room_id: Optional[str] = None
    deposited_count: int = 0
    last_period: int = 0
    claimed: bool = False
    raw_fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_fields(cls, position_id: str, fields: Dict[str, Any],
                    owner: Optional[str] = None) -> 'PlayerPosition':
        return cls(
            position_id=position_id,
            owner=fields.get('owner', owner),
            room_id=fields.get('room_id'),
            deposited_count=_as_int(fields.get('deposited_count')),
            last_period=_as_int(fields.get('last_period')),
            claimed=bool(fields.get('claimed', False)),
            raw_fields=fields,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.position_id,
            'owner': self.owner,
            'roomId': self.room_id,
            'depositedCount': self.deposited_count,
            'lastPeriod': self.last_period,
            'claimed': self.claimed,
        }
