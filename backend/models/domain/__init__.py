"""
Domain Models - Storage-agnostic data structures

These models represent the core domain entities independent of storage layer.
Services operate on these models, not raw database rows or RPC payloads.

Architecture:
- Domain models are pure Python objects (dataclasses)
- Storage details (PostgreSQL) are abstracted via repositories
- Ledger payloads are decoded at the gateway boundary

Models:
- RoomRecord: directory metadata the ledger does not carry
- RoomState / VaultBalances / PlayerPosition: live ledger objects
- PlayerJoinedEvent / DepositMadeEvent: decoded ledger events
- TransactionResult: normalized execution result
- Strategy: savings strategies and their APYs
"""

from .room import RoomRecord, RoomState, VaultBalances, PlayerPosition
from .ledger import (
    LedgerObject,
    MoveCall,
    CreatedObject,
    TransactionResult,
    PlayerJoinedEvent,
    DepositMadeEvent,
    LedgerEvent,
    decode_event,
)
from .strategy import Strategy, STRATEGIES, STRATEGY_TABLE_VERSION, get_strategy, apy_for_strategy

__all__ = [
    # Directory
    'RoomRecord',

    # Live ledger state
    'RoomState',
    'VaultBalances',
    'PlayerPosition',
    'LedgerObject',

    # Transactions
    'MoveCall',
    'CreatedObject',
    'TransactionResult',

    # Events
    'PlayerJoinedEvent',
    'DepositMadeEvent',
    'LedgerEvent',
    'decode_event',

    # Strategies
    'Strategy',
    'STRATEGIES',
    'STRATEGY_TABLE_VERSION',
    'get_strategy',
    'apy_for_strategy',
]
