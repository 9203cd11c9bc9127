"""
EventAggregator - derives room and user views from the ledger event log.

The Vault object only holds current aggregate balances, so who deposited
how much and when is always re-derived from PlayerJoined / DepositMade
events. Every fold here is:

- idempotent: events are de-duplicated by (txDigest, eventSeq)
- order-free: nothing assumes delivery order beyond the timestamp field
- degradable: a failing event query contributes no events instead of
  failing the whole read

PlayerJoined carries the first period's payment, so it counts as a deposit.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from config.constants import EVENT_QUERY_LIMITS, USDC_DECIMALS
from models.domain.ledger import DepositMadeEvent, PlayerJoinedEvent, decode_event
from services.errors import LedgerError
from services.sui_client import SuiClient
from utils.blockchain import build_event_type

logger = logging.getLogger(__name__)

E = TypeVar('E', PlayerJoinedEvent, DepositMadeEvent)

# Wider window for per-user scans
USER_QUERY_LIMIT = 100


@dataclass
class RoomEvents:
    """One logical snapshot of both event streams."""
    joins: List[PlayerJoinedEvent] = field(default_factory=list)
    deposits: List[DepositMadeEvent] = field(default_factory=list)


def _same_id(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a.lower() == b.lower()


def dedupe_events(events: Iterable[E]) -> List[E]:
    """Drop repeated deliveries of the same event, keeping the first."""
    seen = set()
    unique = []
    for event in events:
        if event.event_id in seen:
            continue
        seen.add(event.event_id)
        unique.append(event)
    return unique


def sum_room_deposits(events: RoomEvents, room_id: str) -> int:
    """Sum of join and deposit amounts for one room, in base units."""
    total = 0
    for event in list(events.joins) + list(events.deposits):
        if _same_id(event.room_id, room_id):
            total += event.amount
    return total


def fold_participants(events: RoomEvents, room_id: str) -> List[Dict[str, Any]]:
    """
    Participants of one room keyed by address.

    Seeded from joins (one per address); deposits from an address that never
    joined are ignored rather than inventing a participant.
    """
    participants: Dict[str, Dict[str, Any]] = {}

    for event in events.joins:
        if not _same_id(event.room_id, room_id):
            continue
        participants[event.player.lower()] = {
            'address': event.player,
            'playerPositionId': event.player_position_id,
            'amount': event.amount,
            'depositsCount': 1,
            'joinedAt': event.timestamp_ms,
        }

    for event in events.deposits:
        if not _same_id(event.room_id, room_id):
            continue
        entry = participants.get(event.player.lower())
        if entry is None:
            logger.debug(f"Ignoring deposit from unknown participant {event.player} in {room_id}")
            continue
        entry['amount'] += event.amount
        entry['depositsCount'] += 1

    result = []
    for entry in participants.values():
        entry['totalDeposit'] = entry['amount'] / USDC_DECIMALS
        result.append(entry)
    return result


def fold_user_positions(events: RoomEvents, address: str) -> Dict[str, Dict[str, Any]]:
    """
    Per-room summary of one user's joins and deposits.

    Returns:
        {room_id: {roomId, playerPositionId, joinedAt, initialDeposit,
                   totalDeposit (base units), depositsCount}}
    """
    rooms: Dict[str, Dict[str, Any]] = {}

    for event in events.joins:
        if not _same_id(event.player, address):
            continue
        rooms[event.room_id] = {
            'roomId': event.room_id,
            'playerPositionId': event.player_position_id,
            'joinedAt': event.timestamp_ms,
            'initialDeposit': event.amount,
            'totalDeposit': event.amount,
            'depositsCount': 1,
        }

    for event in events.deposits:
        if not _same_id(event.player, address):
            continue
        entry = rooms.get(event.room_id)
        if entry is not None:
            entry['totalDeposit'] += event.amount
            entry['depositsCount'] += 1

    return rooms


def _history_entry(event) -> Dict[str, Any]:
    entry = {
        'type': event.kind,
        'player': event.player,
        'roomId': event.room_id,
        'amount': event.amount,
        'amountFormatted': event.amount_display,
        'timestamp': event.timestamp_ms,
        'txDigest': event.tx_digest,
    }
    if isinstance(event, DepositMadeEvent):
        entry['period'] = event.period
        entry['totalDeposits'] = event.total_deposits
    else:
        entry['playerPositionId'] = event.player_position_id
    return entry


class EventAggregator:
    """Queries Money Race events and folds them into application views."""

    def __init__(self, sui_client: SuiClient, package_id: str, event_module: str):
        self.sui = sui_client
        self.package_id = package_id
        self.event_module = event_module

    def event_type(self, event_key: str) -> str:
        return build_event_type(self.package_id, self.event_module, event_key)

    async def _query(self, event_key: str, limit: int, expected: Type[E]) -> List[E]:
        event_type = self.event_type(event_key)
        try:
            raw_events = await self.sui.query_events(event_type, limit)
        except LedgerError as e:
            logger.warning(f"Event query failed for {event_type}, continuing without it: {e}")
            return []

        decoded = []
        for raw in raw_events:
            event = decode_event(raw)
            if isinstance(event, expected):
                decoded.append(event)
        return dedupe_events(decoded)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def query_player_joined(self, limit: int = EVENT_QUERY_LIMITS['PLAYER_JOINED']) -> List[PlayerJoinedEvent]:
        return await self._query('PLAYER_JOINED', limit, PlayerJoinedEvent)

    async def query_deposit_made(self, limit: int = EVENT_QUERY_LIMITS['DEPOSIT_MADE']) -> List[DepositMadeEvent]:
        return await self._query('DEPOSIT_MADE', limit, DepositMadeEvent)

    async def query_room_events(
        self,
        join_limit: Optional[int] = None,
        deposit_limit: Optional[int] = None,
    ) -> RoomEvents:
        """Both streams, queried concurrently and treated as one snapshot."""
        joins, deposits = await asyncio.gather(
            self.query_player_joined(join_limit or EVENT_QUERY_LIMITS['PLAYER_JOINED']),
            self.query_deposit_made(deposit_limit or EVENT_QUERY_LIMITS['DEPOSIT_MADE']),
        )
        return RoomEvents(joins=joins, deposits=deposits)

    # =========================================================================
    # AGGREGATES
    # =========================================================================

    async def total_deposit(self, room_id: str, events: Optional[RoomEvents] = None) -> float:
        """Sum of every join and deposit amount for the room, in display units."""
        events = events or await self.query_room_events()
        return sum_room_deposits(events, room_id) / USDC_DECIMALS

    async def multiple_room_deposits(
        self,
        room_ids: List[str],
        events: Optional[RoomEvents] = None,
    ) -> Dict[str, float]:
        """total_deposit for many rooms from a single pair of queries."""
        events = events or await self.query_room_events()
        totals = {room_id: 0 for room_id in room_ids}
        index = {room_id.lower(): room_id for room_id in room_ids}

        for event in list(events.joins) + list(events.deposits):
            room_id = index.get(event.room_id.lower())
            if room_id is not None:
                totals[room_id] += event.amount

        return {room_id: amount / USDC_DECIMALS for room_id, amount in totals.items()}

    async def participants(self, room_id: str, events: Optional[RoomEvents] = None) -> List[Dict[str, Any]]:
        events = events or await self.query_room_events()
        return fold_participants(events, room_id)

    async def user_rooms(self, address: str) -> List[Dict[str, Any]]:
        """One entry per PlayerJoined event of this address."""
        joins = await self.query_player_joined(USER_QUERY_LIMIT)
        return [
            {
                'roomId': event.room_id,
                'playerPositionId': event.player_position_id,
                'joinedAt': event.timestamp_ms,
                'initialDeposit': event.amount,
            }
            for event in joins
            if _same_id(event.player, address)
        ]

    async def user_deposit_history(self, address: str, room_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """The user's joins and deposits, newest first, optionally for one room."""
        events = await self.query_room_events(
            join_limit=USER_QUERY_LIMIT,
            deposit_limit=USER_QUERY_LIMIT * 2,
        )
        entries = [
            _history_entry(event)
            for event in list(events.joins) + list(events.deposits)
            if _same_id(event.player, address)
            and (room_id is None or _same_id(event.room_id, room_id))
        ]
        entries.sort(key=lambda entry: entry['timestamp'], reverse=True)
        return entries

    async def history(self, room_id: str) -> List[Dict[str, Any]]:
        """Joins and deposits for one room tagged by type, newest first."""
        events = await self.query_room_events(
            join_limit=USER_QUERY_LIMIT,
            deposit_limit=USER_QUERY_LIMIT,
        )
        entries = [
            _history_entry(event)
            for event in list(events.joins) + list(events.deposits)
            if _same_id(event.room_id, room_id)
        ]
        entries.sort(key=lambda entry: entry['timestamp'], reverse=True)
        return entries
