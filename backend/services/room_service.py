"""
RoomService - room creation and the merged room read views.

Reads merge four sources:
- the room directory (name, privacy, password hash, yield checkpoint)
- the live Room and Vault objects on the ledger
- event-derived totals from the EventAggregator
- the time-based yield estimate from the YieldEngine
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from config.constants import (
    DEFAULT_PERIOD_LENGTH_MS,
    ROOM_STATUS_ACTIVE,
    ROOM_STATUS_CLAIMING,
    ROOM_STATUS_ENDED,
    USDC_DECIMALS,
)
from models.domain.ledger import LedgerObject
from models.domain.room import PlayerPosition, RoomRecord, RoomState, VaultBalances
from repositories.room_repository import RoomRepository
from services.errors import (
    LedgerError,
    LedgerRejectedError,
    NotFoundError,
    PartialSuccessError,
    ValidationError,
)
from services.event_service import EventAggregator, fold_user_positions
from services.relayer import Relayer
from services.sui_client import SuiClient
from services.yield_engine import YieldEngine, project
from utils.blockchain import (
    generate_room_password,
    hash_password,
    is_valid_object_id,
    normalize_object_id,
)
from utils.datetime_utils import now_ms as current_ms

logger = logging.getLogger(__name__)

GASLESS_CREATOR = '(gasless)'


def time_based_status(
    ledger_status: Optional[int],
    start_time_ms: int,
    period_length_ms: int,
    total_periods: int,
    now_ms: int,
) -> int:
    """
    Status shown to a participant.

    While periods remain the room is active whatever the ledger says; once
    time is up a room still marked active on the ledger is claimable.
    """
    status = ledger_status if ledger_status is not None else ROOM_STATUS_ACTIVE
    elapsed = now_ms - start_time_ms
    current_period = elapsed // period_length_ms if elapsed > 0 and period_length_ms > 0 else 0

    if current_period < total_periods:
        return ROOM_STATUS_ACTIVE
    if status == ROOM_STATUS_ACTIVE:
        return ROOM_STATUS_CLAIMING
    return status


class RoomService:
    """Orchestrates room creation and assembles room views."""

    def __init__(
        self,
        room_repository: RoomRepository,
        relayer: Relayer,
        sui_client: SuiClient,
        events: EventAggregator,
        yield_engine: YieldEngine,
    ):
        self.rooms = room_repository
        self.relayer = relayer
        self.sui = sui_client
        self.events = events
        self.yield_engine = yield_engine

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_room(
        self,
        total_periods: int,
        deposit_amount: int,
        strategy_id: int,
        start_time_ms: int,
        period_length_ms: int,
        is_private: bool = False,
        name: Optional[str] = None,
        creator_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a room on the ledger and record it in the directory.

        The generated password of a private room is returned here exactly once;
        only its hash is stored.

        Raises:
            ValidationError: missing or non-positive parameters
            LedgerRejectedError: the transaction failed
            PartialSuccessError: executed, but Room or Vault id could not be found
        """
        if total_periods <= 0 or deposit_amount <= 0 or strategy_id < 0 \
                or start_time_ms <= 0 or period_length_ms <= 0:
            raise ValidationError("Missing required fields")

        password = generate_room_password() if is_private else None

        result = await self.relayer.create_room(
            total_periods=total_periods,
            deposit_amount=deposit_amount,
            strategy_id=strategy_id,
            start_time_ms=start_time_ms,
            period_length_ms=period_length_ms,
        )
        if not result.success:
            raise LedgerRejectedError(
                f"Transaction failed: {result.error or 'create_room did not succeed'}",
                digest=result.digest,
            )

        room_id, vault_id = await self.relayer.discover_room_objects(result)

        if room_id:
            await self.rooms.upsert(RoomRecord(
                room_id=room_id,
                vault_id=vault_id,
                name=name,
                creator_address=creator_address or GASLESS_CREATOR,
                total_periods=total_periods,
                deposit_amount=deposit_amount,
                strategy_id=strategy_id,
                start_time_ms=start_time_ms,
                period_length_ms=period_length_ms,
                transaction_digest=result.digest,
                is_private=is_private,
                password_hash=hash_password(password) if password else None,
            ))
            self.relayer.schedule_auto_start(room_id)

        if not room_id or not vault_id:
            raise PartialSuccessError(
                "Room created on ledger but its Room/Vault ids could not be determined; "
                "reconcile using the transaction digest",
                digest=result.digest,
                room_id=room_id,
                vault_id=vault_id,
                password=password if room_id else None,
            )

        response = {
            'success': True,
            'digest': result.digest,
            'effects': result.effects,
            'roomId': room_id,
            'vaultId': vault_id,
        }
        if password:
            response['password'] = password
        return response

    # =========================================================================
    # LEDGER READS
    # =========================================================================

    async def _fetch_optional(self, object_id: Optional[str]) -> Optional[LedgerObject]:
        """Fetch an object, treating absence or RPC failure as 'unknown'."""
        if not object_id:
            return None
        try:
            return await self.sui.get_object(object_id)
        except (LedgerError, NotFoundError) as e:
            logger.warning(f"Could not fetch object {object_id}: {e}")
            return None

    async def _fetch_vault(self, vault_id: Optional[str]) -> Optional[VaultBalances]:
        obj = await self._fetch_optional(vault_id)
        if obj is None:
            return None
        return VaultBalances.from_fields(vault_id, obj.fields)

    async def get_player_position(self, position_id: str) -> PlayerPosition:
        if not is_valid_object_id(position_id):
            raise ValidationError("Player position ID required")
        obj = await self.sui.get_object(normalize_object_id(position_id), show_owner=True)
        return PlayerPosition.from_fields(obj.object_id, obj.fields, owner=obj.owner_address)

    # =========================================================================
    # READ VIEWS
    # =========================================================================

    async def get_room(self, room_id: str, now_ms: Optional[int] = None) -> Dict[str, Any]:
        """
        Directory record merged with live ledger state.

        rewardPool = Vault reward + accumulated time-based yield.

        Raises:
            ValidationError: malformed id
            NotFoundError: no Room object with this id on the ledger
        """
        if not is_valid_object_id(room_id):
            raise ValidationError("Invalid Room ID format")
        room_id = normalize_object_id(room_id)
        now_ms = current_ms() if now_ms is None else now_ms

        record, room_obj, events = await asyncio.gather(
            self.rooms.get(room_id),
            self.sui.get_object(room_id, show_owner=True),
            self.events.query_room_events(),
        )
        state = RoomState.from_fields(room_id, room_obj.fields, room_obj.object_type)

        total_deposit = await self.events.total_deposit(room_id, events)
        vault = await self._fetch_vault(record.vault_id if record else None)

        reward_pool = vault.reward_display if vault else 0.0
        principal = vault.principal_display if vault else 0.0
        accumulated_yield = 0.0
        apy = None

        if principal > 0:
            if record:
                accrual = self.yield_engine.accrue(record, principal, now_ms)
            else:
                accrual = project(principal, state.strategy_id, 0.0, state.start_time_ms, now_ms)
            accumulated_yield = accrual.accumulated_yield
            apy = accrual.apy
            reward_pool += accumulated_yield

        room = state.to_dict()
        room.update({
            'objectType': state.object_type,
            'fields': room_obj.fields,
            'vaultId': record.vault_id if record else None,
            'transactionDigest': record.transaction_digest if record else None,
            'totalDeposit': total_deposit,
            'rewardPool': reward_pool,
            'principal': principal,
            'accumulatedYield': accumulated_yield,
            'apy': apy,
        })
        if record:
            room.update({
                'name': record.display_name,
                'isPrivate': record.is_private,
                'creatorAddress': record.creator_address,
                'createdAt': record.to_public_dict()['createdAt'],
            })
        return room

    async def list_rooms(self, include_private: bool = False) -> List[Dict[str, Any]]:
        """Directory listing with event-derived totals; private rooms hidden by default."""
        records = await self.rooms.list_all()
        if not include_private:
            records = [record for record in records if not record.is_private]

        totals = await self.events.multiple_room_deposits([record.room_id for record in records])

        rooms = []
        for record in records:
            room = record.to_public_dict()
            room['totalDeposit'] = totals.get(record.room_id, 0)
            rooms.append(room)
        return rooms

    async def find_by_password(self, password: str) -> Dict[str, Any]:
        if not password:
            raise ValidationError("Password required")

        record = await self.rooms.find_by_password_hash(hash_password(password))
        if not record:
            raise NotFoundError("No room found with this password")

        logger.info(f"Found private room {record.room_id} by password")
        return {'roomId': record.room_id, 'vaultId': record.vault_id}

    async def user_joined_rooms(self, address: str, now_ms: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Rooms the address joined, newest join first, ended rooms hidden.

        Yield here is an estimate only; the checkpoint is advanced by get_room.
        """
        if not address:
            raise ValidationError("User address required")
        now_ms = current_ms() if now_ms is None else now_ms

        events = await self.events.query_room_events(join_limit=100, deposit_limit=200)
        positions = fold_user_positions(events, address)
        if not positions:
            return []

        totals = await self.events.multiple_room_deposits(list(positions), events)
        views = await asyncio.gather(*[
            self._joined_room_view(position, totals.get(room_id, 0), now_ms)
            for room_id, position in positions.items()
        ])

        rooms = [view for view in views if view and view['status'] != ROOM_STATUS_ENDED]
        rooms.sort(key=lambda room: room['joinedAt'], reverse=True)
        logger.info(f"Returning {len(rooms)} joined room(s) for {address}")
        return rooms

    async def _joined_room_view(
        self,
        position: Dict[str, Any],
        total_deposit: float,
        now_ms: int,
    ) -> Optional[Dict[str, Any]]:
        room_id = position['roomId']
        record, room_obj = await asyncio.gather(
            self.rooms.get(room_id),
            self._fetch_optional(room_id),
        )
        state = RoomState.from_fields(room_id, room_obj.fields, room_obj.object_type) if room_obj else None

        if record is None and state is None:
            logger.warning(f"Joined room {room_id} not in directory or on ledger, skipping")
            return None

        vault = await self._fetch_vault(record.vault_id if record else None)

        start_time_ms = (record.start_time_ms if record else 0) or (state.start_time_ms if state else 0) or now_ms
        period_length_ms = (record.period_length_ms if record else 0) \
            or (state.period_length_ms if state else 0) or DEFAULT_PERIOD_LENGTH_MS
        total_periods = (record.total_periods if record else 0) or (state.total_periods if state else 0)
        deposit_amount = (record.deposit_amount if record else 0) or (state.deposit_amount if state else 0)
        strategy_id = record.strategy_id if record else state.strategy_id

        reward_pool = vault.reward_display if vault else 0.0
        principal = vault.principal_display if vault else 0.0
        if principal > 0:
            if record:
                reward_pool += self.yield_engine.estimate(record, principal, now_ms).accumulated_yield
            else:
                reward_pool += project(principal, strategy_id, 0.0, start_time_ms, now_ms).accumulated_yield

        return {
            'roomId': room_id,
            'name': record.display_name if record else f"Savings Room #{room_id[:8]}",
            'vaultId': record.vault_id if record else None,
            'playerPositionId': position['playerPositionId'],
            'joinedAt': position['joinedAt'],
            'myDeposit': position['totalDeposit'] / USDC_DECIMALS,
            'depositsCount': position['depositsCount'],
            'totalPeriods': total_periods,
            'depositAmount': deposit_amount / USDC_DECIMALS,
            'strategyId': strategy_id,
            'isPrivate': record.is_private if record else False,
            'status': time_based_status(
                state.status if state else None,
                start_time_ms,
                period_length_ms,
                total_periods,
                now_ms,
            ),
            'rewardPool': reward_pool,
            'totalDeposit': total_deposit,
        }
