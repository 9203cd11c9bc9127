"""
Yield accrual engine - time-based reward estimate between checkpoints.

The ledger only moves balances on explicit contract calls, so continuous
yield is approximated here:

    new_yield = principal * apy * (now - last_update) / year

All math is in display units (floats). The result is an estimate shown
to users and must never authorize a transfer; only the Vault balance is
authoritative for fund movement.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from models.domain.room import RoomRecord
from models.domain.strategy import apy_for_strategy
from repositories.room_repository import RoomRepository
from services.background import TaskSupervisor
from utils.blockchain import ms_to_years
from utils.datetime_utils import now_ms as current_ms

logger = logging.getLogger(__name__)


@dataclass
class YieldAccrual:
    new_yield: float
    accumulated_yield: float
    checkpoint_ms: int
    apy: float


def project(
    principal: float,
    strategy_id: int,
    accumulated_yield: float,
    last_update_ms: int,
    now_ms: int,
) -> YieldAccrual:
    """
    Pure accrual from a checkpoint to now.

    A clock earlier than the checkpoint accrues nothing and leaves the
    checkpoint where it is, so repeated calls never move backwards.
    """
    apy = apy_for_strategy(strategy_id)
    if principal <= 0 or now_ms <= last_update_ms:
        return YieldAccrual(
            new_yield=0.0,
            accumulated_yield=accumulated_yield,
            checkpoint_ms=max(last_update_ms, 0),
            apy=apy,
        )

    new_yield = principal * apy * ms_to_years(now_ms - last_update_ms)
    return YieldAccrual(
        new_yield=new_yield,
        accumulated_yield=accumulated_yield + new_yield,
        checkpoint_ms=now_ms,
        apy=apy,
    )


class YieldEngine:
    """Projects yield for rooms and writes the checkpoint back in the background."""

    def __init__(self, room_repository: RoomRepository, supervisor: TaskSupervisor):
        self.rooms = room_repository
        self.supervisor = supervisor

    @staticmethod
    def checkpoint_of(room: RoomRecord) -> int:
        """Rooms that never accrued start from their scheduled start time."""
        return room.last_yield_update_ms or room.start_time_ms

    def estimate(self, room: RoomRecord, principal: float, now_ms: Optional[int] = None) -> YieldAccrual:
        """Projection without persisting anything."""
        now_ms = current_ms() if now_ms is None else now_ms
        return project(
            principal,
            room.strategy_id,
            room.accumulated_yield,
            self.checkpoint_of(room),
            now_ms,
        )

    def accrue(self, room: RoomRecord, principal: float, now_ms: Optional[int] = None) -> YieldAccrual:
        """
        Project and, when something accrued, persist the new checkpoint.

        The write-back runs as a supervised background task: the caller never
        waits on it and a failure is logged, not raised.
        """
        accrual = self.estimate(room, principal, now_ms)

        if accrual.new_yield > 0:
            self.supervisor.spawn(
                self.rooms.update_yield_checkpoint(
                    room.room_id,
                    accrual.accumulated_yield,
                    accrual.checkpoint_ms,
                ),
                name=f"yield-checkpoint:{room.room_id}",
            )
            logger.debug(
                f"Yield for {room.room_id}: +{accrual.new_yield:.6f} "
                f"(total {accrual.accumulated_yield:.6f})"
            )

        return accrual
