"""
Test: Yield accrual
===================

    new_yield = principal * apy * elapsed_ms / ms_per_year
"""
import asyncio

import pytest

from config.constants import MILLISECONDS_PER_YEAR
from models.domain.room import RoomRecord
from models.domain.strategy import apy_for_strategy
from services.background import TaskSupervisor
from services.yield_engine import YieldEngine, project
from conftest import ROOM_ID

YEAR = int(MILLISECONDS_PER_YEAR)


def make_room(**overrides) -> RoomRecord:
    fields = dict(
        room_id=ROOM_ID,
        creator_address='(gasless)',
        total_periods=4,
        deposit_amount=1_000_000,
        strategy_id=1,
        start_time_ms=1_000,
        period_length_ms=604_800_000,
        transaction_digest='createTx',
    )
    fields.update(overrides)
    return RoomRecord(**fields)


class TestProjection:

    def test_one_year_at_balanced_rate(self):
        accrual = project(100.0, 1, 0.0, 0, YEAR)
        assert accrual.apy == 0.08
        assert accrual.new_yield == pytest.approx(8.0)
        assert accrual.checkpoint_ms == YEAR

    def test_unknown_strategy_uses_conservative_rate(self):
        assert apy_for_strategy(42) == 0.04
        assert project(100.0, 42, 0.0, 0, YEAR).new_yield == pytest.approx(4.0)

    def test_clock_behind_checkpoint_accrues_nothing(self):
        accrual = project(100.0, 2, 1.5, 5_000, 4_000)
        assert accrual.new_yield == 0
        assert accrual.accumulated_yield == 1.5
        assert accrual.checkpoint_ms == 5_000

    def test_no_principal_accrues_nothing(self):
        assert project(0.0, 2, 0.0, 0, YEAR).new_yield == 0

    def test_split_accrual_equals_single_accrual(self):
        half = YEAR // 2
        first = project(250.0, 2, 0.0, 0, half)
        second = project(250.0, 2, first.accumulated_yield, first.checkpoint_ms, YEAR)
        whole = project(250.0, 2, 0.0, 0, YEAR)

        assert second.accumulated_yield == pytest.approx(whole.accumulated_yield)
        assert second.accumulated_yield >= first.accumulated_yield


class TestEngine:

    def test_checkpoint_starts_at_room_start(self):
        assert YieldEngine.checkpoint_of(make_room()) == 1_000
        assert YieldEngine.checkpoint_of(make_room(last_yield_update_ms=9_000)) == 9_000

    @pytest.mark.asyncio
    async def test_accrue_writes_checkpoint_in_background(self, room_repository):
        room = make_room()
        await room_repository.upsert(room)
        supervisor = TaskSupervisor()
        engine = YieldEngine(room_repository, supervisor)

        accrual = engine.accrue(room, 100.0, now_ms=1_000 + YEAR)
        await supervisor.drain()

        assert accrual.new_yield == pytest.approx(8.0)
        assert room_repository.checkpoints == [(ROOM_ID, accrual.accumulated_yield, 1_000 + YEAR)]
        assert room.last_yield_update_ms == 1_000 + YEAR

    @pytest.mark.asyncio
    async def test_estimate_does_not_persist(self, room_repository):
        engine = YieldEngine(room_repository, TaskSupervisor())
        engine.estimate(make_room(), 100.0, now_ms=YEAR)
        await asyncio.sleep(0)
        assert room_repository.checkpoints == []

    @pytest.mark.asyncio
    async def test_nothing_to_write_when_no_time_passed(self, room_repository):
        supervisor = TaskSupervisor()
        engine = YieldEngine(room_repository, supervisor)
        engine.accrue(make_room(last_yield_update_ms=5_000), 100.0, now_ms=5_000)
        assert supervisor.pending == 0

    @pytest.mark.asyncio
    async def test_repeated_accrual_is_monotonic(self, room_repository):
        room = make_room(start_time_ms=0)
        await room_repository.upsert(room)
        supervisor = TaskSupervisor()
        engine = YieldEngine(room_repository, supervisor)

        previous = 0.0
        for step in range(1, 5):
            accrual = engine.accrue(room, 100.0, now_ms=step * YEAR // 4)
            await supervisor.drain()
            assert accrual.accumulated_yield >= previous
            previous = accrual.accumulated_yield

        assert room.accumulated_yield == pytest.approx(100.0 * 0.08)
        assert room.last_yield_update_ms == YEAR
