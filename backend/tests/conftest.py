"""
Pytest configuration and shared fakes for Money Race tests.

The fakes stand in for the two I/O collaborators (fullnode RPC and the
room directory); everything above them runs for real.
"""
import base64
from typing import Any, Dict, List, Optional

import pytest

from config.constants import GAS_BUDGET
from config.settings import Settings
from models.domain.ledger import LedgerObject, MoveCall
from models.domain.room import RoomRecord
from services.ai_service import AIService
from services.container import AppContainer
from services.errors import LedgerUnavailableError, ObjectNotFoundError
from services.sponsor import SponsorIdentity

pytest_plugins = ('pytest_asyncio',)


def pytest_configure(config):
    """Configure pytest with asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


PACKAGE_ID = '0x' + 'ab' * 32
ADMIN_CAP_ID = '0x' + 'ad' * 32
ROOM_ID = '0x' + '11' * 32
VAULT_ID = '0x' + '22' * 32
POSITION_ID = '0x' + '33' * 32
ALICE = '0x' + 'a1' * 32
BOB = '0x' + 'b2' * 32

# Fixed key so addresses and signatures are reproducible
SPONSOR_SECRET = bytes(range(32))


def joined_event(room_id, player, amount, position_id=POSITION_ID, timestamp_ms=1_000,
                 digest='joinTx', seq='0', package_id=PACKAGE_ID) -> Dict[str, Any]:
    return {
        'id': {'txDigest': digest, 'eventSeq': seq},
        'type': f"{package_id}::money_race_v2::PlayerJoined",
        'timestampMs': str(timestamp_ms),
        'parsedJson': {
            'room_id': room_id,
            'player': player,
            'amount': str(amount),
            'player_position_id': position_id,
        },
    }


def deposit_event(room_id, player, amount, period=1, total_deposits=2, timestamp_ms=2_000,
                  digest='depositTx', seq='0', package_id=PACKAGE_ID) -> Dict[str, Any]:
    return {
        'id': {'txDigest': digest, 'eventSeq': seq},
        'type': f"{package_id}::money_race_v2::DepositMade",
        'timestampMs': str(timestamp_ms),
        'parsedJson': {
            'room_id': room_id,
            'player': player,
            'amount': str(amount),
            'period': str(period),
            'total_deposits': str(total_deposits),
        },
    }


def create_room_response(digest='createTx', room_id=ROOM_ID, vault_id=VAULT_ID,
                         typed=True) -> Dict[str, Any]:
    """Execution response of a create_room call creating a Room and a Vault."""
    response = {
        'digest': digest,
        'effects': {
            'status': {'status': 'success'},
            'created': [
                {'owner': {'Shared': {}}, 'reference': {'objectId': room_id}},
                {'owner': {'Shared': {}}, 'reference': {'objectId': vault_id}},
            ],
        },
    }
    if typed:
        response['objectChanges'] = [
            {'type': 'created', 'objectId': room_id, 'objectType': f"{PACKAGE_ID}::money_race::Room"},
            {'type': 'created', 'objectId': vault_id, 'objectType': f"{PACKAGE_ID}::money_race::Vault"},
        ]
    return response


class FakeSuiClient:
    """In-memory fullnode: objects by id, events by Move type, recorded submissions."""

    def __init__(self):
        self.objects: Dict[str, LedgerObject] = {}
        self.events: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_event_types = set()
        self.balances: Dict[str, int] = {}
        self.built: List[MoveCall] = []
        self.executed: List[tuple] = []
        self.execute_responses: List[Any] = []
        self.get_object_calls: List[str] = []

    def add_object(self, object_id, object_type=None, fields=None, owner=None):
        self.objects[object_id] = LedgerObject(
            object_id=object_id,
            object_type=object_type,
            owner=owner,
            fields=fields or {},
        )

    def add_events(self, *raw_events):
        for raw in raw_events:
            self.events.setdefault(raw['type'], []).append(raw)

    async def get_object(self, object_id, show_content=True, show_type=True, show_owner=False):
        self.get_object_calls.append(object_id)
        obj = self.objects.get(object_id)
        if obj is None:
            raise ObjectNotFoundError(object_id)
        return obj

    async def query_events(self, event_type, limit, descending=True):
        if event_type in self.failing_event_types:
            raise LedgerUnavailableError("Ledger RPC unreachable: connection refused")
        return list(self.events.get(event_type, []))[:limit]

    async def build_move_call(self, signer, move_call, gas_budget=GAS_BUDGET, gas_object=None):
        self.built.append(move_call)
        return base64.b64encode(f"tx:{move_call.function}".encode()).decode()

    async def execute_transaction(self, tx_bytes, signatures):
        self.executed.append((tx_bytes, list(signatures)))
        if self.execute_responses:
            response = self.execute_responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return {
            'digest': f"digest{len(self.executed)}",
            'effects': {'status': {'status': 'success'}},
        }

    async def get_balance(self, owner, coin_type=None):
        return self.balances.get(owner, 0)

    async def get_chain_identifier(self):
        return '4c78adac'

    async def close(self):
        pass


class FakeRoomRepository:
    """Dict-backed room directory with the RoomRepository interface."""

    def __init__(self):
        self.rooms: Dict[str, RoomRecord] = {}
        self.checkpoints: List[tuple] = []

    async def ensure_schema(self):
        pass

    async def get(self, room_id) -> Optional[RoomRecord]:
        return self.rooms.get(room_id)

    async def list_all(self, limit=None) -> List[RoomRecord]:
        return list(reversed(list(self.rooms.values())))[:limit]

    async def list_by_creator(self, creator_address) -> List[RoomRecord]:
        return [room for room in await self.list_all() if room.creator_address == creator_address]

    async def find_by_password_hash(self, password_hash):
        for room in self.rooms.values():
            if room.password_hash == password_hash:
                return room
        return None

    async def exists(self, room_id):
        return room_id in self.rooms

    async def count(self):
        return len(self.rooms)

    async def upsert(self, room: RoomRecord) -> RoomRecord:
        existing = self.rooms.get(room.room_id)
        if existing:
            room.accumulated_yield = existing.accumulated_yield
            room.last_yield_update_ms = existing.last_yield_update_ms
        self.rooms[room.room_id] = room
        return room

    async def update_yield_checkpoint(self, room_id, accumulated_yield, last_update_ms):
        self.checkpoints.append((room_id, accumulated_yield, last_update_ms))
        room = self.rooms.get(room_id)
        if room is None:
            return False
        room.accumulated_yield = max(room.accumulated_yield, accumulated_yield)
        room.last_yield_update_ms = max(room.last_yield_update_ms, last_update_ms)
        return True

    async def delete_all(self):
        deleted = len(self.rooms)
        self.rooms.clear()
        return deleted


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        package_id=PACKAGE_ID,
        admin_cap_id=ADMIN_CAP_ID,
        usdc_package_id='0x' + 'cc' * 32,
        usdc_faucet_id='0x' + 'fa' * 32,
        google_client_id='test-client.apps.googleusercontent.com',
        jwt_secret_key='test-secret',
        ai_api_key='',
        auto_start_delay_seconds=0,
        discovery_fetch_delay_seconds=0,
    )


@pytest.fixture
def sponsor() -> SponsorIdentity:
    return SponsorIdentity(SPONSOR_SECRET)


@pytest.fixture
def sui() -> FakeSuiClient:
    return FakeSuiClient()


@pytest.fixture
def room_repository() -> FakeRoomRepository:
    return FakeRoomRepository()


@pytest.fixture
def container(settings, sui, sponsor, room_repository) -> AppContainer:
    return AppContainer.build(
        settings=settings,
        sui_client=sui,
        sponsor=sponsor,
        room_repository=room_repository,
        ai_service=AIService(api_key=''),
    )
