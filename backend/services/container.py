"""
AppContainer - the process-wide collaborators, built once at startup.

Everything that holds a connection or key material is created here and
handed to the components that need it; nothing reaches for a global.
Tests build a container from fakes and pass it to create_app().
"""
import logging
from dataclasses import dataclass
from typing import Optional

import asyncpg
import httpx

from config.database import create_postgres_pool
from config.settings import Settings
from middleware.google_oauth import GoogleIdTokenVerifier
from repositories.room_repository import RoomRepository
from services.ai_service import AIService
from services.background import TaskSupervisor
from services.event_service import EventAggregator
from services.relayer import Relayer
from services.room_service import RoomService
from services.sponsor import SponsorIdentity
from services.sui_client import SuiClient
from services.yield_engine import YieldEngine

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    settings: Settings
    sui_client: SuiClient
    sponsor: SponsorIdentity
    supervisor: TaskSupervisor
    room_repository: RoomRepository
    relayer: Relayer
    events: EventAggregator
    yield_engine: YieldEngine
    room_service: RoomService
    identity: GoogleIdTokenVerifier
    ai_service: AIService
    db_pool: Optional[asyncpg.Pool] = None
    http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def build(
        cls,
        settings: Settings,
        sui_client: SuiClient,
        sponsor: SponsorIdentity,
        room_repository: RoomRepository,
        identity: Optional[GoogleIdTokenVerifier] = None,
        ai_service: Optional[AIService] = None,
        db_pool: Optional[asyncpg.Pool] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> 'AppContainer':
        """Wire the services on top of the given I/O collaborators."""
        supervisor = TaskSupervisor()
        relayer = Relayer(sui_client, sponsor, settings, supervisor)
        events = EventAggregator(sui_client, settings.package_id, settings.event_module)
        yield_engine = YieldEngine(room_repository, supervisor)
        room_service = RoomService(room_repository, relayer, sui_client, events, yield_engine)

        return cls(
            settings=settings,
            sui_client=sui_client,
            sponsor=sponsor,
            supervisor=supervisor,
            room_repository=room_repository,
            relayer=relayer,
            events=events,
            yield_engine=yield_engine,
            room_service=room_service,
            identity=identity or GoogleIdTokenVerifier(settings.google_client_id, http_client=http_client),
            ai_service=ai_service or AIService(
                api_key=settings.ai_api_key,
                base_url=settings.ai_base_url,
                model=settings.ai_model,
            ),
            db_pool=db_pool,
            http_client=http_client,
        )

    @classmethod
    async def create(cls, settings: Settings) -> 'AppContainer':
        """
        Production wiring: sponsor key, RPC client, database pool.

        Raises:
            SponsorKeyError: missing or malformed SPONSOR_PRIVATE_KEY
        """
        sponsor = SponsorIdentity.from_encoded(settings.sponsor_private_key)
        sui_client = SuiClient(settings.sui_rpc_url, timeout=settings.sui_rpc_timeout_seconds)
        http_client = httpx.AsyncClient(timeout=10.0)

        db_pool = await create_postgres_pool(settings)
        room_repository = RoomRepository(db_pool)
        await room_repository.ensure_schema()

        logger.info(f"Connected: rpc={settings.sui_rpc_url} network={settings.network}")
        return cls.build(
            settings=settings,
            sui_client=sui_client,
            sponsor=sponsor,
            room_repository=room_repository,
            db_pool=db_pool,
            http_client=http_client,
        )

    async def close(self):
        """Release everything in reverse order of creation."""
        await self.supervisor.drain()
        await self.sui_client.close()
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.db_pool is not None:
            await self.db_pool.close()
        logger.info("Application resources released")
