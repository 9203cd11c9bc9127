"""
FastAPI dependencies - collaborators from the app-scoped container
"""
from fastapi import Request

from config.settings import Settings
from middleware.google_oauth import GoogleIdTokenVerifier
from services.ai_service import AIService
from services.container import AppContainer
from services.event_service import EventAggregator
from services.relayer import Relayer
from services.room_service import RoomService
from services.sui_client import SuiClient


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_settings_dep(request: Request) -> Settings:
    return get_container(request).settings


def get_relayer(request: Request) -> Relayer:
    return get_container(request).relayer


def get_room_service(request: Request) -> RoomService:
    return get_container(request).room_service


def get_events(request: Request) -> EventAggregator:
    return get_container(request).events


def get_sui_client(request: Request) -> SuiClient:
    return get_container(request).sui_client


def get_identity(request: Request) -> GoogleIdTokenVerifier:
    return get_container(request).identity


def get_ai_service(request: Request) -> AIService:
    return get_container(request).ai_service
