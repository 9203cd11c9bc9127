"""
Room API Endpoints
==================

Room creation, sponsored user actions, administrative calls and the
merged room read views.

Endpoints:
- GET  /room                         - List rooms (public unless includePrivate)
- GET  /room/sponsor                 - Sponsor address for building sponsored txs
- POST /room/create                  - Create a room (backend-signed)
- POST /room/join|deposit|claim      - Sponsored, user-co-signed
- POST /room/execute-sponsored       - Generic sponsored execution
- POST /room/start|finalize|fund-reward - Administrative, backend-signed
- POST /room/find-by-password        - Private room lookup
- GET  /room/user/{address}/joined   - Rooms a user joined
- GET  /room/{id}                    - Room with totals and reward pool
- GET  /room/{id}/participants       - Participants from events
- GET  /room/{id}/history            - Joins and deposits, newest first
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from api.dependencies import get_events, get_relayer, get_room_service
from middleware.auth import UserPublic, get_current_user_optional
from models.api.room import (
    CreateRoomRequest,
    FindByPasswordRequest,
    FundRewardRequest,
    RoomIdRequest,
    SponsoredTransactionRequest,
)
from services.errors import NotFoundError
from services.event_service import EventAggregator
from services.relayer import Relayer
from services.room_service import RoomService
from utils.blockchain import is_valid_object_id, normalize_object_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/room", tags=["Rooms"])


def _room_id_or_400(room_id: str) -> str:
    if not is_valid_object_id(room_id):
        raise HTTPException(status_code=400, detail="Invalid Room ID format")
    return normalize_object_id(room_id)


async def _sponsored(body: SponsoredTransactionRequest, relayer: Relayer) -> dict:
    result = await relayer.execute_sponsored(body.tx_bytes, body.user_signature)
    return result.to_dict()


@router.get("")
async def list_rooms(
    includePrivate: bool = False,
    rooms: RoomService = Depends(get_room_service),
):
    """List rooms, newest first, with event-derived totalDeposit"""
    result = await rooms.list_rooms(include_private=includePrivate)
    return {"success": True, "rooms": result, "count": len(result)}


@router.get("/sponsor")
async def get_sponsor(relayer: Relayer = Depends(get_relayer)):
    return {"success": True, "sponsorAddress": relayer.sponsor.address}


@router.post("/create")
async def create_room(
    body: CreateRoomRequest,
    rooms: RoomService = Depends(get_room_service),
    user: Optional[UserPublic] = Depends(get_current_user_optional),
):
    """
    Create a savings room.

    Returns roomId and vaultId discovered from the transaction; private rooms
    also get a generated password, shown only in this response.
    """
    return await rooms.create_room(
        total_periods=body.total_periods,
        deposit_amount=body.deposit_amount,
        strategy_id=body.strategy_id,
        start_time_ms=body.start_time_ms,
        period_length_ms=body.period_length_ms,
        is_private=body.is_private,
        name=body.name,
        creator_address=user.address if user else None,
    )


@router.post("/join")
async def join_room(body: SponsoredTransactionRequest, relayer: Relayer = Depends(get_relayer)):
    return await _sponsored(body, relayer)


@router.post("/deposit")
async def deposit(body: SponsoredTransactionRequest, relayer: Relayer = Depends(get_relayer)):
    return await _sponsored(body, relayer)


@router.post("/claim")
async def claim(body: SponsoredTransactionRequest, relayer: Relayer = Depends(get_relayer)):
    return await _sponsored(body, relayer)


@router.post("/execute-sponsored")
async def execute_sponsored(body: SponsoredTransactionRequest, relayer: Relayer = Depends(get_relayer)):
    return await _sponsored(body, relayer)


@router.post("/start")
async def start_room(body: RoomIdRequest, relayer: Relayer = Depends(get_relayer)):
    """Start a room (admin, backend-signed)"""
    result = await relayer.start_room(_room_id_or_400(body.room_id))
    return {"success": result.success, "digest": result.digest, "error": result.error}


@router.post("/finalize")
async def finalize_room(body: RoomIdRequest, relayer: Relayer = Depends(get_relayer)):
    """Finalize a room (admin, backend-signed)"""
    result = await relayer.finalize_room(_room_id_or_400(body.room_id))
    return {"success": result.success, "digest": result.digest, "error": result.error}


@router.post("/fund-reward")
async def fund_reward(body: FundRewardRequest, relayer: Relayer = Depends(get_relayer)):
    """Move a coin into a Vault's reward pool (admin, backend-signed)"""
    result = await relayer.fund_reward_pool(body.vault_id, body.coin_object_id)
    return {"success": result.success, "digest": result.digest, "error": result.error}


@router.post("/find-by-password")
async def find_by_password(body: FindByPasswordRequest, rooms: RoomService = Depends(get_room_service)):
    try:
        found = await rooms.find_by_password(body.password)
    except NotFoundError as e:
        return JSONResponse(
            status_code=404,
            content={"detail": e.message, "hint": "Check the password or ask the room creator to share it again"},
        )
    return {"success": True, **found}


@router.get("/user/{address}/joined")
async def user_joined_rooms(address: str, rooms: RoomService = Depends(get_room_service)):
    """Active and claimable rooms the address joined, newest join first"""
    result = await rooms.user_joined_rooms(address)
    return {"success": True, "rooms": result, "count": len(result)}


@router.get("/{room_id}")
async def get_room(room_id: str, rooms: RoomService = Depends(get_room_service)):
    room = await rooms.get_room(room_id)
    return {"success": True, "room": room}


@router.get("/{room_id}/participants")
async def get_participants(room_id: str, events: EventAggregator = Depends(get_events)):
    participants = await events.participants(_room_id_or_400(room_id))
    return {"success": True, "participants": participants, "count": len(participants)}


@router.get("/{room_id}/history")
async def get_history(room_id: str, events: EventAggregator = Depends(get_events)):
    history = await events.history(_room_id_or_400(room_id))
    return {"success": True, "history": history, "count": len(history)}
