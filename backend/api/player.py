"""
Player API Endpoints

Endpoints:
- GET /player/{id} - PlayerPosition object
- GET /player/{address}/deposits?roomId= - deposit history from events
"""

from fastapi import APIRouter, Depends
from typing import Optional

from api.dependencies import get_events, get_room_service
from services.event_service import EventAggregator
from services.room_service import RoomService

router = APIRouter(prefix="/player", tags=["Players"])


@router.get("/{position_id}")
async def get_player_position(position_id: str, rooms: RoomService = Depends(get_room_service)):
    position = await rooms.get_player_position(position_id)
    return {"success": True, "position": position.to_dict()}


@router.get("/{address}/deposits")
async def get_deposit_history(
    address: str,
    roomId: Optional[str] = None,
    events: EventAggregator = Depends(get_events),
):
    deposits = await events.user_deposit_history(address, roomId)
    return {"success": True, "deposits": deposits, "count": len(deposits)}
