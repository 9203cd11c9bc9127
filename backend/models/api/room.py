"""
Pydantic models for Room endpoints

Field names follow the frontend's camelCase; Python code uses snake_case.
"""

from pydantic import BaseModel, Field
from typing import Optional


class CamelModel(BaseModel):
    model_config = {"populate_by_name": True}


class CreateRoomRequest(CamelModel):
    """Parameters of create_room plus directory-only metadata"""
    total_periods: int = Field(alias="totalPeriods", gt=0)
    deposit_amount: int = Field(alias="depositAmount", gt=0)  # base units per period
    strategy_id: int = Field(alias="strategyId", ge=0, le=255)
    start_time_ms: int = Field(alias="startTimeMs", gt=0)
    period_length_ms: int = Field(alias="periodLengthMs", gt=0)
    is_private: bool = Field(default=False, alias="isPrivate")
    name: Optional[str] = Field(default=None, max_length=120)


class SponsoredTransactionRequest(CamelModel):
    """Client-built transaction bytes plus the user's signature"""
    tx_bytes: str = Field(alias="txBytes", min_length=1)
    user_signature: str = Field(alias="userSignature", min_length=1)


class RoomIdRequest(CamelModel):
    room_id: str = Field(alias="roomId", min_length=1)


class FundRewardRequest(CamelModel):
    vault_id: str = Field(alias="vaultId", min_length=1)
    coin_object_id: str = Field(alias="coinObjectId", min_length=1)


class FindByPasswordRequest(BaseModel):
    password: str = Field(min_length=1)
