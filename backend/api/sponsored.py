"""
Sponsored execution of user-signed transactions
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_relayer
from models.api.room import SponsoredTransactionRequest
from services.relayer import Relayer

router = APIRouter(prefix="/sponsored", tags=["Sponsored"])


@router.post("/execute")
async def execute(body: SponsoredTransactionRequest, relayer: Relayer = Depends(get_relayer)):
    """User signs, sponsor co-signs and pays gas"""
    result = await relayer.execute_sponsored(body.tx_bytes, body.user_signature)
    return result.to_dict()
