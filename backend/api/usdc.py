"""
Mock USDC faucet endpoints (gasless mint, balance)
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_relayer
from config.constants import USDC_DECIMALS
from models.api.usdc import MintRequest
from services.relayer import Relayer

router = APIRouter(prefix="/usdc", tags=["USDC"])


@router.post("/mint")
async def mint(body: MintRequest, relayer: Relayer = Depends(get_relayer)):
    """Mint up to 1000 USDC to recipient; once per 24 hours per recipient"""
    result = await relayer.mint_usdc(body.recipient, body.amount)
    return {
        "success": result.success,
        "digest": result.digest,
        "effects": result.effects,
        "error": result.error,
        "recipient": body.recipient,
        "amount": body.amount,
    }


@router.get("/balance/{address}")
async def balance(address: str, relayer: Relayer = Depends(get_relayer)):
    amount = await relayer.get_usdc_balance(address)
    return {
        "success": True,
        "address": address,
        "balance": str(amount),
        "balanceFormatted": f"{amount / USDC_DECIMALS:.2f}",
    }
