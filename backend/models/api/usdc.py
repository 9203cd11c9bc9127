"""
Pydantic models for the mock USDC faucet
"""

from pydantic import BaseModel, Field


class MintRequest(BaseModel):
    """Amount is in base units (1 USDC = 1_000_000)"""
    recipient: str = Field(min_length=1)
    amount: int
