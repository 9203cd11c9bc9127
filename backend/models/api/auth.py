"""
Pydantic models for login
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Google ID token as returned to the frontend"""
    jwt: str = Field(min_length=1)
