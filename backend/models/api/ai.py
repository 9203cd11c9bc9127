"""
Pydantic models for strategy recommendation and chat
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional


class RecommendRequest(BaseModel):
    prompt: str = Field(min_length=1)


class ChatMessage(BaseModel):
    """Single chat message"""
    role: Literal["system", "user", "assistant"]
    content: str = Field(min_length=1)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
    options: Optional[Dict[str, Any]] = None
