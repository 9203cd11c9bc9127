"""
Strategy recommendation and chat endpoints
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_ai_service
from models.api.ai import ChatRequest, RecommendRequest
from services.ai_service import AIService

router = APIRouter(prefix="/ai", tags=["AI"])


@router.post("/recommend")
async def recommend(body: RecommendRequest, ai: AIService = Depends(get_ai_service)):
    """Best-fit strategy for a free-text prompt (keyword fallback on failure)"""
    recommendations = await ai.recommend(body.prompt)
    return {"success": True, **recommendations}


@router.post("/chat")
async def chat(body: ChatRequest, ai: AIService = Depends(get_ai_service)):
    messages = [message.model_dump() for message in body.messages]
    response = await ai.general_chat(messages, body.options)
    return {"success": True, "response": response}


@router.get("/strategies")
async def strategies(ai: AIService = Depends(get_ai_service)):
    return {"strategies": ai.all_strategies()}


@router.get("/strategies/{strategy_id}")
async def strategy(strategy_id: int, ai: AIService = Depends(get_ai_service)):
    found = ai.strategy_by_id(strategy_id)
    if not found:
        raise HTTPException(status_code=404, detail="Strategy not found")
    return {"strategy": found}
