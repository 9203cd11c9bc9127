"""
Authentication API router - Google ID token login with JWT session
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from api.dependencies import get_identity, get_settings_dep
from config.settings import Settings
from middleware.auth import UserPublic, get_current_user
from middleware.google_oauth import GoogleIdTokenVerifier
from middleware.jwt_session import create_access_token
from models.api.auth import LoginRequest
from services.errors import AuthenticationError

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    identity: GoogleIdTokenVerifier = Depends(get_identity),
    settings: Settings = Depends(get_settings_dep),
):
    """
    Verify a Google ID token and start a session

    Returns the derived ledger address and a session token, also set as
    the access_token cookie.
    """
    user = await identity.verify(body.jwt)
    token = create_access_token(user, settings)

    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        max_age=settings.jwt_expire_minutes * 60,
        samesite="lax",
        secure=not settings.is_development,
    )

    return {
        "success": True,
        "user": user.to_dict(),
        "token": token,
    }


@router.post("/verify")
async def verify(
    body: LoginRequest,
    identity: GoogleIdTokenVerifier = Depends(get_identity),
):
    """Check a Google ID token without starting a session"""
    try:
        user = await identity.verify(body.jwt)
    except AuthenticationError as e:
        return JSONResponse(status_code=401, content={"valid": False, "detail": e.message})

    return {"valid": True, "user": user.to_dict()}


@router.get("/me")
async def me(user: UserPublic = Depends(get_current_user)):
    """Current session user"""
    return {
        "address": user.address,
        "email": user.email,
        "name": user.name,
    }


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie("access_token")
    return {"success": True}
