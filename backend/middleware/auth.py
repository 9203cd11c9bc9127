"""
Authentication dependencies

The session token issued by /auth/login is read from the
Authorization: Bearer header or the access_token cookie.
"""
from typing import Optional

from fastapi import HTTPException, Request
from jose import JWTError

from .jwt_session import decode_access_token


class UserPublic:
    """Minimal user info from JWT token"""
    def __init__(self, address: str, email: Optional[str] = None, name: Optional[str] = None):
        self.address = address
        self.email = email
        self.name = name


def _token_from_request(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get("access_token")


async def get_current_user_optional(request: Request) -> Optional[UserPublic]:
    """
    Get current user from JWT token (optional - doesn't raise if not authenticated)

    Returns:
        UserPublic if authenticated, None otherwise
    """
    token = _token_from_request(request)
    if not token:
        return None

    settings = request.app.state.container.settings
    try:
        payload = decode_access_token(token, settings)
    except JWTError:
        return None

    if not payload.get("sub"):
        return None

    return UserPublic(
        address=payload["sub"],
        email=payload.get("email"),
        name=payload.get("name"),
    )


async def get_current_user(request: Request) -> UserPublic:
    """
    Get current user (required - raises 401 if not authenticated)

    Raises:
        HTTPException 401 if not authenticated
    """
    user = await get_current_user_optional(request)

    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")

    return user
