"""
JWT session management
"""
from datetime import datetime, timedelta, timezone

from jose import jwt

from config.settings import Settings


def create_access_token(user, settings: Settings) -> str:
    """
    Create JWT access token for an authenticated user

    Args:
        user: AuthenticatedUser with address, email, name
        settings: provides secret, algorithm and lifetime

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.jwt_expire_minutes)

    payload = {
        "sub": user.address,
        "email": user.email,
        "name": user.name,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Decode and validate JWT token

    Returns:
        Decoded payload dict

    Raises:
        jose.JWTError if token invalid/expired
    """
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm]
    )
