"""
Google ID-token verification

Verifies the RS256 signature against Google's published keys and checks
issuer, audience, expiry, subject and verified email. There is no
fallback: every failure is an AuthenticationError.

The ledger address is derived deterministically from the Google subject
(0x + sha256(sub)). This is a simplified stand-in for zkLogin, not a
zero-knowledge proof.
"""
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from authlib.jose import JsonWebKey, JsonWebToken
from authlib.jose.errors import JoseError
from jose import JWTError
from jose import jwt as jose_jwt

from config.constants import JWKS_CACHE_MAX_AGE_SECONDS
from services.cache import SimpleCache
from services.errors import AuthenticationError

logger = logging.getLogger(__name__)

GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ["https://accounts.google.com", "accounts.google.com"]

_jwt = JsonWebToken(['RS256'])


def derive_address(sub: str) -> str:
    """Deterministic ledger address for a Google subject."""
    return '0x' + hashlib.sha256(sub.encode('utf-8')).hexdigest()


@dataclass
class AuthenticatedUser:
    address: str
    sub: str
    email: str
    provider: str = "google"
    name: Optional[str] = None
    picture: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'address': self.address,
            'provider': self.provider,
            'sub': self.sub,
            'email': self.email,
            'name': self.name,
            'picture': self.picture,
        }


class GoogleIdTokenVerifier:
    """Verifies Google ID tokens against a cached copy of Google's JWKS."""

    def __init__(
        self,
        client_id: str,
        http_client: Optional[httpx.AsyncClient] = None,
        jwks_url: str = GOOGLE_JWKS_URL,
        cache: Optional[SimpleCache] = None,
    ):
        self.client_id = client_id
        self.jwks_url = jwks_url
        self._http = http_client
        self._cache = cache or SimpleCache(default_ttl=JWKS_CACHE_MAX_AGE_SECONDS)

        if not client_id:
            logger.warning("GOOGLE_CLIENT_ID not set - every login will be rejected")

    async def _download_jwks(self) -> Dict[str, Any]:
        if self._http is not None:
            response = await self._http.get(self.jwks_url)
        else:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(self.jwks_url)
        response.raise_for_status()
        return response.json()

    async def _key_set(self, refresh: bool = False):
        if refresh:
            self._cache.delete(self.jwks_url)
        jwks = await self._cache.get_or_load(self.jwks_url, self._download_jwks)
        return JsonWebKey.import_key_set(jwks)

    def _decode(self, token: str, key_set):
        claims = _jwt.decode(
            token,
            key_set,
            claims_options={
                'iss': {'essential': True, 'values': GOOGLE_ISSUERS},
                'aud': {'essential': True, 'value': self.client_id},
                'sub': {'essential': True},
                'exp': {'essential': True},
            },
        )
        claims.validate()
        return claims

    async def verify(self, token: str) -> AuthenticatedUser:
        """
        Verify a Google ID token.

        Raises:
            AuthenticationError: on any verification failure
        """
        if not token:
            raise AuthenticationError("JWT token required")
        if not self.client_id:
            raise AuthenticationError("Authentication failed: Google client id not configured")

        try:
            kid = jose_jwt.get_unverified_header(token).get('kid')
            key_set = await self._key_set()
            if kid and kid not in {key.kid for key in key_set.keys}:
                # Google rotated its keys since we cached them
                key_set = await self._key_set(refresh=True)
            claims = self._decode(token, key_set)
        except (JoseError, JWTError, ValueError, KeyError) as e:
            logger.warning(f"JWT verification failed: {e}")
            raise AuthenticationError(f"Authentication failed: JWT verification failed: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"Could not fetch Google signing keys: {e}")
            raise AuthenticationError("Authentication failed: signing keys unavailable") from e

        if not claims.get('email'):
            raise AuthenticationError("Authentication failed: Invalid JWT payload: missing required fields")

        email_verified = claims.get('email_verified')
        if email_verified is not True and str(email_verified).lower() != 'true':
            raise AuthenticationError("Authentication failed: Email not verified")

        user = AuthenticatedUser(
            address=derive_address(claims['sub']),
            sub=claims['sub'],
            email=claims['email'],
            name=claims.get('name'),
            picture=claims.get('picture'),
        )
        logger.info(f"Authenticated {user.email} as {user.address}")
        return user
