"""
Test: Google ID-token verification and session tokens
=====================================================

Tokens are signed locally with an RSA key whose public half is served
as the JWKS through httpx.MockTransport.
"""
import time

import httpx
import pytest
from authlib.jose import JsonWebKey, JsonWebToken
from jose import JWTError

from middleware.google_oauth import AuthenticatedUser, GoogleIdTokenVerifier, derive_address
from middleware.jwt_session import create_access_token, decode_access_token
from services.errors import AuthenticationError

CLIENT_ID = 'test-client.apps.googleusercontent.com'
SUB = '109876543210987654321'


def make_key(kid):
    return JsonWebKey.generate_key('RSA', 2048, is_private=True, options={'kid': kid})


def sign(key, kid='k1', **overrides) -> str:
    now = int(time.time())
    claims = {
        'iss': 'https://accounts.google.com',
        'aud': CLIENT_ID,
        'sub': SUB,
        'email': 'alice@example.com',
        'email_verified': True,
        'name': 'Alice',
        'iat': now,
        'exp': now + 3600,
    }
    claims.update(overrides)
    token = JsonWebToken(['RS256']).encode({'alg': 'RS256', 'kid': kid}, claims, key)
    return token.decode('ascii')


def jwks_of(*keys):
    return {'keys': [key.as_dict(is_private=False) for key in keys]}


def make_verifier(*jwks_responses):
    downloads = []

    def handler(request):
        downloads.append(request.url)
        return httpx.Response(200, json=jwks_responses[min(len(downloads), len(jwks_responses)) - 1])

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleIdTokenVerifier(CLIENT_ID, http_client=http), downloads


@pytest.fixture(scope='module')
def key():
    return make_key('k1')


class TestVerification:

    @pytest.mark.asyncio
    async def test_valid_token(self, key):
        verifier, _ = make_verifier(jwks_of(key))
        user = await verifier.verify(sign(key))

        assert user.sub == SUB
        assert user.email == 'alice@example.com'
        assert user.address == derive_address(SUB)
        assert user.provider == 'google'

    @pytest.mark.asyncio
    async def test_address_is_deterministic(self, key):
        verifier, _ = make_verifier(jwks_of(key))
        first = await verifier.verify(sign(key))
        second = await verifier.verify(sign(key))
        assert first.address == second.address
        assert first.address.startswith('0x') and len(first.address) == 66

    @pytest.mark.asyncio
    async def test_keys_are_cached(self, key):
        verifier, downloads = make_verifier(jwks_of(key))
        await verifier.verify(sign(key))
        await verifier.verify(sign(key))
        assert len(downloads) == 1

    @pytest.mark.asyncio
    async def test_rotated_key_triggers_refresh(self, key):
        rotated = make_key('k2')
        verifier, downloads = make_verifier(jwks_of(key), jwks_of(key, rotated))

        await verifier.verify(sign(key))
        user = await verifier.verify(sign(rotated, kid='k2'))

        assert user.sub == SUB
        assert len(downloads) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize('overrides', [
        {'aud': 'someone-else'},
        {'iss': 'https://evil.example.com'},
        {'exp': int(time.time()) - 60},
        {'email_verified': False},
        {'email': None},
    ])
    async def test_rejected_claims(self, key, overrides):
        verifier, _ = make_verifier(jwks_of(key))
        with pytest.raises(AuthenticationError):
            await verifier.verify(sign(key, **overrides))

    @pytest.mark.asyncio
    async def test_signature_from_unknown_key(self, key):
        verifier, _ = make_verifier(jwks_of(key))
        with pytest.raises(AuthenticationError):
            await verifier.verify(sign(make_key('k1')))

    @pytest.mark.asyncio
    @pytest.mark.parametrize('token', ['', 'not.a.jwt'])
    async def test_garbage(self, key, token):
        verifier, _ = make_verifier(jwks_of(key))
        with pytest.raises(AuthenticationError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_no_client_id_fails_closed(self, key):
        verifier = GoogleIdTokenVerifier('')
        with pytest.raises(AuthenticationError):
            await verifier.verify(sign(key))

    @pytest.mark.asyncio
    async def test_jwks_unreachable(self, key):
        def handler(request):
            raise httpx.ConnectError('refused', request=request)

        verifier = GoogleIdTokenVerifier(
            CLIENT_ID, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        with pytest.raises(AuthenticationError):
            await verifier.verify(sign(key))


class TestSessionToken:

    @pytest.mark.asyncio
    async def test_round_trip(self, key, settings):
        verifier, _ = make_verifier(jwks_of(key))
        user = await verifier.verify(sign(key))

        payload = decode_access_token(create_access_token(user, settings), settings)
        assert payload['sub'] == user.address
        assert payload['email'] == 'alice@example.com'

    def test_wrong_secret(self, settings):
        token = create_access_token(AuthenticatedUser(address='0xabc', sub='1', email='a@b.c'), settings)
        settings.jwt_secret_key = 'rotated'
        with pytest.raises(JWTError):
            decode_access_token(token, settings)
