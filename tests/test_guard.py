from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from account_service.auth.guard import AuthorizationGuard
from account_service.auth.tokens import AccessClaims, TokenIssuer
from account_service.core.errors import AuthenticationError


@pytest.fixture
def guard(store, issuer) -> AuthorizationGuard:
    return AuthorizationGuard(store, issuer)


def claims_for(user) -> AccessClaims:
    return AccessClaims(
        user_id=user.id,
        email=user.email,
        username=user.username,
        full_name=user.full_name,
    )


@pytest.mark.asyncio
async def test_valid_token_resolves_public_identity(guard, alice, issuer):
    result = await guard.authorize(issuer.issue_access_token(claims_for(alice)))

    identity = result.unwrap()
    assert identity.id == alice.id
    assert identity.username == "alice"
    dumped = identity.model_dump(by_alias=True)
    assert "passwordHash" not in dumped and "password_hash" not in dumped
    assert "refreshToken" not in dumped and "refresh_token" not in dumped


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, ""])
async def test_missing_token(guard, token):
    result = await guard.authorize(token)
    assert isinstance(result.error, AuthenticationError)
    assert result.error.message == "unauthorized request"


@pytest.mark.asyncio
async def test_expired_tampered_and_wrong_kind_tokens(guard, alice, issuer, settings):
    now = datetime.now(timezone.utc)
    expired = jwt.encode(
        {
            "sub": alice.id,
            "iat": now - timedelta(hours=1),
            "exp": now - timedelta(minutes=1),
            "iss": settings.token_issuer,
            "aud": settings.token_audience,
        },
        settings.access_token_secret,
        algorithm="HS256",
    )
    valid = issuer.issue_access_token(claims_for(alice))
    header, body, signature = valid.split(".")
    tampered = ".".join([header, body, signature[::-1]])
    refresh = issuer.issue_refresh_token(alice.id)

    messages = set()
    for token in [expired, tampered, refresh, "junk"]:
        result = await guard.authorize(token)
        assert isinstance(result.error, AuthenticationError)
        messages.add(result.error.message)

    assert messages == {"invalid or expired access token"}


@pytest.mark.asyncio
async def test_token_for_deleted_user(guard, alice, issuer, open_store):
    token = issuer.issue_access_token(claims_for(alice))
    async with open_store() as fresh:
        await fresh.delete(alice.id)

    result = await guard.authorize(token)
    assert isinstance(result.error, AuthenticationError)
    assert result.error.message == "invalid or expired access token"


@pytest.mark.asyncio
async def test_refresh_token_rejected_when_secrets_are_shared(store, alice, settings):
    shared = TokenIssuer(
        settings.model_copy(update={"refresh_token_secret": settings.access_token_secret})
    )
    guard = AuthorizationGuard(store, shared)

    result = await guard.authorize(shared.issue_refresh_token(alice.id))
    assert isinstance(result.error, AuthenticationError)
    assert result.error.message == "invalid or expired access token"

    assert (await guard.authorize(shared.issue_access_token(claims_for(alice)))).is_ok
