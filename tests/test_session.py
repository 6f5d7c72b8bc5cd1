"""Login, logout and refresh-token rotation."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from account_service.auth.session import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    SessionManager,
)
from account_service.core.config import Settings
from account_service.core.errors import (
    AuthenticationError,
    NotFoundError,
    ValidationError,
)
from tests.conftest import ALICE_PASSWORD


async def stored_refresh_token(open_store, user_id):
    async with open_store() as fresh:
        return (await fresh.find_by_id(user_id)).refresh_token


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_issues_and_stores_tokens(sessions: SessionManager, alice, issuer, open_store):
    result = await sessions.login(ALICE_PASSWORD, username="alice")

    assert result.is_ok
    outcome = result.value
    assert outcome.user.id == alice.id
    assert not hasattr(outcome.user, "password_hash")
    assert not hasattr(outcome.user, "refresh_token")
    assert issuer.verify_access_token(outcome.tokens.access_token).sub == alice.id
    assert issuer.verify_refresh_token(outcome.tokens.refresh_token).sub == alice.id
    assert await stored_refresh_token(open_store, alice.id) == outcome.tokens.refresh_token


@pytest.mark.asyncio
async def test_login_by_email_and_case_insensitive_username(sessions: SessionManager, alice):
    assert (await sessions.login(ALICE_PASSWORD, email="ALICE@example.com")).is_ok
    assert (await sessions.login(ALICE_PASSWORD, username=" Alice ")).is_ok


@pytest.mark.asyncio
async def test_login_cookies_are_http_only_and_secure(sessions: SessionManager, alice, issuer):
    outcome = (await sessions.login(ALICE_PASSWORD, username="alice")).unwrap()
    cookies = {c.name: c for c in outcome.cookies}

    assert set(cookies) == {ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE}
    assert cookies[ACCESS_TOKEN_COOKIE].value == outcome.tokens.access_token
    assert cookies[REFRESH_TOKEN_COOKIE].value == outcome.tokens.refresh_token
    for cookie in cookies.values():
        assert cookie.options["httponly"] is True
        assert cookie.options["secure"] is True
    assert cookies[REFRESH_TOKEN_COOKIE].options["max_age"] == issuer.refresh_token_max_age


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"username": "", "email": "  "}, ValidationError),
        ({}, ValidationError),
        ({"username": "nobody"}, NotFoundError),
        ({"username": "alice", "password": "wrong"}, AuthenticationError),
        ({"username": "alice", "password": ""}, AuthenticationError),
    ],
)
async def test_login_failures(sessions: SessionManager, alice, open_store, kwargs, error):
    password = kwargs.pop("password", ALICE_PASSWORD)
    result = await sessions.login(password, **kwargs)

    assert not result.is_ok
    assert isinstance(result.error, error)
    assert await stored_refresh_token(open_store, alice.id) is None


# ---------------------------------------------------------------------------
# refresh
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_refresh_rotates_and_rejects_previous_token(sessions: SessionManager, alice, open_store):
    first = (await sessions.login(ALICE_PASSWORD, username="alice")).unwrap().tokens

    rotated = (await sessions.refresh(first.refresh_token)).unwrap()
    assert rotated.tokens.refresh_token != first.refresh_token
    assert rotated.tokens.access_token != first.access_token
    assert await stored_refresh_token(open_store, alice.id) == rotated.tokens.refresh_token

    reused = await sessions.refresh(first.refresh_token)
    assert isinstance(reused.error, AuthenticationError)
    assert reused.error.message == "refresh token is expired or used"

    # the rotated token stays usable
    assert (await sessions.refresh(rotated.tokens.refresh_token)).is_ok


@pytest.mark.asyncio
@pytest.mark.parametrize("incoming", [None, "", "   "])
async def test_refresh_without_token(sessions: SessionManager, incoming):
    result = await sessions.refresh(incoming)
    assert isinstance(result.error, AuthenticationError)
    assert result.error.message == "unauthorized request"


@pytest.mark.asyncio
async def test_refresh_with_bad_tokens_leaves_record_untouched(
    sessions: SessionManager, alice, settings, open_store
):
    current = (await sessions.login(ALICE_PASSWORD, username="alice")).unwrap().tokens
    now = datetime.now(timezone.utc)
    expired = jwt.encode(
        {
            "sub": alice.id,
            "iat": now - timedelta(days=20),
            "exp": now - timedelta(days=10),
            "iss": settings.token_issuer,
            "aud": settings.token_audience,
        },
        settings.refresh_token_secret,
        algorithm="HS256",
    )
    forged = jwt.encode(
        {"sub": alice.id, "iat": now, "exp": now + timedelta(days=1),
         "iss": settings.token_issuer, "aud": settings.token_audience},
        settings.access_token_secret,
        algorithm="HS256",
    )

    for token in [expired, forged, current.access_token, "garbage"]:
        result = await sessions.refresh(token)
        assert isinstance(result.error, AuthenticationError)
        assert result.error.message == "invalid refresh token"

    assert await stored_refresh_token(open_store, alice.id) == current.refresh_token


@pytest.mark.asyncio
async def test_refresh_for_deleted_user(sessions: SessionManager, alice, open_store):
    tokens = (await sessions.login(ALICE_PASSWORD, username="alice")).unwrap().tokens
    async with open_store() as fresh:
        await fresh.delete(alice.id)

    result = await sessions.refresh(tokens.refresh_token)
    assert isinstance(result.error, AuthenticationError)


# ---------------------------------------------------------------------------
# logout
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_logout_clears_token_and_is_idempotent(sessions: SessionManager, alice, open_store):
    tokens = (await sessions.login(ALICE_PASSWORD, username="alice")).unwrap().tokens

    outcome = (await sessions.logout(alice.id)).unwrap()
    assert {c.name for c in outcome.cookies} == {ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE}
    assert all(c.clears for c in outcome.cookies)
    assert await stored_refresh_token(open_store, alice.id) is None

    assert (await sessions.logout(alice.id)).is_ok
    assert await stored_refresh_token(open_store, alice.id) is None

    result = await sessions.refresh(tokens.refresh_token)
    assert isinstance(result.error, AuthenticationError)


@pytest.mark.asyncio
async def test_second_login_supersedes_first(sessions: SessionManager, alice):
    first = (await sessions.login(ALICE_PASSWORD, username="alice")).unwrap().tokens
    second = (await sessions.login(ALICE_PASSWORD, email="alice@example.com")).unwrap().tokens

    assert not (await sessions.refresh(first.refresh_token)).is_ok
    assert (await sessions.refresh(second.refresh_token)).is_ok


@pytest.mark.asyncio
async def test_cookies_are_always_secure(store, issuer, alice, monkeypatch):
    monkeypatch.setenv("COOKIE_SECURE", "false")
    manager = SessionManager(store, issuer, Settings.from_env())

    login = (await manager.login(ALICE_PASSWORD, username="alice")).unwrap()
    logout = (await manager.logout(alice.id)).unwrap()

    for cookie in login.cookies + logout.cookies:
        assert cookie.options["secure"] is True
        assert cookie.options["httponly"] is True
