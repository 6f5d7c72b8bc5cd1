"""
Session lifecycle: login, logout and refresh-token rotation.

Per user the state is just the stored refresh token:

    anonymous --login--> authenticated --logout--> anonymous
                         authenticated --refresh--> authenticated (rotated)

A refresh token is accepted only if it verifies against the refresh secret
AND equals the value stored on the user. Every successful login or refresh
overwrites that value, so a superseded token is rejected even while it is
still cryptographically valid.

Operations return Results and never write to a transport themselves; the
cookies to set or clear are part of each outcome.
"""

import secrets
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from account_service.auth.password import (
    hash_password_async,
    needs_rehash,
    verify_password_async,
)
from account_service.auth.tokens import AccessClaims, InvalidTokenError, TokenIssuer
from account_service.core.config import Settings
from account_service.core.errors import (
    AuthenticationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from account_service.core.result import returns_result
from account_service.models.user import User
from account_service.schemas.user import UserPublic
from account_service.store.users import UserStore

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


@dataclass(frozen=True)
class CookieDirective:
    """A cookie to set, or to clear when value is None."""

    name: str
    value: Optional[str]
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def clears(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class LoginOutcome:
    user: UserPublic
    tokens: TokenPair
    cookies: list[CookieDirective]


@dataclass(frozen=True)
class RefreshOutcome:
    tokens: TokenPair
    cookies: list[CookieDirective]


@dataclass(frozen=True)
class LogoutOutcome:
    cookies: list[CookieDirective]


class SessionManager:
    """Orchestrates password check, token issuance and refresh-token storage."""

    def __init__(self, store: UserStore, issuer: TokenIssuer, settings: Settings):
        self.store = store
        self.issuer = issuer
        self.settings = settings

    def _cookie_options(self, max_age: int) -> dict[str, Any]:
        return {
            "httponly": True,
            "secure": True,
            "samesite": self.settings.cookie_samesite,
            "max_age": max_age,
        }

    def _token_cookies(self, tokens: TokenPair) -> list[CookieDirective]:
        return [
            CookieDirective(
                ACCESS_TOKEN_COOKIE,
                tokens.access_token,
                self._cookie_options(self.issuer.access_token_expires_in),
            ),
            CookieDirective(
                REFRESH_TOKEN_COOKIE,
                tokens.refresh_token,
                self._cookie_options(self.issuer.refresh_token_max_age),
            ),
        ]

    def _cleared_cookies(self) -> list[CookieDirective]:
        options = {
            "httponly": True,
            "secure": True,
            "samesite": self.settings.cookie_samesite,
        }
        return [
            CookieDirective(ACCESS_TOKEN_COOKIE, None, options),
            CookieDirective(REFRESH_TOKEN_COOKIE, None, options),
        ]

    async def _issue_pair(self, user: User) -> TokenPair:
        """Issue a fresh token pair and make its refresh token the stored one."""
        access_token = self.issuer.issue_access_token(
            AccessClaims(
                user_id=user.id,
                email=user.email,
                username=user.username,
                full_name=user.full_name,
            )
        )
        refresh_token = self.issuer.issue_refresh_token(user.id)

        if not await self.store.set_refresh_token(user.id, refresh_token):
            raise InternalError("Something went wrong while generating refresh and access token")

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.issuer.access_token_expires_in,
        )

    @returns_result
    async def login(
        self,
        password: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> LoginOutcome:
        """
        Authenticate by username or email and password.

        Fails with ValidationError when neither identifier is given,
        NotFoundError for an unknown user and AuthenticationError for a
        wrong password.
        """
        username = (username or "").strip()
        email = (email or "").strip()
        if not username and not email:
            raise ValidationError("username or email is required")

        user = await self.store.find_one(username=username or None, email=email or None)
        if user is None:
            logger.info("login_unknown_user")
            raise NotFoundError("User does not exist")

        if not password or not await verify_password_async(password, user.password_hash):
            logger.info("login_failed", user_id=user.id, reason="invalid_password")
            raise AuthenticationError("Invalid user credentials")

        # Security parameter upgrade
        if needs_rehash(user.password_hash):
            await self.store.update(user.id, password_hash=await hash_password_async(password))
            logger.info("password_rehashed", user_id=user.id)

        tokens = await self._issue_pair(user)
        logger.info("login_succeeded", user_id=user.id)

        return LoginOutcome(
            user=UserPublic.model_validate(user),
            tokens=tokens,
            cookies=self._token_cookies(tokens),
        )

    @returns_result
    async def logout(self, user_id: str) -> LogoutOutcome:
        """Forget the stored refresh token. Calling it again is harmless."""
        await self.store.set_refresh_token(user_id, None)
        logger.info("logout", user_id=user_id)
        return LogoutOutcome(cookies=self._cleared_cookies())

    @returns_result
    async def refresh(self, incoming_refresh_token: Optional[str]) -> RefreshOutcome:
        """
        Exchange the current refresh token for a new token pair.

        The user record is only read, never written, unless the incoming
        token is both valid and the currently stored one.
        """
        token = (incoming_refresh_token or "").strip()
        if not token:
            raise AuthenticationError("unauthorized request")

        try:
            payload = self.issuer.verify_refresh_token(token)
        except InvalidTokenError:
            logger.info("refresh_token_invalid")
            raise AuthenticationError("invalid refresh token")

        user = await self.store.find_by_id(payload.sub)
        if user is None:
            logger.info("refresh_token_unknown_user", user_id=payload.sub)
            raise AuthenticationError("invalid refresh token")

        stored = user.refresh_token
        if stored is None or not secrets.compare_digest(token.encode(), stored.encode()):
            logger.warning("refresh_token_reused", user_id=user.id)
            raise AuthenticationError("refresh token is expired or used")

        tokens = await self._issue_pair(user)
        logger.info("refresh_token_rotated", user_id=user.id)

        return RefreshOutcome(tokens=tokens, cookies=self._token_cookies(tokens))

