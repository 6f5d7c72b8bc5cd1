"""
JWT token issuing and verification.

Security measures:
- Short-lived access tokens (15 min default)
- Longer-lived refresh tokens (10 days default)
- Separate signing secrets per token kind, so a leaked access secret
  cannot mint refresh tokens and vice versa
- A "type" claim checked on verify, so the kinds stay apart even if
  both secrets are configured to the same value
- Issuer and audience validation
- A single, uniform failure for every kind of bad token
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import jwt, JWTError
from pydantic import BaseModel

from account_service.core.config import Settings

INVALID_TOKEN_MESSAGE = "invalid token"

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class InvalidTokenError(Exception):
    """Raised for malformed, expired, tampered or mis-addressed tokens."""

    def __init__(self):
        super().__init__(INVALID_TOKEN_MESSAGE)


@dataclass(frozen=True)
class AccessClaims:
    """Identity carried inside an access token."""

    user_id: str
    email: str
    username: str
    full_name: str


class TokenPayload(BaseModel):
    """Decoded JWT claims."""
    sub: str                          # User ID (subject)
    iat: datetime                     # Issued at
    exp: datetime                     # Expiration
    iss: str                          # Issuer
    aud: str                          # Audience
    type: str                         # "access" or "refresh"
    jti: Optional[str] = None         # JWT ID
    email: Optional[str] = None       # access tokens only
    username: Optional[str] = None    # access tokens only
    full_name: Optional[str] = None   # access tokens only


class TokenIssuer:
    """Creates and verifies the access/refresh token pair."""

    def __init__(self, settings: Settings):
        self.access_secret = settings.access_token_secret
        self.refresh_secret = settings.refresh_token_secret
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=settings.refresh_token_expire_days)
        self.issuer = settings.token_issuer
        self.audience = settings.token_audience
        self.algorithm = settings.jwt_algorithm

    @property
    def access_token_expires_in(self) -> int:
        return int(self.access_ttl.total_seconds())

    @property
    def refresh_token_max_age(self) -> int:
        return int(self.refresh_ttl.total_seconds())

    def _encode(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": now,
            "exp": now + ttl,
            "iss": self.issuer,
            "aud": self.audience,
            "jti": secrets.token_urlsafe(16),  # Unique token ID
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access_token(self, claims: AccessClaims) -> str:
        """
        Create a short-lived access token carrying the user's identity.

        Never persisted server-side; validity is signature + expiry only.
        """
        return self._encode(
            {
                "sub": claims.user_id,
                "email": claims.email,
                "username": claims.username,
                "full_name": claims.full_name,
                "type": ACCESS_TOKEN_TYPE,
            },
            self.access_secret,
            self.access_ttl,
        )

    def issue_refresh_token(self, user_id: str) -> str:
        """
        Create a longer-lived refresh token carrying only the user id.

        The random jti makes every token distinct, even two issued within
        the same second, so rotation always yields a new value.
        """
        return self._encode(
            {"sub": user_id, "type": REFRESH_TOKEN_TYPE},
            self.refresh_secret,
            self.refresh_ttl,
        )

    def verify(self, token: str, secret: str, expected_type: str) -> TokenPayload:
        """
        Verify and decode a JWT token of the expected type.

        Raises:
            InvalidTokenError: on any failure. Expired, malformed, forged
                and wrong-type tokens are indistinguishable to the caller.
        """
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except (JWTError, AttributeError, TypeError, ValueError):
            raise InvalidTokenError() from None

        if payload.get("type") != expected_type:
            raise InvalidTokenError()
        if not all(payload.get(claim) for claim in ("sub", "iat", "exp")):
            raise InvalidTokenError()

        return TokenPayload(
            sub=str(payload["sub"]),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iss=payload.get("iss", self.issuer),
            aud=payload.get("aud", self.audience),
            type=payload["type"],
            jti=payload.get("jti"),
            email=payload.get("email"),
            username=payload.get("username"),
            full_name=payload.get("full_name"),
        )

    def verify_access_token(self, token: str) -> TokenPayload:
        return self.verify(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> TokenPayload:
        return self.verify(token, self.refresh_secret, REFRESH_TOKEN_TYPE)
