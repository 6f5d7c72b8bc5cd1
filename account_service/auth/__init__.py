"""
Authentication and session management.

Provides:
- Password hashing (Argon2id)
- Access/refresh JWT issuing and verification
- Session lifecycle (login, logout, refresh-token rotation)
- Authorization guard for protected routes

FastAPI wiring lives in ``account_service.auth.dependencies``.
"""

from account_service.auth.password import (
    hash_password,
    verify_password,
    needs_rehash,
)
from account_service.auth.tokens import (
    AccessClaims,
    InvalidTokenError,
    TokenIssuer,
    TokenPayload,
)
from account_service.auth.session import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    CookieDirective,
    SessionManager,
)
from account_service.auth.guard import AuthorizationGuard

__all__ = [
    # Password
    "hash_password",
    "verify_password",
    "needs_rehash",
    # Tokens
    "AccessClaims",
    "InvalidTokenError",
    "TokenIssuer",
    "TokenPayload",
    # Sessions
    "ACCESS_TOKEN_COOKIE",
    "REFRESH_TOKEN_COOKIE",
    "CookieDirective",
    "SessionManager",
    # Guard
    "AuthorizationGuard",
]
