"""
Pydantic schemas for API request/response validation.
"""

from account_service.schemas.common import (
    ApiResponse,
    CamelModel,
    ErrorResponse,
    HealthResponse,
)
from account_service.schemas.user import (
    AccountUpdateRequest,
    RegistrationInput,
    UserPublic,
)
from account_service.schemas.auth import (
    LoginData,
    LoginRequest,
    PasswordChangeRequest,
    TokenRefreshData,
    TokenRefreshRequest,
)

__all__ = [
    # Common
    "ApiResponse",
    "CamelModel",
    "ErrorResponse",
    "HealthResponse",
    # User
    "AccountUpdateRequest",
    "RegistrationInput",
    "UserPublic",
    # Auth
    "LoginData",
    "LoginRequest",
    "PasswordChangeRequest",
    "TokenRefreshData",
    "TokenRefreshRequest",
]
