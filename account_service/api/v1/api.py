"""
API Router configuration.

Aggregates all v1 API endpoints with proper tagging and prefixes.
"""

from fastapi import APIRouter

from account_service.api.v1.endpoints import users

api_router = APIRouter()

# Accounts and sessions (register/login/refresh need no auth)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)
