"""
Common schemas used across the API.

All wire payloads use camelCase keys (``fullName``, ``accessToken``) while
the Python attributes stay snake_case.
"""

from typing import Any, Generic, Optional, TypeVar, List
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    """Envelope for every successful response."""

    status_code: int = Field(description="HTTP status code of the response")
    data: Optional[T] = None
    message: str = "Success"
    success: bool = True

    @classmethod
    def create(cls, status_code: int, data: Any = None, message: str = "Success") -> "ApiResponse[T]":
        return cls(status_code=status_code, data=data, message=message, success=status_code < 400)


class ErrorResponse(CamelModel):
    """Envelope for every failed response."""

    status_code: int
    data: None = None
    message: str = Field(description="Human-readable error message")
    success: bool = False
    errors: List[Any] = Field(default_factory=list)
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    database: str = "connected"
    timestamp: datetime
