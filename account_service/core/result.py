"""
Operation outcomes.

Service operations return ``Ok`` or ``Err`` instead of raising across the
service boundary. The HTTP layer is the only place that unwraps them.

Usage:
    @returns_result
    async def login(self, ...) -> LoginOutcome:
        ...
        raise AuthenticationError("Invalid user credentials")

    result = await sessions.login(...)
    if result.is_ok:
        outcome = result.value
"""

from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

import structlog
from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError

from account_service.core.errors import AccountError, InternalError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: AccountError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]


def returns_result(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[Result[T]]]:
    """
    Wrap an async operation so its outcome is a Result.

    AccountError becomes Err as-is. Persistence and token library failures
    are logged and become Err(InternalError); their details never leave the
    process. Anything else is a bug and propagates.
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Result[T]:
        try:
            return Ok(await func(*args, **kwargs))
        except AccountError as exc:
            return Err(exc)
        except (SQLAlchemyError, JWTError) as exc:
            logger.error(
                "operation_failed",
                operation=func.__qualname__,
                error_type=type(exc).__name__,
                exc_info=True,
            )
            return Err(InternalError())

    return wrapper
