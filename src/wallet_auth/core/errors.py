"""Domain errors and the boundary that maps them onto the response envelope."""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from fastapi import status

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"

# Statuses that collapse to 401 on login/refresh/logout so callers cannot tell
# whether the identity or the proof was wrong.
_AUTH_SENSITIVE_STATUSES = frozenset(
    {
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    }
)


class AuthError(Exception):
    """Base class for errors raised by the authentication core."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidSignatureError(AuthError):
    """Signature does not match the claimed wallet and nonce."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid signature"


class InvalidTokenError(AuthError):
    """Token is absent, malformed, or carries a bad signature."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid authentication token"


class TokenExpiredError(AuthError):
    """Token is past its expiry."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication token has expired"


class InvalidTokenKindError(AuthError):
    """Access token presented where a refresh token is required, or vice versa."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token type"


class NotFoundError(AuthError):
    """Record absent from the user store."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "We could not find that walletId. Please create a new user."


class ConflictError(AuthError):
    """Duplicate identity."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "WalletId belongs to an existing user"


class ForbiddenError(AuthError):
    """Authenticated caller acting on an identity that is not theirs."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class InternalError(AuthError):
    """Unexpected failure inside the core; the detail is logged, never returned."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = INTERNAL_ERROR_MESSAGE


class DataIntegrityError(InternalError):
    """The store violated one of its own guarantees (e.g. duplicate wallet rows)."""


class ApiError(Exception):
    """Structured failure returned to the request gateway."""

    def __init__(self, message: str, status_code: int = 500, request_id: str = "Error") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.request_id = request_id

    @property
    def envelope(self) -> dict[str, Any]:
        """Return the JSON error envelope."""
        return {
            "success": False,
            "statusCode": self.status_code,
            "message": self.message,
            "requestId": self.request_id,
        }


def to_api_error(err: Exception, request_id: str, *, auth_sensitive: bool = False) -> ApiError:
    """Translate any exception into an `ApiError` for the given request."""
    if isinstance(err, ApiError):
        return err
    if isinstance(err, InternalError) or not isinstance(err, AuthError):
        return ApiError(INTERNAL_ERROR_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR, request_id)

    status_code = err.status_code
    if auth_sensitive and status_code in _AUTH_SENSITIVE_STATUSES:
        status_code = status.HTTP_401_UNAUTHORIZED
    return ApiError(err.message, status_code, request_id)


T = TypeVar("T")


def api_boundary(
    *, auth_sensitive: bool = False
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Wrap a use case so every failure leaves as an `ApiError`.

    The wrapped coroutine must take `(self, params, context)` where `context`
    exposes `request_id`.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self: Any, params: Any, context: Any) -> T:
            request_id = context.request_id
            try:
                return await func(self, params, context)
            except ApiError:
                raise
            except AuthError as err:
                if isinstance(err, InternalError):
                    logger.error("%s failed: %s", func.__name__, err.message, exc_info=True)
                else:
                    logger.info("%s rejected: %s", func.__name__, err.message)
                raise to_api_error(err, request_id, auth_sensitive=auth_sensitive) from err
            except Exception as err:
                logger.exception("%s raised an unexpected error", func.__name__)
                raise to_api_error(err, request_id, auth_sensitive=auth_sensitive) from err

        return wrapper

    return decorator
