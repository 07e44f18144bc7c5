"""Custom error types used in chesstrack."""

import requests

RATE_LIMIT = "RATE_LIMIT"
HTTP_ERROR = "HTTP_ERROR"
AUTH_ERROR = "AUTH_ERROR"
TRANSPORT_ERROR = "TRANSPORT_ERROR"
CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
USERNAME_MISSING = "USERNAME_MISSING"
INTERNAL_ERROR = "INTERNAL_ERROR"

ERROR_MESSAGE_MAX_LENGTH = 500


class AdapterError(Exception):
    """Base class for failures talking to an external chess platform."""

    error_code = HTTP_ERROR


class AdapterTransportError(AdapterError):
    """Network failure or timeout talking to a platform."""

    error_code = TRANSPORT_ERROR


class AdapterHttpError(AdapterError, requests.HTTPError):
    """Non-success HTTP status returned by a platform."""

    error_code = HTTP_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response: requests.Response | None = None,
    ) -> None:
        super().__init__(message, response=response)
        self.status_code = status_code


class AdapterAuthError(AdapterHttpError):
    """Platform rejected the supplied credentials (401/403)."""

    error_code = AUTH_ERROR


class RateLimitError(AdapterHttpError):
    """HTTP rate limit error."""

    error_code = RATE_LIMIT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = 429,
        response: requests.Response | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, response=response)
        self.retry_after = retry_after


class MalformedDataWarning(UserWarning):
    """Unparseable record inside an otherwise successful response."""


class ConfigurationError(ValueError):
    """Missing or invalid configuration for an operation."""

    error_code = CONFIGURATION_ERROR


class PersistenceError(Exception):
    """Failure reading or writing the stats store."""

    error_code = PERSISTENCE_ERROR


class InvalidRequestError(ValueError):
    """Caller supplied an unusable request, e.g. an unknown platform."""


class NotFoundError(LookupError):
    """Requested connection or player does not exist."""


def classify_error(exc: BaseException) -> str:
    """Return the outcome error code for an exception."""
    code = getattr(exc, "error_code", None)
    if isinstance(code, str):
        return code
    message = str(exc).lower()
    if "429" in message or "rate limit" in message:
        return RATE_LIMIT
    return INTERNAL_ERROR


def truncate_error_message(exc: BaseException | str) -> str:
    """Return an error message bounded for storage."""
    message = str(exc) or type(exc).__name__
    return message[:ERROR_MESSAGE_MAX_LENGTH]


__all__ = [
    "AUTH_ERROR",
    "CONFIGURATION_ERROR",
    "ERROR_MESSAGE_MAX_LENGTH",
    "HTTP_ERROR",
    "INTERNAL_ERROR",
    "PERSISTENCE_ERROR",
    "RATE_LIMIT",
    "TRANSPORT_ERROR",
    "USERNAME_MISSING",
    "AdapterAuthError",
    "AdapterError",
    "AdapterHttpError",
    "AdapterTransportError",
    "ConfigurationError",
    "InvalidRequestError",
    "MalformedDataWarning",
    "NotFoundError",
    "PersistenceError",
    "RateLimitError",
    "classify_error",
    "truncate_error_message",
]
