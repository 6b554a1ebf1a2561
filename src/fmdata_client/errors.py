"""Error taxonomy for the FileMaker Data API client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Service error code returned by `_find` when nothing matches the query.
NO_RECORDS_MATCH = 401

# Service error code for an expired or unknown session token.
INVALID_TOKEN = 952


@dataclass(slots=True, eq=False)
class DataApiError(Exception):
    """Base class for every failure surfaced by this package."""

    message: str
    code: int = 0

    def __str__(self) -> str:
        return self.message


class TransportError(DataApiError):
    """The request never produced an HTTP response (connection, DNS, TLS, timeout)."""


@dataclass(eq=False)
class ServiceError(DataApiError):
    """The service answered with a failure status.

    ``code`` is the service's own error code when the body carries one, otherwise
    the HTTP status. ``http_status`` always holds the HTTP status.
    """

    http_status: int = 0

    @property
    def no_records(self) -> bool:
        return self.code == NO_RECORDS_MATCH


class HeaderNotFoundError(DataApiError, KeyError):
    """Requested response header is absent in both exact and lower case."""


class MalformedStatusError(DataApiError, ValueError):
    """The ``Status`` header has no numeric second token."""


class NotAuthenticatedError(DataApiError):
    """An authenticated operation was attempted without a session token."""


def translate_service_error(error: DataApiError) -> dict[str, Any]:
    """Convert a client error into a plain payload for logging or forwarding."""

    http_status = error.http_status if isinstance(error, ServiceError) else None
    return {
        "code": error.code,
        "message": error.message,
        "http_status": http_status,
        "no_records": isinstance(error, ServiceError) and error.no_records,
        "transport": isinstance(error, TransportError),
    }
