"""FileMaker Data API client package."""

from .client import DataApiClient
from .config import Settings
from .errors import (
    DataApiError,
    HeaderNotFoundError,
    MalformedStatusError,
    NotAuthenticatedError,
    ServiceError,
    TransportError,
)
from .response import ResponseEnvelope
from .session import Session
from .transport import FileUpload, RequestOptions, RequestTransport

__all__ = [
    "DataApiClient",
    "DataApiError",
    "FileUpload",
    "HeaderNotFoundError",
    "MalformedStatusError",
    "NotAuthenticatedError",
    "RequestOptions",
    "RequestTransport",
    "ResponseEnvelope",
    "ServiceError",
    "Session",
    "Settings",
    "TransportError",
]
