"""API clients package for the remote search service."""

from .base import (
    ApiRequest,
    ApiResponse,
    BaseTransport,
    AiohttpTransport
)

from .swiftype import (
    SwiftypeAPI,
    Engine,
    DocumentType,
    DEFAULT_BASE_URL
)

__all__ = [
    # Transport
    "ApiRequest",
    "ApiResponse",
    "BaseTransport",
    "AiohttpTransport",

    # Search service
    "SwiftypeAPI",
    "Engine",
    "DocumentType",
    "DEFAULT_BASE_URL"
]
