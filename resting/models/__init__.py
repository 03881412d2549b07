"""
Data Models Layer.

This package contains the value types describing requests and responses, and
the Pydantic model holding client configuration.
"""

from .config import ClientConfiguration
from .request import (
    BuiltRequest,
    ContentType,
    HTTPEncoding,
    HTTPMethod,
    ObjectParameters,
    RawBytes,
    RequestConfiguration,
    ResponseEnvelope,
)

__all__ = [
    "BuiltRequest",
    "ClientConfiguration",
    "ContentType",
    "HTTPEncoding",
    "HTTPMethod",
    "ObjectParameters",
    "RawBytes",
    "RequestConfiguration",
    "ResponseEnvelope",
]
