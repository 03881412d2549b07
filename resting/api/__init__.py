"""
HTTP Layer.

This package builds requests, validates responses and runs them through a
transport.
"""

from .builder import build_request, parse_url
from .validator import decode_json, validate_response
from .transport import AiohttpTransport, Transport
from .client import RestClient

__all__ = [
    "AiohttpTransport",
    "RestClient",
    "Transport",
    "build_request",
    "decode_json",
    "parse_url",
    "validate_response",
]
