"""
Checks transport responses for a successful HTTP status and decodes JSON bodies.
"""

from typing import Any, TypeVar

from pydantic import TypeAdapter

from resting.exceptions import StatusCodeError, UnknownError
from resting.models.request import ResponseEnvelope

T = TypeVar("T")


def validate_response(envelope: ResponseEnvelope) -> bytes:
    """
    Returns the response body if the status code is in the 2xx range.

    Raises:
        UnknownError: If the envelope carries no HTTP status.
        StatusCodeError: If the status code is outside [200, 300). The body,
        if any, is attached to the error.
    """
    if envelope.status is None:
        raise UnknownError()
    if not 200 <= envelope.status < 300:
        raise StatusCodeError(envelope.status, envelope.body)
    return envelope.body if envelope.body is not None else b""


def decode_json(data: bytes, shape: type[T] | Any, strict: bool = False) -> T:
    """
    Validates JSON bytes into ``shape``.

    ``shape`` may be any type pydantic understands: models, dataclasses,
    TypedDicts or plain builtins. Validation errors propagate unchanged.
    """
    return TypeAdapter(shape).validate_json(data, strict=strict)
