"""
Value types describing an HTTP call before and after it is built, and the raw
response handed back by a transport.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from multidict import CIMultiDict
from yarl import URL


class HTTPMethod(str, Enum):
    """HTTP request methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class HTTPEncoding(str, Enum):
    """How object parameters become a request body for non-GET requests."""

    JSON = "json"
    URL_ENCODED = "url_encoded"


class HTTPHeader(str, Enum):
    CONTENT_TYPE = "Content-Type"


class ContentType(str, Enum):
    """Content type values emitted by the request builder."""

    JSON = "application/json"
    # Not the registered form type; kept as-is for servers that expect it.
    URL_ENCODED = "application/x-www--form-urlencoded"


@dataclass(frozen=True)
class ObjectParameters:
    """A key/value parameter set, sent as query items or an encoded body."""

    values: Mapping[str, Any]


@dataclass(frozen=True)
class RawBytes:
    """A pre-encoded request body, sent verbatim."""

    data: bytes


BodySource = ObjectParameters | RawBytes


@dataclass(frozen=True)
class RequestConfiguration:
    """
    Declarative description of a single HTTP call.

    ``body`` accepts an ``ObjectParameters``/``RawBytes`` instance, or a plain
    mapping or bytes object which is wrapped accordingly.

    Example:
        RequestConfiguration(
            "https://api.example.com/items",
            method=HTTPMethod.POST,
            body={"name": "widget"},
            encoding=HTTPEncoding.JSON,
        )
    """

    url_string: str
    method: HTTPMethod = HTTPMethod.GET
    body: BodySource | None = None
    headers: Mapping[str, str] | None = None
    encoding: HTTPEncoding = HTTPEncoding.URL_ENCODED

    def __post_init__(self):
        body = self.body
        if isinstance(body, (bytes, bytearray, memoryview)):
            object.__setattr__(self, "body", RawBytes(bytes(body)))
        elif isinstance(body, Mapping):
            object.__setattr__(self, "body", ObjectParameters(dict(body)))
        elif body is not None and not isinstance(body, (ObjectParameters, RawBytes)):
            raise TypeError(
                f"body must be a mapping, bytes, ObjectParameters or RawBytes, "
                f"not {type(body).__name__}"
            )
        object.__setattr__(self, "method", HTTPMethod(self.method))
        object.__setattr__(self, "encoding", HTTPEncoding(self.encoding))


@dataclass(frozen=True)
class BuiltRequest:
    """A fully resolved request, ready for a transport to execute."""

    url: URL
    method: HTTPMethod
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    body: bytes | None = None


@dataclass(frozen=True)
class ResponseEnvelope:
    """
    Response body paired with its metadata.

    ``status`` is None when the transport produced a response that is not
    HTTP-shaped.
    """

    body: bytes | None
    status: int | None
    headers: Mapping[str, str] = field(default_factory=dict)
