"""
Turns a declarative RequestConfiguration into a wire-ready BuiltRequest.
"""

import json
import logging
import unicodedata
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode

from multidict import CIMultiDict
from yarl import URL

from resting.exceptions import UrlMalformedError, WrongParameterTypeError
from resting.models.request import (
    BuiltRequest,
    ContentType,
    HTTPEncoding,
    HTTPHeader,
    HTTPMethod,
    ObjectParameters,
    RawBytes,
    RequestConfiguration,
)

log = logging.getLogger(__name__)

# Control, unassigned/noncharacter, private-use and surrogate code points.
_FORBIDDEN_CATEGORIES = frozenset({"Cc", "Cn", "Co", "Cs"})
_REPLACEMENT_CHARACTER = "�"


def _contains_forbidden_characters(url_string: str) -> bool:
    for ch in url_string:
        if ch.isspace() or ch == _REPLACEMENT_CHARACTER:
            return True
        if unicodedata.category(ch) in _FORBIDDEN_CATEGORIES:
            return True
    return False


def parse_url(url_string: str) -> URL:
    """
    Parses a URL string into a complete, absolute URL.

    Raises:
        UrlMalformedError: If the string is empty, holds characters that cannot
        appear in a URL, fails to parse, or lacks a scheme or host.
    """
    if not url_string or _contains_forbidden_characters(url_string):
        raise UrlMalformedError()

    try:
        url = URL(url_string)
    except (ValueError, TypeError) as e:
        raise UrlMalformedError() from e

    if not url.scheme or not url.host:
        raise UrlMalformedError()
    return url


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_pairs(parameters: Mapping[str, Any]) -> list[tuple[str, str]]:
    return [(str(key), _stringify(value)) for key, value in parameters.items()]


def _encode_form(parameters: Mapping[str, Any]) -> bytes:
    """Percent-encodes every key and value and joins the pairs with '&'."""
    return urlencode(_as_pairs(parameters), quote_via=quote).encode("utf-8")


def _encode_json(parameters: Mapping[str, Any]) -> bytes:
    return json.dumps(dict(parameters), ensure_ascii=False, separators=(",", ":")).encode(
        "utf-8"
    )


def build_request(config: RequestConfiguration) -> BuiltRequest:
    """
    Builds a request from its configuration.

    GET parameters become query items; for other methods the configured
    encoding decides how parameters turn into the body and which content type
    is set. Caller headers are added on top of the synthesized ones, so a
    caller ``Content-Type`` results in two values rather than a replacement.

    Raises:
        UrlMalformedError: If the URL string is not a complete URL.
        WrongParameterTypeError: If raw bytes are supplied for a GET request.
    """
    url = parse_url(config.url_string)
    headers: CIMultiDict = CIMultiDict()
    body: bytes | None = None
    source = config.body

    if config.method is HTTPMethod.GET:
        if isinstance(source, RawBytes):
            raise WrongParameterTypeError()
        if isinstance(source, ObjectParameters) and source.values:
            url = url.with_query(
                list(url.query.items()) + _as_pairs(source.values)
            )
    elif source is not None:
        if config.encoding is HTTPEncoding.JSON:
            content_type = ContentType.JSON
            if isinstance(source, ObjectParameters):
                body = _encode_json(source.values)
            else:
                body = source.data
        else:
            content_type = ContentType.URL_ENCODED
            if isinstance(source, ObjectParameters):
                body = _encode_form(source.values)
            else:
                body = source.data
        headers.add(HTTPHeader.CONTENT_TYPE.value, content_type.value)

    if config.headers:
        for key, value in config.headers.items():
            headers.add(key, value)

    log.debug(f"Built {config.method.value} request for {url}")
    return BuiltRequest(url=url, method=config.method, headers=headers, body=body)
