"""resting - declarative requests, validated responses and downloads over aiohttp."""

from resting.api import AiohttpTransport, RestClient, Transport
from resting.exceptions import (
    DownloadCancelledError,
    DownloadInProgressError,
    RestingError,
    StatusCodeError,
    UnknownError,
    UrlMalformedError,
    WrongParameterTypeError,
)
from resting.models import (
    ClientConfiguration,
    HTTPEncoding,
    HTTPMethod,
    ObjectParameters,
    RawBytes,
    RequestConfiguration,
)

__version__ = "0.1.0"
