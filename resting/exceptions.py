"""
Defines custom exceptions for the library to allow for more specific error handling.
"""


class RestingError(Exception):
    """Base exception for all library-specific errors."""

    default_message = "Unknown error."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class UrlMalformedError(RestingError):
    """Raised when a URL string cannot be turned into a complete URL."""

    default_message = "URL malformed."


class WrongParameterTypeError(RestingError):
    """Raised when a request body is attached to a method that cannot carry one."""

    default_message = "Wrong parameter type."


class StatusCodeError(RestingError):
    """
    Raised when the server answers with a status code outside the 2xx range.

    The response body, if any, stays attached for the caller to inspect.
    """

    def __init__(self, status_code: int, body: bytes | None = None):
        super().__init__(f"HTTP returned unexpected {status_code} code.")
        self.status_code = status_code
        self.body = body


class UnknownError(RestingError):
    """Raised when a response carries no usable HTTP metadata."""


class DownloadCancelledError(RestingError):
    """Raised (or reported) when an in-flight download is cancelled."""

    default_message = "Download cancelled."


class DownloadInProgressError(RestingError):
    """Raised when a download is started while another one is still active."""

    default_message = "A download is already in progress."


class ConfigurationError(RestingError):
    """Raised for issues related to configuration loading or validation."""
