# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import FromServer


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NONE = "NONE"


class ChainHttpError(Exception):
    """Base class for every error raised by chainhttp."""


class ConfigurationError(ChainHttpError):
    """The configuration chain cannot describe an executable request."""


class InvalidUriError(ConfigurationError):
    """The merged URI fields do not form a syntactically valid URI."""


class FrozenConfigError(ConfigurationError):
    """A configuration node was modified after it was executed."""


class TransportError(ChainHttpError):
    """A failure raised by the transport adapter while talking to the server."""

    def __init__(self, message: str, *, category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR):
        super().__init__(message)
        self.category = category

    @classmethod
    def wrap(cls, exc: BaseException) -> TransportError:
        if isinstance(exc, TransportError):
            return exc
        wrapped = cls(str(exc) or type(exc).__name__, category=categorize_exception(exc))
        wrapped.__cause__ = exc
        return wrapped


class ParserError(ChainHttpError):
    """A registered response parser raised while decoding the body."""

    def __init__(self, content_type: str, cause: BaseException, *, truncated: bool = False):
        message = f"Failed to parse response body as {content_type}: {cause}"
        if truncated:
            message += " (body was truncated at the size limit)"
        super().__init__(message)
        self.content_type = content_type
        self.truncated = truncated
        self.__cause__ = cause


class HttpException(ChainHttpError):
    """Raised for failure status codes that no handler dealt with."""

    def __init__(self, from_server: FromServer, body: Any = None):
        super().__init__(from_server.message or f"HTTP {from_server.status_code}")
        self.from_server = from_server
        self.body = body

    @property
    def status_code(self) -> int:
        return self.from_server.status_code

    @property
    def headers(self) -> list:
        return self.from_server.headers


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    import socket
    import ssl as ssl_module

    import httpx

    if isinstance(exc, (httpx.TimeoutException, TimeoutError, socket.timeout)):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(
        exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)
    ):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.TIMEOUT: "Network timeout",
        ErrorCategory.SSL_ERROR: "TLS/certificate issue",
        ErrorCategory.CONNECTION_ERROR: "Network connectivity issue",
        ErrorCategory.DNS_ERROR: "DNS resolution failure",
        ErrorCategory.UNKNOWN_ERROR: "Transport error",
        ErrorCategory.NONE: "",
        None: "",
    }
    return mapping.get(category, "Request failed due to a transport error")


__all__ = [
    "ChainHttpError",
    "ConfigurationError",
    "ErrorCategory",
    "FrozenConfigError",
    "HttpException",
    "InvalidUriError",
    "ParserError",
    "TransportError",
    "categorize_exception",
    "error_category_to_reason",
]
