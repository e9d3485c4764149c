# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
chainhttp package entrypoint.

Requests and responses are described by a chain of configuration levels
(library root, client, request). Each level overrides or extends its parent:
URI parts, headers, cookies, auth, content-type keyed encoders and parsers,
and status-code handlers. The wire transport is injectable; the default one
is backed by httpx.
"""

from .builder import HttpBuilder
from .chain import Auth, AuthType, ChainedConfig, ChainedRequest, ChainedResponse, HttpVerb, Status
from .config import HttpSettings, load_http_settings
from .content_types import ContentTypes
from .cookies import Cookie, CookieStore
from .defaults import basic, root, thread_safe
from .errors import (
    ChainHttpError,
    ConfigurationError,
    ErrorCategory,
    FrozenConfigError,
    HttpException,
    InvalidUriError,
    ParserError,
    TransportError,
)
from .headers import Header
from .httpx_transport import HttpxTransport
from .log import setup_logging
from .models import FromServer, HttpRequest, ToServer
from .multipart import MultipartContent, MultipartPart
from .object_config import HttpObjectConfig
from .registry import Capability, ContentTypeRegistry
from .transport import StubTransport, Transport, create_default_transport
from .uri import UriBuilder
from .version import __version__

__all__ = [
    "Auth",
    "AuthType",
    "Capability",
    "ChainHttpError",
    "ChainedConfig",
    "ChainedRequest",
    "ChainedResponse",
    "ConfigurationError",
    "ContentTypeRegistry",
    "ContentTypes",
    "Cookie",
    "CookieStore",
    "ErrorCategory",
    "FromServer",
    "FrozenConfigError",
    "Header",
    "HttpBuilder",
    "HttpException",
    "HttpObjectConfig",
    "HttpRequest",
    "HttpSettings",
    "HttpVerb",
    "HttpxTransport",
    "InvalidUriError",
    "MultipartContent",
    "MultipartPart",
    "ParserError",
    "Status",
    "StubTransport",
    "ToServer",
    "Transport",
    "TransportError",
    "UriBuilder",
    "basic",
    "create_default_transport",
    "load_http_settings",
    "root",
    "setup_logging",
    "thread_safe",
    "__version__",
]
