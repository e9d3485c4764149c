# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Chained request/response configuration.

A `ChainedConfig` is one level of configuration: the library root, a client,
or a single request. Each level points at its parent, and every `actual_*`
accessor resolves the effective value by walking from the level it is called
on towards the root:

- scalar fields (content type, charset, body, auth, codecs, handlers) take the
  most specific value that is set;
- headers and cookies are merged over the whole chain, child entries
  overriding parent entries with the same key.

Levels created with `thread_safe=True` replace their containers copy-on-write
under a lock, so a client-level config can be read by in-flight requests while
it is still being configured. Request levels use plain fields.
"""

from __future__ import annotations

import codecs
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from .cookies import Cookie, merge_cookies
from .errors import ConfigurationError, FrozenConfigError
from .headers import merge_headers
from .registry import ContentTypeRegistry
from .uri import UriBuilder

if TYPE_CHECKING:
    from .models import FromServer, ToServer

N = TypeVar("N")
V = TypeVar("V")

Encoder = Callable[["ChainedConfig", "ToServer"], None]
Parser = Callable[["ChainedConfig", "FromServer"], Any]
Handler = Callable[["FromServer", Any], Any]
ExceptionHandler = Callable[[BaseException], Any]


class HttpVerb(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"


class Status(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class AuthType(str, Enum):
    BASIC = "BASIC"
    DIGEST = "DIGEST"


@dataclass(frozen=True)
class Auth:
    auth_type: AuthType
    user: str
    password: str
    preemptive: bool = False


def traverse(
    node: N | None,
    parent_of: Callable[[N], N | None],
    value_of: Callable[[N], V | None],
    accept: Callable[[V | None], bool] = lambda value: value is not None,
) -> V | None:
    """Return the first accepted value walking from `node` through its parents."""
    while node is not None:
        value = value_of(node)
        if accept(value):
            return value
        node = parent_of(node)
    return None


class _Level:
    """Shared plumbing for one mutable level of the chain."""

    def __init__(self, parent, thread_safe: bool):
        self._parent = parent
        self._thread_safe = thread_safe
        self._lock = threading.RLock() if thread_safe else nullcontext()
        self._frozen = False

    @property
    def parent(self):
        return self._parent

    @property
    def thread_safe(self) -> bool:
        return self._thread_safe

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenConfigError(f"{type(self).__name__} is frozen and cannot be modified")

    def chain(self) -> Iterator[Any]:
        node = self
        while node is not None:
            yield node
            node = node._parent


class ChainedRequest(_Level):
    """Request half of a configuration level."""

    def __init__(self, parent: ChainedRequest | None = None, *, thread_safe: bool = False):
        super().__init__(parent, thread_safe)
        self._uri = UriBuilder(parent.uri if parent is not None else None, thread_safe=thread_safe)
        self._content_type: str | None = None
        self._charset: str | None = None
        self._headers: dict[str, str] = {}
        self._body: Any = None
        self._cookies: list[Cookie] = []
        self._auth: Auth | None = None
        self._encoders: ContentTypeRegistry[Encoder] = ContentTypeRegistry(thread_safe=thread_safe)
        self._verb: HttpVerb | None = None

    def freeze(self) -> None:
        super().freeze()
        self._uri.freeze()

    @property
    def uri(self) -> UriBuilder:
        return self._uri

    def set_uri(self, value: str) -> ChainedRequest:
        self._check_mutable()
        self._uri.set_full(value)
        return self

    def set_raw(self, value: str) -> ChainedRequest:
        self._check_mutable()
        self._uri.set_raw(value)
        return self

    @property
    def content_type(self) -> str | None:
        return self._content_type

    @content_type.setter
    def content_type(self, value: str | None) -> None:
        self._check_mutable()
        self._content_type = value

    @property
    def charset(self) -> str | None:
        return self._charset

    @charset.setter
    def charset(self, value: str | None) -> None:
        self._check_mutable()
        if value is not None:
            try:
                value = codecs.lookup(value).name
            except LookupError as exc:
                raise ConfigurationError(f"Unknown charset: {value}") from exc
        self._charset = value

    @property
    def body(self) -> Any:
        return self._body

    @body.setter
    def body(self, value: Any) -> None:
        self._check_mutable()
        self._body = value

    @property
    def headers(self) -> dict[str, str]:
        """Headers set at this level only."""
        return dict(self._headers)

    def set_headers(self, headers: Mapping[str, Any] | None) -> ChainedRequest:
        """Add headers at this level, replacing same-named local entries."""
        self._check_mutable()
        if not headers:
            return self
        with self._lock:
            updated = dict(self._headers)
            for key, value in headers.items():
                updated[str(key)] = str(value)
            self._headers = updated
        return self

    def header(self, name: str, value: Any) -> ChainedRequest:
        return self.set_headers({name: value})

    def set_accept(self, values: str | Iterable[str]) -> ChainedRequest:
        if isinstance(values, str):
            return self.header("Accept", values)
        return self.header("Accept", ", ".join(values))

    @property
    def cookies(self) -> list[Cookie]:
        return list(self._cookies)

    def cookie(self, name: str, value: str, expires: datetime | None = None) -> ChainedRequest:
        self._check_mutable()
        cookie = Cookie(name, value, expires)
        with self._lock:
            self._cookies = [*self._cookies, cookie]
        return self

    @property
    def auth(self) -> Auth | None:
        return self._auth

    def basic(self, user: str, password: str, preemptive: bool = False) -> ChainedRequest:
        self._check_mutable()
        self._auth = Auth(AuthType.BASIC, user, password, preemptive)
        return self

    def digest(self, user: str, password: str, preemptive: bool = False) -> ChainedRequest:
        self._check_mutable()
        self._auth = Auth(AuthType.DIGEST, user, password, preemptive)
        return self

    @property
    def verb(self) -> HttpVerb | None:
        return self._verb

    @verb.setter
    def verb(self, value: HttpVerb | str | None) -> None:
        self._check_mutable()
        self._verb = HttpVerb(value) if value is not None else None

    def encoder(self, content_types: str | Iterable[str], fn: Encoder | None = None) -> Encoder | None:
        """
        Look up (one argument) or register (two arguments) a local encoder.

        Registering under an iterable of content types installs the same
        function under every key at once.
        """
        if fn is None:
            return self._encoders.get(content_types)  # type: ignore[arg-type]
        self._check_mutable()
        self._encoders.register(content_types, fn)
        return fn

    def actual_content_type(self) -> str | None:
        return traverse(self, _parent, lambda cr: cr._content_type)

    def actual_charset(self) -> str | None:
        return traverse(self, _parent, lambda cr: cr._charset)

    def actual_body(self) -> Any:
        return traverse(self, _parent, lambda cr: cr._body)

    def actual_auth(self) -> Auth | None:
        return traverse(self, _parent, lambda cr: cr._auth)

    def actual_verb(self) -> HttpVerb | None:
        return traverse(self, _parent, lambda cr: cr._verb)

    def actual_encoder(self, content_type: str | None) -> Encoder | None:
        return traverse(self, _parent, lambda cr: cr._encoders.get(content_type))

    def actual_headers(self) -> dict[str, str]:
        return merge_headers(cr._headers for cr in reversed(list(self.chain())))

    def actual_cookies(self) -> list[Cookie]:
        return merge_cookies(cr._cookies for cr in reversed(list(self.chain())))


class ChainedResponse(_Level):
    """Response half of a configuration level."""

    def __init__(self, parent: ChainedResponse | None = None, *, thread_safe: bool = False):
        super().__init__(parent, thread_safe)
        self._by_code: dict[int, Handler] = {}
        self._success: Handler | None = None
        self._failure: Handler | None = None
        self._exception: ExceptionHandler | None = None
        self._parsers: ContentTypeRegistry[Parser] = ContentTypeRegistry(thread_safe=thread_safe)
        self._type: type | None = None

    @staticmethod
    def _code(code: int | str) -> int:
        try:
            return int(code)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid status code: {code!r}") from exc

    def when(self, code: int | str | Status | Iterable[int | str], fn: Handler | None = None) -> Handler | None:
        """
        Look up (one argument) or register (two arguments) a status handler.

        `Status.SUCCESS` / `Status.FAILURE` register the bucket handlers; an
        iterable registers the same handler for several codes. Lookup only
        consults this level's exact-code map.
        """
        if fn is None:
            return self._by_code.get(self._code(code))  # type: ignore[arg-type]
        self._check_mutable()
        if code is Status.SUCCESS:
            self._success = fn
        elif code is Status.FAILURE:
            self._failure = fn
        else:
            codes = [code] if isinstance(code, (int, str)) else list(code)  # type: ignore[arg-type]
            with self._lock:
                updated = dict(self._by_code)
                for item in codes:
                    updated[self._code(item)] = fn
                self._by_code = updated
        return fn

    def success(self, fn: Handler) -> Handler:
        self._check_mutable()
        self._success = fn
        return fn

    def failure(self, fn: Handler) -> Handler:
        self._check_mutable()
        self._failure = fn
        return fn

    def exception(self, fn: ExceptionHandler) -> ExceptionHandler:
        self._check_mutable()
        self._exception = fn
        return fn

    @property
    def success_handler(self) -> Handler | None:
        return self._success

    @property
    def failure_handler(self) -> Handler | None:
        return self._failure

    @property
    def exception_handler(self) -> ExceptionHandler | None:
        return self._exception

    @property
    def type(self) -> type | None:
        return self._type

    @type.setter
    def type(self, value: type | None) -> None:
        self._check_mutable()
        self._type = value

    def parser(self, content_types: str | Iterable[str], fn: Parser | None = None) -> Parser | None:
        """Look up (one argument) or register (two arguments) a local parser."""
        if fn is None:
            return self._parsers.get(content_types)  # type: ignore[arg-type]
        self._check_mutable()
        self._parsers.register(content_types, fn)
        return fn

    def actual_action(self, code: int) -> Handler | None:
        """
        Resolve the handler for a status code.

        Exact-code handlers anywhere in the chain win over success/failure
        buckets, even when the bucket handler sits on a more specific level.
        """
        exact = traverse(self, _parent, lambda cr: cr._by_code.get(code))
        if exact is not None:
            return exact
        if code < 400:
            return traverse(self, _parent, lambda cr: cr._success)
        return traverse(self, _parent, lambda cr: cr._failure)

    def actual_exception(self) -> ExceptionHandler | None:
        return traverse(self, _parent, lambda cr: cr._exception)

    def actual_parser(self, content_type: str | None) -> Parser | None:
        return traverse(self, _parent, lambda cr: cr._parsers.get(content_type))

    def actual_type(self) -> type | None:
        return traverse(self, _parent, lambda cr: cr._type)


def _parent(level: Any) -> Any:
    return level._parent


class ChainedConfig(_Level):
    """One level (root, client or request) of the configuration chain."""

    def __init__(self, parent: ChainedConfig | None = None, *, thread_safe: bool = False):
        super().__init__(parent, thread_safe)
        self._request = ChainedRequest(parent.request if parent is not None else None, thread_safe=thread_safe)
        self._response = ChainedResponse(parent.response if parent is not None else None, thread_safe=thread_safe)
        self._context: dict[tuple[str, Any], Any] = {}

    @property
    def request(self) -> ChainedRequest:
        return self._request

    @property
    def response(self) -> ChainedResponse:
        return self._response

    def derive(self, *, thread_safe: bool = False) -> ChainedConfig:
        """Create a child level that inherits from this one."""
        return ChainedConfig(self, thread_safe=thread_safe)

    def configure(self, fn: Callable[[ChainedConfig], Any] | None) -> ChainedConfig:
        """Apply a caller-supplied mutation to this level and return it."""
        if fn is not None:
            self._check_mutable()
            fn(self)
        return self

    def freeze(self) -> None:
        super().freeze()
        self._request.freeze()
        self._response.freeze()

    def context(self, content_type: str, context_id: Any, value: Any) -> None:
        """Store an auxiliary object for codecs of one content type."""
        self._check_mutable()
        with self._lock:
            self._context = {**self._context, (content_type, context_id): value}

    def actual_context(self, content_type: str, context_id: Any) -> Any:
        key = (content_type, context_id)
        return traverse(self, _parent, lambda config: config._context.get(key))

    def find_content_type(self) -> str:
        content_type = self._request.actual_content_type()
        if content_type is None:
            raise ConfigurationError("Found request body, but content type is undefined")
        return content_type

    def find_encoder(self, content_type: str | None = None) -> Encoder:
        """Return the encoder for `content_type` (default: the resolved request content type)."""
        if content_type is None:
            content_type = self.find_content_type()
        encoder = self._request.actual_encoder(content_type)
        if encoder is None:
            raise ConfigurationError(f"Could not find encoder for content-type ({content_type})")
        return encoder

    def find_parser(self, content_type: str | None) -> Parser:
        """Return the parser for a response content type, raw bytes when none is registered."""
        found = self._response.actual_parser(content_type)
        if found is not None:
            return found
        from .handlers import parse_bytes

        return parse_bytes

    def find_charset(self) -> str:
        from .content_types import DEFAULT_CHARSET

        return self._request.actual_charset() or DEFAULT_CHARSET


__all__ = [
    "Auth",
    "AuthType",
    "ChainedConfig",
    "ChainedRequest",
    "ChainedResponse",
    "Encoder",
    "ExceptionHandler",
    "Handler",
    "HttpVerb",
    "Parser",
    "Status",
    "traverse",
]
