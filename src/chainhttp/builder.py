# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
HttpBuilder: verb dispatch over the configuration chain.

    http = HttpBuilder.configure(lambda c: c.request.set_uri("https://example.com"))
    data = http.get(lambda c: c.request.uri.set_path("/api/items"))

Each verb call derives a request-level config from the client config, applies
the caller's configure callback, then hands it to the verb's interceptor.
The interceptor's continuation resolves everything from the chain, encodes
the body, runs the transport and pushes the response through the parser and
status handler pipeline.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, TypeVar

from . import defaults, handlers
from .chain import ChainedConfig, HttpVerb
from .config import HttpSettings, load_http_settings
from .content_types import ContentTypes
from .cookies import CookieStore, NullCookieStore, merge_cookies
from .errors import ConfigurationError, ParserError, TransportError
from .headers import header_value
from .models import FromServer, HttpRequest, ToServer
from .object_config import HttpObjectConfig
from .transport import Transport, create_default_transport

logger = logging.getLogger(__name__)

T = TypeVar("T")
Configure = Callable[[ChainedConfig], Any]


def _cast(result: Any, result_type: type | None) -> Any:
    if result_type is None or result is None:
        return result
    if not isinstance(result, result_type):
        raise TypeError(f"Expected result of type {result_type.__name__}, got {type(result).__name__}")
    return result


class HttpBuilder:
    """Configured HTTP client; create one with `HttpBuilder.configure`."""

    def __init__(
        self,
        object_config: HttpObjectConfig,
        transport: Transport,
        settings: HttpSettings | None = None,
    ):
        self._object_config = object_config
        self._transport = transport
        self._settings = settings or HttpSettings()
        self._cookie_store: CookieStore = CookieStore() if object_config.client.cookies_enabled else NullCookieStore()
        self._lock = threading.Lock()
        self._owned_executor: ThreadPoolExecutor | None = None

    @classmethod
    def configure(
        cls,
        fn: Callable[[HttpObjectConfig], Any] | None = None,
        *,
        transport: Transport | None = None,
        settings: HttpSettings | None = None,
    ) -> HttpBuilder:
        """Build a client: `fn` receives the client-level `HttpObjectConfig`."""
        settings = settings or load_http_settings()
        object_config = HttpObjectConfig(settings, parent=defaults.root())
        if fn is not None:
            fn(object_config)
        return cls(object_config, transport or create_default_transport(settings), settings)

    @property
    def object_config(self) -> HttpObjectConfig:
        return self._object_config

    @property
    def cookie_store(self) -> CookieStore:
        return self._cookie_store

    @property
    def transport(self) -> Transport:
        return self._transport

    # -- verbs -------------------------------------------------------------

    def request(self, verb: HttpVerb | str, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        """Execute `verb` with a request-level config customised by `fn`."""
        verb = HttpVerb(verb.upper() if isinstance(verb, str) else verb)
        config = defaults.request_level(self._object_config.chained_config)
        config.request.verb = verb
        config.configure(fn)
        result = self.dispatch(verb, config)
        return _cast(result, result_type or config.response.actual_type())

    def request_async(
        self, verb: HttpVerb | str, fn: Configure | None = None, *, result_type: type[T] | None = None
    ) -> Future:
        return self._executor().submit(self.request, verb, fn, result_type=result_type)

    def get(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        return self.request(HttpVerb.GET, fn, result_type=result_type)

    def get_async(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Future:
        return self.request_async(HttpVerb.GET, fn, result_type=result_type)

    def head(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        return self.request(HttpVerb.HEAD, fn, result_type=result_type)

    def head_async(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Future:
        return self.request_async(HttpVerb.HEAD, fn, result_type=result_type)

    def post(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        return self.request(HttpVerb.POST, fn, result_type=result_type)

    def post_async(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Future:
        return self.request_async(HttpVerb.POST, fn, result_type=result_type)

    def put(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        return self.request(HttpVerb.PUT, fn, result_type=result_type)

    def put_async(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Future:
        return self.request_async(HttpVerb.PUT, fn, result_type=result_type)

    def delete(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        return self.request(HttpVerb.DELETE, fn, result_type=result_type)

    def delete_async(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Future:
        return self.request_async(HttpVerb.DELETE, fn, result_type=result_type)

    def patch(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        return self.request(HttpVerb.PATCH, fn, result_type=result_type)

    def patch_async(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Future:
        return self.request_async(HttpVerb.PATCH, fn, result_type=result_type)

    def options(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        return self.request(HttpVerb.OPTIONS, fn, result_type=result_type)

    def options_async(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Future:
        return self.request_async(HttpVerb.OPTIONS, fn, result_type=result_type)

    def trace(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Any:
        return self.request(HttpVerb.TRACE, fn, result_type=result_type)

    def trace_async(self, fn: Configure | None = None, *, result_type: type[T] | None = None) -> Future:
        return self.request_async(HttpVerb.TRACE, fn, result_type=result_type)

    # -- execution ---------------------------------------------------------

    def dispatch(self, verb: HttpVerb, config: ChainedConfig) -> Any:
        """Run the verb's interceptor around the execution pipeline; freezes `config` afterwards."""
        interceptor = self._object_config.execution.interceptor_for(verb)
        try:
            return interceptor(config, self._execute)
        finally:
            config.freeze()

    def _execute(self, config: ChainedConfig) -> Any:
        request = self._build_request(config)
        logger.debug("%s %s", request.method, request.url)
        try:
            from_server = self._transport.execute(request)
        except Exception as exc:  # noqa: BLE001
            return self._handle_exception(config, TransportError.wrap(exc))

        try:
            return self._handle_response(config, from_server)
        except ParserError as exc:
            return self._handle_exception(config, exc)
        finally:
            from_server.finish()

    def _build_request(self, config: ChainedConfig) -> HttpRequest:
        cr = config.request
        if not cr.uri.is_absolute():
            raise ConfigurationError(f"Request URI is not absolute: {cr.uri.to_uri()!r}")
        url = cr.uri.to_uri()
        headers = cr.actual_headers()

        content: bytes | None = None
        if cr.actual_body() is not None:
            content_type = config.find_content_type()
            encoder = config.find_encoder(content_type)
            sink = ToServer(content_type)
            encoder(config, sink)
            content = sink.content
            if not header_value(headers, "Content-Type"):
                if sink.content_type != content_type:
                    headers["Content-Type"] = sink.content_type
                elif content_type in ContentTypes.BINARY.value:
                    headers["Content-Type"] = content_type
                else:
                    headers["Content-Type"] = f"{content_type}; charset={config.find_charset()}"

        cookies = [cookie for cookie in merge_cookies([self._cookie_store.cookies(), cr.actual_cookies()]) if not cookie.is_expired()]
        if cookies:
            fragment = "; ".join(cookie.header_fragment() for cookie in cookies)
            existing = next((key for key in headers if key.lower() == "cookie"), None)
            if existing is None:
                headers["Cookie"] = fragment
            else:
                headers[existing] = f"{headers[existing]}; {fragment}"

        return HttpRequest(
            url=url,
            method=(cr.actual_verb() or HttpVerb.GET).value,
            headers=headers,
            body=content,
            auth=cr.actual_auth(),
            timeout=self._settings.timeout,
            allow_redirects=self._settings.allow_redirects,
        )

    def _handle_response(self, config: ChainedConfig, from_server: FromServer) -> Any:
        if from_server.success:
            self._cookie_store.add_all(from_server.cookies())

        action = config.response.actual_action(from_server.status_code)
        body = None
        if from_server.has_body:
            content_type = from_server.content_type
            parser = config.find_parser(content_type)
            try:
                body = parser(config, from_server)
            except Exception as exc:  # noqa: BLE001
                raise ParserError(content_type, exc, truncated=from_server.truncated) from exc

        if action is None:
            action = handlers.success if from_server.success else handlers.failure
        return action(from_server, body)

    @staticmethod
    def _handle_exception(config: ChainedConfig, error: Exception) -> Any:
        handler = config.response.actual_exception()
        if handler is None:
            raise error
        logger.debug("Routing %s to exception handler", type(error).__name__)
        return handler(error)

    def _executor(self) -> Executor:
        configured = self._object_config.execution.executor
        if configured is not None:
            return configured
        with self._lock:
            if self._owned_executor is None:
                self._owned_executor = ThreadPoolExecutor(
                    max_workers=self._object_config.execution.max_threads,
                    thread_name_prefix="chainhttp",
                )
            return self._owned_executor

    def close(self) -> None:
        """Release the transport and the executor this builder created."""
        with self._lock:
            owned, self._owned_executor = self._owned_executor, None
        if owned is not None:
            owned.shutdown(wait=True)
        self._transport.close()

    def __enter__(self) -> HttpBuilder:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["HttpBuilder"]
