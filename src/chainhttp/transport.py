# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport abstraction, factory and an in-memory stub."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from .config import HttpSettings, load_http_settings
from .errors import TransportError
from .models import FromServer, HttpRequest


class Transport(Protocol):
    """Minimal protocol for executing a resolved request."""

    def execute(self, request: HttpRequest) -> FromServer: ...

    def close(self) -> None:  # pragma: no cover - optional for adapters
        ...


def create_default_transport(settings: HttpSettings | None = None) -> Transport:
    """Factory for the default httpx-backed transport."""
    from .httpx_transport import HttpxTransport

    return HttpxTransport(settings or load_http_settings())


StubResponse = FromServer | Callable[[HttpRequest], FromServer] | BaseException


class StubTransport(Transport):
    """
    Deterministic, programmable Transport for tests.

    Responses are keyed by `(method, url)` or by url alone. A stubbed value may
    be a `FromServer`, a callable building one from the request, or an
    exception to raise.
    """

    def __init__(self, responses: dict[str, StubResponse] | None = None):
        self._responses: dict[object, StubResponse] = dict(responses or {})
        self.requests: list[HttpRequest] = []
        self.closed = False

    def add(self, url: str, response: StubResponse, *, method: str | None = None) -> None:
        key = (method.upper(), url) if method else url
        self._responses[key] = response

    def execute(self, request: HttpRequest) -> FromServer:
        self.requests.append(request)
        stubbed = self._responses.get((request.method, request.url), self._responses.get(request.url))
        if stubbed is None:
            raise TransportError(f"No stubbed response configured for {request.method} {request.url}")
        if isinstance(stubbed, BaseException):
            raise stubbed
        if callable(stubbed):
            return stubbed(request)
        return stubbed

    def close(self) -> None:
        self.closed = True


__all__ = ["StubTransport", "Transport", "create_default_transport"]
