# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client-level configuration: the client chain node plus execution settings."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Executor
from typing import Any

from . import defaults
from .chain import ChainedConfig, ChainedRequest, ChainedResponse, HttpVerb
from .config import HttpSettings

Proceed = Callable[[ChainedConfig], Any]
Interceptor = Callable[[ChainedConfig, Proceed], Any]


def null_interceptor(config: ChainedConfig, proceed: Proceed) -> Any:
    return proceed(config)


class Execution:
    """Thread pool sizing, executor and per-verb interceptors."""

    def __init__(self, max_threads: int = 1):
        self._lock = threading.Lock()
        self._max_threads = max_threads
        self._executor: Executor | None = None
        self._interceptors: dict[HttpVerb, Interceptor] = {verb: null_interceptor for verb in HttpVerb}

    @property
    def max_threads(self) -> int:
        return self._max_threads

    @max_threads.setter
    def max_threads(self, value: int) -> None:
        if value < 1:
            raise ValueError("max_threads must be at least 1")
        self._max_threads = value

    @property
    def executor(self) -> Executor | None:
        return self._executor

    @executor.setter
    def executor(self, value: Executor | None) -> None:
        self._executor = value

    def interceptor(self, verbs: HttpVerb | str | Iterable[HttpVerb | str], fn: Interceptor) -> Interceptor:
        """Install `fn` in the slot of every given verb, replacing what was there."""
        if isinstance(verbs, (HttpVerb, str)):
            verbs = [verbs]
        resolved = [HttpVerb(verb.upper() if isinstance(verb, str) else verb) for verb in verbs]
        with self._lock:
            updated = dict(self._interceptors)
            for verb in resolved:
                updated[verb] = fn
            self._interceptors = updated
        return fn

    def interceptor_for(self, verb: HttpVerb) -> Interceptor:
        return self._interceptors[verb]


class Client:
    """Client-wide toggles."""

    def __init__(self, cookies_enabled: bool = True):
        self.cookies_enabled = cookies_enabled


class HttpObjectConfig:
    """Everything `HttpBuilder.configure` callbacks can change."""

    def __init__(self, settings: HttpSettings | None = None, *, parent: ChainedConfig | None = None):
        settings = settings or HttpSettings()
        self.chained_config = defaults.thread_safe(parent)
        self.execution = Execution(settings.max_threads)
        self.client = Client(settings.cookies_enabled)

    @property
    def request(self) -> ChainedRequest:
        return self.chained_config.request

    @property
    def response(self) -> ChainedResponse:
        return self.chained_config.response

    def context(self, content_type: str, context_id: Any, value: Any) -> None:
        self.chained_config.context(content_type, context_id, value)


__all__ = ["Client", "Execution", "HttpObjectConfig", "Interceptor", "Proceed", "null_interceptor"]
