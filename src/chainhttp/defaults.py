# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Process-wide root configuration and level constructors."""

from __future__ import annotations

import logging
import threading

from . import handlers
from .chain import ChainedConfig, Status
from .content_types import DEFAULT_CHARSET
from .registry import register_capabilities

logger = logging.getLogger(__name__)

_root: ChainedConfig | None = None
_root_lock = threading.Lock()


def _build_root() -> ChainedConfig:
    config = ChainedConfig(None, thread_safe=True)
    config.request.charset = DEFAULT_CHARSET
    for content_types, encoder in handlers.NATIVE_ENCODERS:
        config.request.encoder(content_types, encoder)
    for content_types, parser in handlers.NATIVE_PARSERS:
        config.response.parser(content_types, parser)
    config.response.when(Status.SUCCESS, handlers.success)
    config.response.when(Status.FAILURE, handlers.failure)
    installed = register_capabilities(config, handlers.CAPABILITIES)
    # Every client inherits from the root; it is read-only from here on.
    config.freeze()
    logger.debug("Root configuration ready (optional codecs: %s)", ", ".join(installed) or "none")
    return config


def root() -> ChainedConfig:
    """Return the shared root configuration, building it on first use."""
    global _root
    if _root is None:
        with _root_lock:
            if _root is None:
                _root = _build_root()
    return _root


def basic(parent: ChainedConfig | None = None) -> ChainedConfig:
    """A plain (unsynchronized) level below `parent` (default: the root)."""
    return ChainedConfig(parent if parent is not None else root())


def thread_safe(parent: ChainedConfig | None = None) -> ChainedConfig:
    """A copy-on-write level below `parent` (default: the root)."""
    return ChainedConfig(parent if parent is not None else root(), thread_safe=True)


def client_level(is_thread_safe: bool = True) -> ChainedConfig:
    return thread_safe() if is_thread_safe else basic()


def request_level(parent: ChainedConfig) -> ChainedConfig:
    return basic(parent)


__all__ = ["basic", "client_level", "request_level", "root", "thread_safe"]
