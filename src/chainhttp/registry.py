# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Content-type keyed codec registries and optional-codec capabilities."""

from __future__ import annotations

import importlib.util
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .chain import ChainedConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def content_type_keys(content_types: str | Iterable[str]) -> list[str]:
    """Normalise a single content type or an iterable of them into a list of keys."""
    if isinstance(content_types, str):
        return [content_types]
    keys = [str(item) for item in content_types]
    if not keys:
        raise ValueError("at least one content type is required")
    return keys


class ContentTypeRegistry(Generic[T]):
    """
    Map from exact content-type string to a codec function.

    Registration under several content types is atomic: the thread-safe variant
    swaps in a fully built mapping, so concurrent readers see either none or all
    of the new keys.
    """

    def __init__(self, *, thread_safe: bool = False):
        self._lock = threading.Lock() if thread_safe else nullcontext()
        self._entries: dict[str, T] = {}

    def get(self, content_type: str | None) -> T | None:
        if content_type is None:
            return None
        return self._entries.get(content_type)

    def register(self, content_types: str | Iterable[str], fn: T) -> None:
        if fn is None:
            raise ValueError("codec function cannot be None")
        keys = content_type_keys(content_types)
        with self._lock:
            updated = dict(self._entries)
            for key in keys:
                updated[key] = fn
            self._entries = updated

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, content_type: object) -> bool:
        return content_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def module_available(module_name: str) -> Callable[[], bool]:
    """Build a probe reporting whether an optional module can be imported."""

    def probe() -> bool:
        try:
            return importlib.util.find_spec(module_name) is not None
        except (ImportError, ValueError):
            return False

    return probe


def always() -> bool:
    return True


@dataclass(frozen=True)
class Capability:
    """An optional codec installed into a configuration when its probe passes."""

    name: str
    probe: Callable[[], bool]
    content_types: tuple[str, ...]
    encoder: Callable[..., Any] | None = None
    parser: Callable[..., Any] | None = None
    context: Mapping[Any, Any] = field(default_factory=dict)


def register_capability(config: ChainedConfig, capability: Capability) -> bool:
    """
    Install a capability's codecs (and context objects) when its probe passes.

    Returns True when registered. Probing is side-effect free and may be repeated.
    """
    if not capability.probe():
        logger.debug("Capability %s unavailable; skipping %s", capability.name, capability.content_types)
        return False
    if capability.encoder is not None:
        config.request.encoder(capability.content_types, capability.encoder)
    if capability.parser is not None:
        config.response.parser(capability.content_types, capability.parser)
    for content_type in capability.content_types:
        for context_id, value in capability.context.items():
            config.context(content_type, context_id, value)
    logger.debug("Registered capability %s for %s", capability.name, capability.content_types)
    return True


def register_capabilities(config: ChainedConfig, capabilities: Iterable[Capability]) -> list[str]:
    return [capability.name for capability in capabilities if register_capability(config, capability)]


__all__ = [
    "Capability",
    "ContentTypeRegistry",
    "always",
    "content_type_keys",
    "module_available",
    "register_capabilities",
    "register_capability",
]
