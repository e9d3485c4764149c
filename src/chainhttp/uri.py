# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Parent-linked URI builder.

Every builder may point at a parent builder. `to_uri()` resolves each field
(scheme, user info, host, port, path, fragment) to the nearest value set
walking from this builder to the root; query parameters instead merge across
the whole chain, child keys overriding parent keys.

    parent = UriBuilder.basic(UriBuilder.root()).set_full("http://localhost:8080/info")
    UriBuilder.basic(parent).set_path("/bar").to_uri() == "http://localhost:8080/bar"
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterator, Mapping
from contextlib import nullcontext
from typing import Any
from urllib.parse import parse_qsl, quote, unquote, urlsplit

from .errors import FrozenConfigError, InvalidUriError

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_INVALID_HOST_CHARS = re.compile(r"[\s/?#@]")

_PATH_SAFE = "/:@!$&'()*+,;="
_QUERY_SAFE = "/?:@!$'()*+,;"
_FRAGMENT_SAFE = "/?:@!$&'()*+,;="
_USER_INFO_SAFE = ":!$&'()*+,;="

_FIELDS = ("scheme", "port", "host", "path", "fragment", "user_info")


def _split_netloc(netloc: str) -> tuple[str | None, str | None]:
    if not netloc:
        return None, None
    user_info, sep, host_port = netloc.rpartition("@")
    if host_port.startswith("["):
        host = host_port[: host_port.find("]") + 1]
    else:
        host = host_port.partition(":")[0]
    return (user_info if sep else None), (host or None)


def _raw_query_pairs(raw_query: str) -> dict[str, Any]:
    pairs: dict[str, Any] = {}
    for item in raw_query.split("&"):
        if not item:
            continue
        key, sep, value = item.partition("=")
        _add_query_value(pairs, key, value if sep else None)
    return pairs


def _add_query_value(pairs: dict[str, Any], key: str, value: Any) -> None:
    if key not in pairs:
        pairs[key] = value
        return
    existing = pairs[key]
    if isinstance(existing, list):
        existing.append(value)
    else:
        pairs[key] = [existing, value]


class UriBuilder:
    """A single level of URI overrides; see module docstring."""

    def __init__(self, parent: UriBuilder | None = None, *, thread_safe: bool = False):
        self._parent = parent
        self._thread_safe = thread_safe
        self._lock = threading.RLock() if thread_safe else nullcontext()
        self._frozen = False
        self._scheme: str | None = None
        self._port: int | None = None
        self._host: str | None = None
        self._path: str | None = None
        self._query: dict[str, Any] = {}
        self._fragment: str | None = None
        self._user_info: str | None = None
        self._raw: str | None = None
        self._use_raw_values = False

    @classmethod
    def root(cls) -> UriBuilder:
        return cls(None, thread_safe=True)

    @classmethod
    def basic(cls, parent: UriBuilder | None) -> UriBuilder:
        return cls(parent)

    @classmethod
    def threadsafe(cls, parent: UriBuilder | None) -> UriBuilder:
        return cls(parent, thread_safe=True)

    @property
    def parent(self) -> UriBuilder | None:
        return self._parent

    @property
    def thread_safe(self) -> bool:
        return self._thread_safe

    @property
    def scheme(self) -> str | None:
        return self._scheme

    @property
    def port(self) -> int | None:
        return self._port

    @property
    def host(self) -> str | None:
        return self._host

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def query(self) -> dict[str, Any]:
        return dict(self._query)

    @property
    def fragment(self) -> str | None:
        return self._fragment

    @property
    def user_info(self) -> str | None:
        return self._user_info

    @property
    def raw(self) -> str | None:
        return self._raw

    @property
    def use_raw_values(self) -> bool:
        return self._use_raw_values

    def freeze(self) -> None:
        self._frozen = True

    def _assign(self, **values: Any) -> UriBuilder:
        if self._frozen:
            raise FrozenConfigError("URI builder is frozen and cannot be modified")
        with self._lock:
            for name, value in values.items():
                setattr(self, f"_{name}", value)
            # Any field override means the stored raw string no longer describes this level.
            if "raw" not in values:
                self._raw = None
        return self

    def set_scheme(self, value: str | None) -> UriBuilder:
        return self._assign(scheme=value)

    def set_port(self, value: int | None) -> UriBuilder:
        if value is not None and value < 0:
            value = None
        return self._assign(port=value)

    def set_host(self, value: str | None) -> UriBuilder:
        return self._assign(host=value)

    def set_path(self, value: str | None) -> UriBuilder:
        return self._assign(path=None if value is None else str(value))

    def set_query(self, value: Mapping[str, Any] | None = None, **params: Any) -> UriBuilder:
        """Add query parameters at this level; existing keys are replaced."""
        updates = dict(value or {})
        updates.update(params)
        # Merge under the lock so concurrent calls keep every key.
        with self._lock:
            return self._assign(query={**self._query, **updates})

    def set_fragment(self, value: str | None) -> UriBuilder:
        return self._assign(fragment=value)

    def set_user_info(self, value: str | None) -> UriBuilder:
        return self._assign(user_info=value)

    def set_use_raw_values(self, value: bool) -> UriBuilder:
        return self._assign(use_raw_values=bool(value))

    def set_full(self, value: str) -> UriBuilder:
        """Replace every field at this level with the parts of a complete URI."""
        if self._use_raw_values:
            return self.set_raw(value)
        try:
            parts = urlsplit(str(value))
            port = parts.port
        except ValueError as exc:
            raise InvalidUriError(f"Invalid URI {value!r}: {exc}") from exc
        user_info, host = _split_netloc(parts.netloc)
        query: dict[str, Any] = {}
        for key, item in parse_qsl(parts.query, keep_blank_values=True):
            _add_query_value(query, key, item)
        return self._assign(
            scheme=parts.scheme or None,
            port=port,
            host=host,
            path=unquote(parts.path),
            query=query,
            fragment=unquote(parts.fragment) if parts.fragment else None,
            user_info=unquote(user_info) if user_info is not None else None,
        )

    def set_raw(self, value: str) -> UriBuilder:
        """
        Use a pre-encoded URI verbatim.

        Fields parsed from the raw string are never percent-encoded, and while
        nothing below this level overrides a field `to_uri()` returns the string
        exactly as given.
        """
        raw = str(value)
        try:
            parts = urlsplit(raw)
            port = parts.port
        except ValueError as exc:
            raise InvalidUriError(f"Invalid URI {raw!r}: {exc}") from exc
        user_info, host = _split_netloc(parts.netloc)
        return self._assign(
            scheme=parts.scheme or None,
            port=port,
            host=host,
            path=parts.path,
            query=_raw_query_pairs(parts.query),
            fragment=parts.fragment or None,
            user_info=user_info,
            use_raw_values=True,
            raw=raw,
        )

    def _has_local_fields(self) -> bool:
        return bool(self._query) or any(getattr(self, f"_{name}") is not None for name in _FIELDS)

    def chain(self) -> Iterator[UriBuilder]:
        """Yield this builder followed by each of its ancestors."""
        node: UriBuilder | None = self
        while node is not None:
            yield node
            node = node._parent

    def _resolve_from(self, name: str) -> tuple[Any, UriBuilder | None]:
        for node in self.chain():
            value = getattr(node, f"_{name}")
            if value is not None:
                return value, node
        return None, None

    def _resolve(self, name: str) -> Any:
        return self._resolve_from(name)[0]

    def _merged_query_from(self) -> dict[str, tuple[Any, UriBuilder]]:
        merged: dict[str, tuple[Any, UriBuilder]] = {}
        for node in reversed(list(self.chain())):
            for key, value in node._query.items():
                merged[key] = (value, node)
        return merged

    def merged_query(self) -> dict[str, Any]:
        """Query parameters from the whole chain, most specific level winning per key."""
        return {key: value for key, (value, _) in self._merged_query_from().items()}

    def to_uri(self) -> str:
        """
        Materialise the merged chain as a URI string.

        Values are left unencoded only when the level that supplied them uses
        raw values; everything else is percent-encoded.
        """
        for node in self.chain():
            if node._raw is not None:
                return node._raw
            if node._has_local_fields():
                break

        scheme = self._resolve("scheme")
        port = self._resolve("port")
        host = self._resolve("host")
        path, path_node = self._resolve_from("path")
        fragment, fragment_node = self._resolve_from("fragment")
        user_info, user_info_node = self._resolve_from("user_info")
        query = self._merged_query_from()

        if scheme is not None and not _SCHEME_RE.match(scheme):
            raise InvalidUriError(f"Illegal URI scheme: {scheme!r}")
        if host is None and (port is not None or user_info is not None):
            raise InvalidUriError("URI port or user info given without a host")
        if host is not None and _INVALID_HOST_CHARS.search(host):
            raise InvalidUriError(f"Illegal URI host: {host!r}")
        if port is not None and not 0 <= port <= 65535:
            raise InvalidUriError(f"URI port out of range: {port}")
        if path and not path.startswith("/") and (scheme is not None or host is not None):
            raise InvalidUriError(f"Relative path {path!r} in absolute URI")

        out = []
        if scheme is not None:
            out.append(f"{scheme}:")
        if host is not None:
            out.append("//")
            if user_info is not None:
                out.append(_encode(user_info, _USER_INFO_SAFE, user_info_node) + "@")
            out.append(host)
            if port is not None:
                out.append(f":{port}")
        if path:
            out.append(_encode(path, _PATH_SAFE, path_node))
        if query:
            out.append("?" + self._query_string(query))
        if fragment is not None:
            out.append("#" + _encode(fragment, _FRAGMENT_SAFE, fragment_node))
        return "".join(out)

    @staticmethod
    def _query_string(query: Mapping[str, tuple[Any, UriBuilder]]) -> str:
        pairs = []
        for key, (value, node) in query.items():
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                if item is None:
                    pairs.append(_encode(key, _QUERY_SAFE, node))
                else:
                    pairs.append(f"{_encode(key, _QUERY_SAFE, node)}={_encode(item, _QUERY_SAFE, node)}")
        return "&".join(pairs)

    def is_absolute(self) -> bool:
        """True when the merged chain names both a scheme and a host."""
        return self._resolve("scheme") is not None and self._resolve("host") is not None

    def __repr__(self) -> str:
        local = {name: getattr(self, f"_{name}") for name in _FIELDS if getattr(self, f"_{name}") is not None}
        if self._query:
            local["query"] = self._query
        return f"UriBuilder({local!r}, root={self._parent is None})"


def _encode(text: Any, safe: str, source: UriBuilder | None) -> str:
    if source is not None and source.use_raw_values:
        return str(text)
    return quote(str(text), safe=safe)


__all__ = ["UriBuilder"]
