# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header utilities.

HTTP header field names are case-insensitive (RFC 9110). Responses keep their
headers as an ordered list of `Header` entries (duplicates allowed, e.g. several
Set-Cookie lines); request-side headers are plain dicts merged along the
configuration chain.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable

from .content_types import parse_content_type, strip_quotes


def _parse_combined(header: Header) -> dict[str, str]:
    media_type, params = parse_content_type(header.value)
    out = {header.key.lower(): media_type or ""}
    out.update(params)
    return out


def _parse_csv_list(header: Header) -> list[str]:
    return [item.strip() for item in header.value.split(",")]


def _parse_map_pairs(header: Header) -> dict[str, str]:
    out: dict[str, str] = {}
    for item in header.value.split(";"):
        item = item.strip()
        if not item:
            continue
        name, sep, value = item.partition("=")
        out[name.strip().lower()] = strip_quotes(value.strip()) if sep else name.strip()
    return out


def _parse_int(header: Header) -> int:
    return int(header.value)


def _parse_http_date(header: Header) -> datetime:
    if header.value.isdigit():
        return datetime.now(timezone.utc) + timedelta(seconds=int(header.value))
    return parsedate_to_datetime(header.value)


def _parse_cookies(header: Header) -> list:
    from .cookies import Cookie

    return Cookie.parse_set_cookie(header.value)


_PARSERS: dict[str, Callable[[Header], Any]] = {
    "accept-patch": _parse_combined,
    "age": _parse_int,
    "allow": _parse_csv_list,
    "alt-svc": _parse_map_pairs,
    "cache-control": _parse_map_pairs,
    "content-disposition": _parse_combined,
    "content-length": _parse_int,
    "content-type": _parse_combined,
    "date": _parse_http_date,
    "expires": _parse_http_date,
    "last-modified": _parse_http_date,
    "link": _parse_combined,
    "p3p": _parse_map_pairs,
    "public-key-pins": _parse_map_pairs,
    "refresh": _parse_combined,
    "retry-after": _parse_http_date,
    "set-cookie": _parse_cookies,
    "set-cookie2": _parse_cookies,
    "strict-transport-security": _parse_map_pairs,
    "upgrade": _parse_csv_list,
    "via": _parse_csv_list,
}


@dataclass(frozen=True)
class Header:
    """A single response header line with a lazily parsed, typed value."""

    key: str
    value: str
    _parsed: list = field(default_factory=list, init=False, repr=False, compare=False)

    @classmethod
    def full(cls, raw: str) -> Header:
        """Build a header from a raw `Name: value` line."""
        key, _, value = raw.partition(":")
        return cls(key.strip(), strip_quotes(value.strip()))

    @property
    def parsed(self) -> Any:
        """Typed value for well-known headers, the raw string otherwise."""
        if not self._parsed:
            parser = _PARSERS.get(self.key.lower())
            self._parsed.append(parser(self) if parser else self.value)
        return self._parsed[0]

    def __str__(self) -> str:
        return f"{self.key}: {self.value}"


def find_header(headers: Iterable[Header], name: str) -> Header | None:
    """Return the first header whose name matches case-insensitively."""
    lower = name.lower()
    for header in headers:
        if header.key.lower() == lower:
            return header
    return None


def _coerce_headers_mapping(headers: Any) -> Mapping[object, object] | None:
    """
    Best-effort coercion of "dict-like" header containers into a Mapping.

    Accepts plain dicts, httpx.Headers, anything exposing `.items()` and
    iterable-of-pairs.
    """
    if not headers:
        return None
    if isinstance(headers, Mapping):
        return headers

    items = getattr(headers, "items", None)
    if callable(items):
        return dict(items())

    return dict(headers)


def merge_headers(layers: Iterable[Mapping[str, str]]) -> dict[str, str]:
    """
    Merge header layers from least to most specific.

    Names compare case-insensitively; the spelling of the most specific layer
    wins along with its value.
    """
    merged: dict[str, tuple[str, str]] = {}
    for layer in layers:
        for key, value in layer.items():
            merged[str(key).lower()] = (str(key), value)
    return dict(merged.values())


def header_value(headers: Any, name: str, default: str = "") -> str:
    """
    Return a header value using case-insensitive key matching.

    `headers` may be a mapping or a list of `Header` entries.
    """
    if not headers or not name:
        return default

    if isinstance(headers, list) and all(isinstance(item, Header) for item in headers):
        found = find_header(headers, name)
        return default if found is None else found.value.strip()

    coerced = _coerce_headers_mapping(headers)
    if not coerced:
        return default

    lower = str(name).lower()
    for key, value in coerced.items():
        if key is None:
            continue
        if str(key).lower() == lower:
            return default if value is None else str(value).strip()

    return default


__all__ = [
    "Header",
    "find_header",
    "header_value",
    "merge_headers",
]
