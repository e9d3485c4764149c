# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Well-known content types and Content-Type header parsing."""

from __future__ import annotations

from enum import Enum

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_CHARSET = "utf-8"


class ContentTypes(Enum):
    """Groups of content-type strings that share an encoder/parser."""

    ANY = ("*/*",)
    TEXT = ("text/plain",)
    JSON = ("application/json", "application/javascript", "text/javascript")
    XML = ("application/xml", "text/xml", "application/xhtml+xml", "application/atom+xml")
    HTML = ("text/html",)
    URLENC = ("application/x-www-form-urlencoded",)
    BINARY = ("application/octet-stream",)
    CSV = ("text/csv",)
    TSV = ("text/tab-separated-values",)
    MULTIPART_FORMDATA = ("multipart/form-data",)
    MULTIPART_MIXED = ("multipart/mixed",)

    def __iter__(self):
        return iter(self.value)

    @property
    def primary(self) -> str:
        return self.value[0]

    @classmethod
    def from_value(cls, value: str | None) -> ContentTypes | None:
        if not value:
            return None
        for member in cls:
            if value in member.value:
                return member
        return None


def strip_quotes(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def parse_content_type(header: str | None) -> tuple[str | None, dict[str, str]]:
    """
    Split a Content-Type header into its bare media type and parameters.

    `text/html; charset="UTF-8"` -> ("text/html", {"charset": "UTF-8"}).
    Parameter names are lowercased; the media type keeps its original casing
    trimmed of whitespace.
    """
    if not header:
        return None, {}
    parts = header.split(";")
    media_type = strip_quotes(parts[0].strip()) or None
    params: dict[str, str] = {}
    for raw in parts[1:]:
        if "=" not in raw:
            continue
        name, _, value = raw.partition("=")
        name = name.strip().lower()
        if name:
            params[name] = strip_quotes(value.strip())
    return media_type, params


__all__ = [
    "ContentTypes",
    "DEFAULT_CHARSET",
    "DEFAULT_CONTENT_TYPE",
    "parse_content_type",
    "strip_quotes",
]
