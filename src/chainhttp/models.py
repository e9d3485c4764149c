# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request/response envelopes exchanged with Transport implementations."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING

from .content_types import DEFAULT_CHARSET, DEFAULT_CONTENT_TYPE, parse_content_type
from .cookies import Cookie
from .headers import Header, find_header

if TYPE_CHECKING:
    from .chain import Auth

Headers = dict[str, str]


@dataclass
class HttpRequest:
    """Fully resolved request handed to a Transport."""

    url: str
    method: str = "GET"
    headers: Headers = field(default_factory=dict)
    body: bytes | None = None
    auth: Auth | None = None
    timeout: float | None = None
    allow_redirects: bool = True


class ToServer:
    """Sink an encoder writes the serialized request body into."""

    def __init__(self, content_type: str | None = None):
        self.content_type = content_type
        self._content: bytes | None = None

    def to_server(self, data: bytes | bytearray | str | IO[bytes], charset: str = DEFAULT_CHARSET) -> None:
        if isinstance(data, str):
            self._content = data.encode(charset)
        elif isinstance(data, (bytes, bytearray, memoryview)):
            self._content = bytes(data)
        else:
            try:
                self._content = data.read()
            finally:
                close = getattr(data, "close", None)
                if callable(close):
                    close()

    @property
    def content(self) -> bytes | None:
        return self._content


@dataclass
class FromServer:
    """
    Response envelope produced by a Transport.

    Headers are kept in wire order with duplicates (e.g. several Set-Cookie
    lines). `body` is a readable binary stream; `finish()` releases it once the
    response pipeline is done. `truncated` is set when the transport stopped
    reading at its body size limit, so `body` holds only a prefix.
    """

    status_code: int
    message: str = ""
    headers: list[Header] = field(default_factory=list)
    body: IO[bytes] = field(default_factory=io.BytesIO)
    has_body: bool = False
    uri: str | None = None
    truncated: bool = False

    @classmethod
    def from_bytes(
        cls,
        status_code: int,
        content: bytes = b"",
        headers: list[Header] | dict[str, str] | None = None,
        *,
        message: str = "",
        uri: str | None = None,
        truncated: bool = False,
    ) -> FromServer:
        """Build an envelope around an in-memory body."""
        if isinstance(headers, dict):
            header_list = [Header(key, value) for key, value in headers.items()]
        else:
            header_list = list(headers or [])
        return cls(
            status_code=status_code,
            message=message,
            headers=header_list,
            body=io.BytesIO(content),
            has_body=bool(content),
            uri=uri,
            truncated=truncated,
        )

    def header(self, name: str) -> Header | None:
        return find_header(self.headers, name)

    @property
    def content_type(self) -> str:
        found = self.header("Content-Type")
        media_type, _ = parse_content_type(found.value if found else None)
        return media_type or DEFAULT_CONTENT_TYPE

    @property
    def charset(self) -> str:
        found = self.header("Content-Type")
        _, params = parse_content_type(found.value if found else None)
        return params.get("charset") or DEFAULT_CHARSET

    @property
    def success(self) -> bool:
        return self.status_code < 400

    def cookies(self) -> list[Cookie]:
        cookies: list[Cookie] = []
        for header in self.headers:
            if header.key.lower() in ("set-cookie", "set-cookie2"):
                cookies.extend(header.parsed)
        return cookies

    def read(self) -> bytes:
        return self.body.read()

    def read_text(self) -> str:
        data = self.read()
        try:
            return data.decode(self.charset, errors="replace")
        except LookupError:
            return data.decode(DEFAULT_CHARSET, errors="replace")

    def finish(self) -> None:
        self.body.close()


__all__ = ["FromServer", "Headers", "HttpRequest", "ToServer"]
