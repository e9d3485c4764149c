# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Multipart request bodies.

`MultipartContent` collects named parts; the multipart encoder serializes each
part through the encoder registered for the part's own content type, so a JSON
part is written by the JSON encoder and a file part by the text/binary one.

    body = MultipartContent().field("name", "x").file("upload", "a.json", {"a": 1}, "application/json")
"""

from __future__ import annotations

import secrets
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .errors import ConfigurationError
from .models import ToServer

if TYPE_CHECKING:
    from .chain import ChainedConfig

DEFAULT_PART_CONTENT_TYPE = "text/plain"
CRLF = b"\r\n"


def _new_boundary() -> str:
    return f"----FormBoundary{secrets.token_hex(8)}"


def _quote_param(value: str) -> str:
    return value.replace("\r", "%0D").replace("\n", "%0A").replace('"', "%22")


@dataclass(frozen=True)
class MultipartPart:
    field_name: str
    content: Any
    file_name: str | None = None
    content_type: str = DEFAULT_PART_CONTENT_TYPE

    @property
    def is_field(self) -> bool:
        return self.file_name is None

    def disposition(self) -> str:
        value = f'form-data; name="{_quote_param(self.field_name)}"'
        if self.file_name is not None:
            value += f'; filename="{_quote_param(self.file_name)}"'
        return value


@dataclass
class MultipartContent:
    """Ordered parts of a multipart body sharing one boundary."""

    boundary: str = field(default_factory=_new_boundary)
    _parts: list[MultipartPart] = field(default_factory=list, init=False, repr=False)

    @classmethod
    def from_mapping(cls, fields: Mapping[str, Any]) -> MultipartContent:
        """One text field per key; list and tuple values repeat the field."""
        content = cls()
        for name, value in fields.items():
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                content.field(str(name), item)
        return content

    def field(self, name: str, value: Any, content_type: str = DEFAULT_PART_CONTENT_TYPE) -> MultipartContent:
        self._parts.append(MultipartPart(name, value, None, content_type))
        return self

    def file(
        self,
        name: str,
        file_name: str,
        content: Any,
        content_type: str = DEFAULT_PART_CONTENT_TYPE,
    ) -> MultipartContent:
        """Add a file part; `content` may be str, bytes, a path or a binary file object."""
        self._parts.append(MultipartPart(name, content, file_name, content_type))
        return self

    def parts(self) -> Iterator[MultipartPart]:
        return iter(list(self._parts))

    def __len__(self) -> int:
        return len(self._parts)


def encode_part(config: ChainedConfig, part: MultipartPart) -> bytes:
    """Serialize one part's content with the encoder registered for its content type."""
    fragment = config.derive()
    fragment.request.content_type = part.content_type
    fragment.request.body = part.content
    sink = ToServer(part.content_type)
    config.find_encoder(part.content_type)(fragment, sink)
    return sink.content or b""


def write_multipart(config: ChainedConfig, content: MultipartContent) -> bytes:
    marker = b"--" + content.boundary.encode("ascii")
    out = bytearray()
    for part in content.parts():
        out += marker + CRLF
        out += f"Content-Disposition: {part.disposition()}".encode() + CRLF
        out += f"Content-Type: {part.content_type}".encode() + CRLF
        out += CRLF
        out += encode_part(config, part)
        out += CRLF
    out += marker + b"--" + CRLF
    return bytes(out)


def as_multipart(body: Any) -> MultipartContent:
    if isinstance(body, MultipartContent):
        return body
    if isinstance(body, Mapping):
        return MultipartContent.from_mapping(body)
    raise ConfigurationError(f"Multipart encoder needs MultipartContent or a mapping body, got {type(body).__name__}")


__all__ = [
    "DEFAULT_PART_CONTENT_TYPE",
    "MultipartContent",
    "MultipartPart",
    "as_multipart",
    "encode_part",
    "write_multipart",
]
