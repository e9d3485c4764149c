# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Built-in status handlers and content codecs.

Encoders take `(config, to_server)` and write the serialized request body of
`config` into the sink. Parsers take `(config, from_server)` and return the
decoded response body. All of them are installed on the root configuration;
clients and requests override them per content type.
"""

from __future__ import annotations

import csv
import io
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlencode
from xml.etree import ElementTree

from .content_types import ContentTypes
from .errors import ConfigurationError, HttpException
from .multipart import as_multipart, write_multipart
from .registry import Capability, always, module_available

if TYPE_CHECKING:
    from .chain import ChainedConfig
    from .models import FromServer, ToServer

CSV_DIALECT = "csv.dialect"


def success(from_server: FromServer, body: Any) -> Any:
    return body


def failure(from_server: FromServer, body: Any) -> Any:
    raise HttpException(from_server, body)


def handle_raw_upload(config: ChainedConfig, to_server: ToServer) -> bool:
    """Send bytes, binary file objects and filesystem paths as-is. Returns True when handled."""
    body = config.request.actual_body()
    if isinstance(body, (bytes, bytearray, memoryview)):
        to_server.to_server(bytes(body))
        return True
    if isinstance(body, os.PathLike):
        to_server.to_server(Path(body).open("rb"))
        return True
    if hasattr(body, "read"):
        to_server.to_server(body)
        return True
    return False


def encode_binary(config: ChainedConfig, to_server: ToServer) -> None:
    if not handle_raw_upload(config, to_server):
        body = config.request.actual_body()
        raise ConfigurationError(f"Binary encoder cannot send a {type(body).__name__} body")


def encode_text(config: ChainedConfig, to_server: ToServer) -> None:
    if not handle_raw_upload(config, to_server):
        to_server.to_server(str(config.request.actual_body()), config.find_charset())


def encode_form(config: ChainedConfig, to_server: ToServer) -> None:
    if handle_raw_upload(config, to_server):
        return
    body = config.request.actual_body()
    if isinstance(body, str):
        to_server.to_server(body, config.find_charset())
    elif isinstance(body, Mapping):
        to_server.to_server(urlencode(body, doseq=True), config.find_charset())
    else:
        raise ConfigurationError(f"Form encoder needs a mapping or string body, got {type(body).__name__}")


def encode_json(config: ChainedConfig, to_server: ToServer) -> None:
    if handle_raw_upload(config, to_server):
        return
    body = config.request.actual_body()
    text = body if isinstance(body, str) else json.dumps(body)
    to_server.to_server(text, config.find_charset())


def encode_xml(config: ChainedConfig, to_server: ToServer) -> None:
    if handle_raw_upload(config, to_server):
        return
    body = config.request.actual_body()
    charset = config.find_charset()
    if isinstance(body, str):
        to_server.to_server(body, charset)
    elif isinstance(body, ElementTree.Element):
        to_server.to_server(ElementTree.tostring(body, encoding=charset, xml_declaration=True))
    else:
        raise ConfigurationError(f"XML encoder needs an Element or string body, got {type(body).__name__}")


def encode_multipart(config: ChainedConfig, to_server: ToServer) -> None:
    """
    Write a multipart body and advertise its boundary on the sink's content type.

    Accepts a MultipartContent or a plain mapping of text fields.
    """
    content = as_multipart(config.request.actual_body())
    media_type = to_server.content_type or "multipart/form-data"
    to_server.content_type = f"{media_type}; boundary={content.boundary}"
    to_server.to_server(write_multipart(config, content))


def parse_bytes(config: ChainedConfig, from_server: FromServer) -> bytes:
    return from_server.read()


def parse_text(config: ChainedConfig, from_server: FromServer) -> str:
    return from_server.read_text()


def parse_form(config: ChainedConfig, from_server: FromServer) -> dict[str, list[str]]:
    return parse_qs(from_server.read_text(), keep_blank_values=True)


def parse_json(config: ChainedConfig, from_server: FromServer) -> Any:
    text = from_server.read_text()
    if not text.strip():
        return None
    return json.loads(text)


def parse_xml(config: ChainedConfig, from_server: FromServer) -> ElementTree.Element:
    return ElementTree.fromstring(from_server.read())


def parse_html(config: ChainedConfig, from_server: FromServer) -> Any:
    from bs4 import BeautifulSoup

    return BeautifulSoup(from_server.read_text(), "html.parser")


def _csv_dialect(config: ChainedConfig, content_type: str | None) -> str:
    if content_type is None:
        return "excel"
    return config.actual_context(content_type, CSV_DIALECT) or "excel"


def encode_csv(config: ChainedConfig, to_server: ToServer) -> None:
    """Write an iterable of rows using the dialect registered for the content type."""
    if handle_raw_upload(config, to_server):
        return
    body = config.request.actual_body()
    if isinstance(body, str):
        to_server.to_server(body, config.find_charset())
        return
    buffer = io.StringIO()
    writer = csv.writer(buffer, dialect=_csv_dialect(config, config.find_content_type()))
    writer.writerows(body)
    to_server.to_server(buffer.getvalue(), config.find_charset())


def parse_csv(config: ChainedConfig, from_server: FromServer) -> list[list[str]]:
    reader = csv.reader(io.StringIO(from_server.read_text()), dialect=_csv_dialect(config, from_server.content_type))
    return list(reader)


NATIVE_ENCODERS = (
    (ContentTypes.BINARY, encode_binary),
    (ContentTypes.TEXT, encode_text),
    (ContentTypes.URLENC, encode_form),
    (ContentTypes.XML, encode_xml),
    (ContentTypes.JSON, encode_json),
    (ContentTypes.MULTIPART_FORMDATA, encode_multipart),
    (ContentTypes.MULTIPART_MIXED, encode_multipart),
)

NATIVE_PARSERS = (
    (ContentTypes.BINARY, parse_bytes),
    (ContentTypes.TEXT, parse_text),
    (ContentTypes.URLENC, parse_form),
    (ContentTypes.XML, parse_xml),
    (ContentTypes.JSON, parse_json),
)

CAPABILITIES = (
    Capability(
        name="csv",
        probe=always,
        content_types=tuple(ContentTypes.CSV),
        encoder=encode_csv,
        parser=parse_csv,
        context={CSV_DIALECT: "excel"},
    ),
    Capability(
        name="tsv",
        probe=always,
        content_types=tuple(ContentTypes.TSV),
        encoder=encode_csv,
        parser=parse_csv,
        context={CSV_DIALECT: "excel-tab"},
    ),
    Capability(
        name="html",
        probe=module_available("bs4"),
        content_types=tuple(ContentTypes.HTML),
        parser=parse_html,
    ),
)


__all__ = [
    "CAPABILITIES",
    "CSV_DIALECT",
    "NATIVE_ENCODERS",
    "NATIVE_PARSERS",
    "encode_binary",
    "encode_csv",
    "encode_form",
    "encode_json",
    "encode_multipart",
    "encode_text",
    "encode_xml",
    "failure",
    "handle_raw_upload",
    "parse_bytes",
    "parse_csv",
    "parse_form",
    "parse_html",
    "parse_json",
    "parse_text",
    "parse_xml",
    "success",
]
