# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""chainhttp CLI: issue one request through HttpBuilder and print the parsed result."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any
from xml.etree import ElementTree

from ..builder import HttpBuilder
from ..chain import ChainedConfig, HttpVerb
from ..config import HttpSettings, load_http_settings
from ..errors import ChainHttpError, HttpException, TransportError, error_category_to_reason
from ..log import setup_logging
from ..transport import Transport, create_default_transport

CLI_TEXT_TRUNCATION_BYTES = 64 * 1024


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send an HTTP request and print the decoded response body")
    parser.add_argument("method", type=str.upper, choices=[verb.value for verb in HttpVerb], help="HTTP verb")
    parser.add_argument("url", help="Absolute request URL")
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Request header (repeatable)",
    )
    parser.add_argument("-d", "--data", help="Request body; '@path' uploads a file")
    parser.add_argument(
        "-t",
        "--content-type",
        help="Request content type (default: text/plain with --data)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON instead of the plain body",
    )
    parser.add_argument(
        "--ignore-ssl-errors",
        action="store_true",
        help="Skip TLS verification (useful for lab/self-signed targets)",
    )
    parser.add_argument("--log-level", help="Logging level (default: CHAINHTTP_LOG_LEVEL or WARNING)")
    return parser


def _parse_headers(raw_headers: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Malformed header {raw!r}; expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    keep = max(0, max_bytes - len(suffix))
    return raw[:keep].decode("utf-8", errors="ignore") + suffix


def _render(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, (bytes, bytearray)):
        return bytes(result).decode("utf-8", errors="replace")
    if isinstance(result, ElementTree.Element):
        return ElementTree.tostring(result, encoding="unicode")
    if isinstance(result, (dict, list)):
        return json.dumps(result, indent=2, sort_keys=True)
    return str(result)


def _print_json(status: int | None, result: Any) -> None:
    payload: Any = result
    if not isinstance(result, (dict, list, str, int, float, bool)) and result is not None:
        payload = _truncate_text_bytes(_render(result), CLI_TEXT_TRUNCATION_BYTES)
    json.dump({"status": status, "body": payload}, sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")


def _request_configurer(args: argparse.Namespace, headers: dict[str, str]):
    def configure(config: ChainedConfig) -> None:
        config.request.set_uri(args.url)
        config.request.set_headers(headers)
        if args.data is not None:
            config.request.content_type = args.content_type or "text/plain"
            if args.data.startswith("@"):
                config.request.body = Path(args.data[1:])
            else:
                config.request.body = args.data
        elif args.content_type:
            config.request.content_type = args.content_type

    return configure


def main(argv: list[str] | None = None, *, transport: Transport | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        headers = _parse_headers(args.header)
    except ValueError as exc:
        parser.error(str(exc))

    settings: HttpSettings = load_http_settings()
    if args.ignore_ssl_errors:
        settings.verify_ssl = False

    statuses: list[int] = []

    def remember_status(from_server, body):
        statuses.append(from_server.status_code)
        return body

    def configure_client(object_config) -> None:
        object_config.response.success(remember_status)

    try:
        with HttpBuilder.configure(
            configure_client,
            transport=transport or create_default_transport(settings),
            settings=settings,
        ) as http:
            result = http.request(args.method, _request_configurer(args, headers))
    except HttpException as exc:
        sys.stderr.write(f"HTTP {exc.status_code} {exc.from_server.message}".rstrip() + "\n")
        if exc.body is not None:
            sys.stderr.write(_truncate_text_bytes(_render(exc.body), CLI_TEXT_TRUNCATION_BYTES) + "\n")
        return 1
    except TransportError as exc:
        sys.stderr.write(f"error: {error_category_to_reason(exc.category)}: {exc}\n")
        return 1
    except ChainHttpError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1

    status = statuses[-1] if statuses else None
    if args.json:
        _print_json(status, result)
    else:
        print(_truncate_text_bytes(_render(result), CLI_TEXT_TRUNCATION_BYTES))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
