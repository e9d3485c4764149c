# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed Transport implementation."""

from __future__ import annotations

import io
import logging

import httpx

from .chain import Auth, AuthType
from .config import HttpSettings, load_http_settings
from .errors import TransportError
from .headers import Header
from .models import FromServer, HttpRequest
from .transport import Transport

logger = logging.getLogger(__name__)

_DEFAULT_MAX_BODY_BYTES = 16 * 1024 * 1024


def _httpx_auth(auth: Auth | None) -> httpx.Auth | None:
    if auth is None:
        return None
    if auth.auth_type is AuthType.DIGEST:
        return httpx.DigestAuth(auth.user, auth.password)
    return httpx.BasicAuth(auth.user, auth.password)


class HttpxTransport(Transport):
    """Synchronous httpx client wrapper."""

    def __init__(self, settings: HttpSettings | None = None, client: httpx.Client | None = None):
        self.settings = settings or load_http_settings()
        self._client = client or httpx.Client(
            follow_redirects=self.settings.allow_redirects,
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
        )

    def execute(self, request: HttpRequest) -> FromServer:
        headers = dict(request.headers or {})
        if not any(key.lower() == "user-agent" for key in headers):
            headers["User-Agent"] = self.settings.user_agent

        max_body_bytes = self.settings.max_body_bytes
        if max_body_bytes <= 0:
            max_body_bytes = _DEFAULT_MAX_BODY_BYTES
        timeout = request.timeout if request.timeout is not None else self.settings.timeout

        try:
            with self._client.stream(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
                auth=_httpx_auth(request.auth),
                timeout=timeout,
                follow_redirects=request.allow_redirects,
            ) as resp:
                content = bytearray()
                truncated = False
                for chunk in resp.iter_bytes():
                    if not chunk:
                        continue
                    remaining = max_body_bytes - len(content)
                    if len(chunk) > remaining:
                        content.extend(chunk[:remaining])
                        truncated = True
                        logger.warning("Response body from %s truncated at %d bytes", request.url, max_body_bytes)
                        break
                    content.extend(chunk)
        except httpx.HTTPError as exc:
            raise TransportError.wrap(exc) from exc
        except OSError as exc:
            raise TransportError.wrap(exc) from exc

        return FromServer(
            status_code=resp.status_code,
            message=resp.reason_phrase,
            headers=[Header(key, value) for key, value in resp.headers.multi_items()],
            body=io.BytesIO(bytes(content)),
            has_body=bool(content) and request.method != "HEAD",
            uri=str(resp.url),
            truncated=truncated,
        )

    def close(self) -> None:
        self._client.close()


__all__ = ["HttpxTransport"]
