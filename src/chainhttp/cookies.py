# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Cookie model and the client-wide cookie stores."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from http.cookies import CookieError, SimpleCookie

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    # naive datetimes are taken as local time
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Cookie:
    """An immutable request/response cookie."""

    name: str
    value: str
    expires: datetime | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("cookie name cannot be empty")
        object.__setattr__(self, "expires", _as_aware(self.expires))

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (now or _utcnow())

    def header_fragment(self) -> str:
        return f"{self.name}={self.value}"

    @classmethod
    def parse_set_cookie(cls, raw: str) -> list[Cookie]:
        """Parse a Set-Cookie header value; malformed values yield no cookies."""
        jar: SimpleCookie = SimpleCookie()
        try:
            jar.load(raw)
        except CookieError:
            logger.debug("Ignoring malformed Set-Cookie value: %r", raw)
            return []

        cookies = []
        for morsel in jar.values():
            expires: datetime | None = None
            max_age = morsel["max-age"]
            if max_age:
                try:
                    expires = _utcnow() + timedelta(seconds=int(max_age))
                except ValueError:
                    expires = None
            elif morsel["expires"]:
                try:
                    expires = parsedate_to_datetime(morsel["expires"])
                except (TypeError, ValueError):
                    expires = None
            cookies.append(cls(morsel.key, morsel.value, expires))
        return cookies


def merge_cookies(layers: Iterable[Iterable[Cookie]]) -> list[Cookie]:
    """Merge cookie layers from least to most specific, de-duplicated by name."""
    merged: dict[str, Cookie] = {}
    for layer in layers:
        for cookie in layer:
            merged.pop(cookie.name, None)
            merged[cookie.name] = cookie
    return list(merged.values())


class CookieStore:
    """Thread-safe, client-wide cookie jar keyed by cookie name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cookies: dict[str, Cookie] = {}

    def add(self, cookie: Cookie) -> None:
        with self._lock:
            if cookie.is_expired():
                self._cookies.pop(cookie.name, None)
                return
            self._cookies[cookie.name] = cookie
        logger.debug("Stored cookie %s", cookie.name)

    def add_all(self, cookies: Iterable[Cookie]) -> None:
        for cookie in cookies:
            self.add(cookie)

    def cookies(self) -> list[Cookie]:
        now = _utcnow()
        with self._lock:
            expired = [name for name, cookie in self._cookies.items() if cookie.is_expired(now)]
            for name in expired:
                del self._cookies[name]
            return list(self._cookies.values())

    def remove(self, name: str) -> bool:
        with self._lock:
            return self._cookies.pop(name, None) is not None

    def clear(self) -> bool:
        with self._lock:
            had_cookies = bool(self._cookies)
            self._cookies.clear()
            return had_cookies

    def __len__(self) -> int:
        return len(self.cookies())


class NullCookieStore(CookieStore):
    """Cookie store used when cookie handling is disabled; keeps nothing."""

    def add(self, cookie: Cookie) -> None:
        return None

    def cookies(self) -> list[Cookie]:
        return []


__all__ = ["Cookie", "CookieStore", "NullCookieStore", "merge_cookies"]
