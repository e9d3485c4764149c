# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from datetime import datetime, timedelta, timezone

import pytest

from chainhttp import handlers
from chainhttp.chain import Auth, AuthType, ChainedConfig, HttpVerb, traverse
from chainhttp.defaults import basic, root, thread_safe
from chainhttp.errors import ConfigurationError, FrozenConfigError


def _three_levels():
    top = ChainedConfig(None, thread_safe=True)
    client = ChainedConfig(top, thread_safe=True)
    request = ChainedConfig(client)
    return top, client, request


def test_nearest_scalar_value_wins():
    top, client, request = _three_levels()
    top.request.content_type = "text/plain"
    client.request.content_type = "application/json"

    assert request.request.actual_content_type() == "application/json"
    request.request.content_type = "application/xml"
    assert request.request.actual_content_type() == "application/xml"
    assert client.request.actual_content_type() == "application/json"


def test_unset_values_bottom_out_at_none():
    _, _, request = _three_levels()

    assert request.request.actual_body() is None
    assert request.request.actual_auth() is None
    assert request.response.actual_exception() is None


def test_headers_merge_case_insensitively_with_child_winning():
    top, client, request = _three_levels()
    top.request.set_headers({"Accept": "*/*", "X-A": "1"})
    client.request.set_headers({"x-a": "2"})
    request.request.header("X-B", 3)

    assert request.request.actual_headers() == {"Accept": "*/*", "x-a": "2", "X-B": "3"}
    assert request.request.headers == {"X-B": "3"}


def test_cookies_merge_by_name():
    top, _, request = _three_levels()
    top.request.cookie("a", "1")
    request.request.cookie("a", "2")
    request.request.cookie("b", "3")

    merged = {cookie.name: cookie.value for cookie in request.request.actual_cookies()}
    assert merged == {"a": "2", "b": "3"}


def test_cookie_expiry_accepts_datetime():
    _, _, request = _three_levels()
    expires = datetime.now(timezone.utc) + timedelta(days=1)
    request.request.cookie("session", "abc", expires)

    (cookie,) = request.request.cookies
    assert cookie.expires == expires
    assert cookie.is_expired() is False


def test_accept_values_are_joined():
    _, _, request = _three_levels()
    request.request.set_accept(["application/json", "text/plain"])

    assert request.request.headers == {"Accept": "application/json, text/plain"}


def test_auth_helpers_store_auth():
    _, client, request = _three_levels()
    client.request.basic("user", "secret")

    assert request.request.actual_auth() == Auth(AuthType.BASIC, "user", "secret", False)
    request.request.digest("other", "pw", preemptive=True)
    assert request.request.actual_auth().auth_type is AuthType.DIGEST


def test_charset_is_normalised_and_validated():
    _, _, request = _three_levels()
    request.request.charset = "UTF8"

    assert request.request.charset == "utf-8"
    with pytest.raises(ConfigurationError):
        request.request.charset = "no-such-charset"


def test_verb_accepts_strings():
    _, _, request = _three_levels()
    request.request.verb = "PATCH"

    assert request.request.actual_verb() is HttpVerb.PATCH


def test_configure_applies_callback_and_returns_level():
    _, client, _ = _three_levels()

    result = client.configure(lambda c: c.request.set_uri("http://example.com/base"))

    assert result is client
    assert client.request.uri.to_uri() == "http://example.com/base"


def test_request_uri_inherits_from_client():
    _, client, request = _three_levels()
    client.request.set_uri("http://example.com/base?token=abc")
    request.request.uri.set_path("/items")

    assert request.request.uri.to_uri() == "http://example.com/items?token=abc"


def test_frozen_level_rejects_mutation():
    _, _, request = _three_levels()
    request.freeze()

    assert request.frozen is True
    with pytest.raises(FrozenConfigError):
        request.request.content_type = "text/plain"
    with pytest.raises(FrozenConfigError):
        request.response.success(lambda fs, body: body)
    with pytest.raises(FrozenConfigError):
        request.request.uri.set_path("/x")
    with pytest.raises(FrozenConfigError):
        request.configure(lambda c: None)


def test_context_walks_to_parent():
    top, _, request = _three_levels()
    top.context("text/csv", "dialect", "excel")

    assert request.actual_context("text/csv", "dialect") == "excel"
    assert request.actual_context("text/tab-separated-values", "dialect") is None


def test_find_content_type_requires_a_value():
    _, _, request = _three_levels()

    with pytest.raises(ConfigurationError, match="content type is undefined"):
        request.find_content_type()


def test_find_encoder_reports_missing_content_type():
    config = basic()

    with pytest.raises(ConfigurationError, match=r"Could not find encoder for content-type \(application/x-unknown\)"):
        config.find_encoder("application/x-unknown")


def test_find_parser_falls_back_to_bytes():
    assert basic().find_parser("application/x-unknown") is handlers.parse_bytes
    assert basic().find_parser(None) is handlers.parse_bytes


def test_root_is_shared_and_preconfigured():
    assert root() is root()
    config = thread_safe()

    assert config.parent is root()
    assert config.find_encoder("application/json") is handlers.encode_json
    assert config.find_parser("text/xml") is handlers.parse_xml
    assert config.find_charset() == "utf-8"
    assert config.actual_context("text/csv", handlers.CSV_DIALECT) == "excel"
    assert config.actual_context("text/tab-separated-values", handlers.CSV_DIALECT) == "excel-tab"


def test_traverse_returns_first_accepted_value():
    chain = {"c": ("b", None), "b": ("a", 2), "a": (None, 1)}

    found = traverse("c", lambda key: chain[key][0], lambda key: chain[key][1])

    assert found == 2
    assert traverse("c", lambda key: chain[key][0], lambda key: chain[key][1], lambda v: v == 1) == 1


def test_root_rejects_modification():
    with pytest.raises(FrozenConfigError):
        root().request.header("X-Leak", "1")
    with pytest.raises(FrozenConfigError):
        root().response.success(lambda from_server, body: body)
    with pytest.raises(FrozenConfigError):
        root().request.uri.set_host("attacker.test")

    assert thread_safe().request.actual_headers() == {}
