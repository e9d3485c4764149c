# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from concurrent.futures import ThreadPoolExecutor

import pytest

from chainhttp.builder import HttpBuilder
from chainhttp.chain import Auth, AuthType, HttpVerb
from chainhttp.config import HttpSettings
from chainhttp.cookies import NullCookieStore
from chainhttp.errors import (
    ConfigurationError,
    ErrorCategory,
    FrozenConfigError,
    HttpException,
    ParserError,
    TransportError,
)
from chainhttp.headers import Header
from chainhttp.models import FromServer
from chainhttp.multipart import MultipartContent
from chainhttp.transport import StubTransport

BASE = "http://example.test"


def _reply(status=200, content=b"", headers=None):
    return lambda request: FromServer.from_bytes(status, content, headers or {}, uri=request.url)


def _json(status, content):
    return _reply(status, content, {"Content-Type": "application/json"})


def make_http(transport, configure=None, settings=None):
    def configure_client(object_config):
        object_config.request.set_uri(BASE)
        if configure is not None:
            configure(object_config)

    return HttpBuilder.configure(configure_client, transport=transport, settings=settings or HttpSettings())


def test_get_parses_json_body():
    transport = StubTransport({f"{BASE}/items": _json(200, b'{"a": 1}')})
    http = make_http(transport)

    result = http.get(lambda c: c.request.uri.set_path("/items"))

    assert result == {"a": 1}
    assert transport.requests[0].method == "GET"
    assert transport.requests[0].url == f"{BASE}/items"
    assert transport.requests[0].body is None


def test_every_verb_dispatches_its_method():
    transport = StubTransport({BASE: _reply(204)})
    http = make_http(transport)

    for name in ("get", "head", "post", "put", "delete", "patch", "options", "trace"):
        assert getattr(http, name)() is None

    assert [request.method for request in transport.requests] == [verb.value for verb in HttpVerb]


def test_post_encodes_body_and_sets_content_type():
    transport = StubTransport({BASE: _reply(201)})
    http = make_http(transport)

    def configure(config):
        config.request.content_type = "application/json"
        config.request.body = {"k": "v"}

    assert http.post(configure) is None
    sent = transport.requests[0]
    assert sent.body == b'{"k": "v"}'
    assert sent.headers["Content-Type"] == "application/json; charset=utf-8"


def test_multipart_post_advertises_boundary():
    transport = StubTransport({BASE: _reply(201)})
    http = make_http(transport)

    def configure(config):
        config.request.content_type = "multipart/form-data"
        config.request.body = MultipartContent(boundary="b0und").field("field", "v")

    http.post(configure)

    sent = transport.requests[0]
    assert sent.headers["Content-Type"] == "multipart/form-data; boundary=b0und"
    assert sent.body == (
        b"--b0und\r\n"
        b'Content-Disposition: form-data; name="field"\r\n'
        b"Content-Type: text/plain\r\n"
        b"\r\n"
        b"v\r\n"
        b"--b0und--\r\n"
    )


def test_missing_encoder_fails_before_transport():
    transport = StubTransport({BASE: _reply(200)})
    http = make_http(transport)

    def configure(config):
        config.request.content_type = "application/x-unknown"
        config.request.body = "data"

    with pytest.raises(ConfigurationError, match="Could not find encoder"):
        http.post(configure)
    assert transport.requests == []


def test_body_without_content_type_fails_before_transport():
    transport = StubTransport({BASE: _reply(200)})
    http = make_http(transport)

    with pytest.raises(ConfigurationError, match="content type is undefined"):
        http.put(lambda c: setattr(c.request, "body", "data"))
    assert transport.requests == []


def test_relative_uri_is_rejected():
    transport = StubTransport()
    http = HttpBuilder.configure(transport=transport, settings=HttpSettings())

    with pytest.raises(ConfigurationError):
        http.get(lambda c: c.request.uri.set_path("/only-a-path"))
    assert transport.requests == []


def test_headers_and_auth_are_resolved_from_chain():
    transport = StubTransport({BASE: _reply(200)})
    http = make_http(transport, lambda oc: (oc.request.set_headers({"X-Client": "1", "X-Keep": "k"}), oc.request.basic("u", "p")))

    http.get(lambda c: c.request.header("x-client", "2"))

    sent = transport.requests[0]
    assert sent.headers == {"x-client": "2", "X-Keep": "k"}
    assert sent.auth == Auth(AuthType.BASIC, "u", "p", False)


def test_unhandled_failure_raises_http_exception():
    transport = StubTransport({BASE: _reply(404, b"missing", {"Content-Type": "text/plain"})})
    http = make_http(transport)

    with pytest.raises(HttpException) as excinfo:
        http.get()
    assert excinfo.value.status_code == 404
    assert excinfo.value.body == "missing"


def test_request_level_code_handler_receives_parsed_body():
    transport = StubTransport({BASE: _reply(404, b"missing", {"Content-Type": "text/plain"})})
    http = make_http(transport)

    result = http.get(lambda c: c.response.when(404, lambda fs, body: ("handled", fs.status_code, body)))

    assert result == ("handled", 404, "missing")


def test_client_exact_code_beats_request_failure_bucket():
    transport = StubTransport({BASE: _reply(404)})
    http = make_http(transport, lambda oc: oc.response.when(404, lambda fs, body: "client-exact"))

    assert http.get(lambda c: c.response.failure(lambda fs, body: "request-bucket")) == "client-exact"


def test_transport_error_without_handler_propagates():
    transport = StubTransport({BASE: ConnectionRefusedError("refused")})
    http = make_http(transport)

    with pytest.raises(TransportError) as excinfo:
        http.get()
    assert excinfo.value.category is ErrorCategory.CONNECTION_ERROR
    assert isinstance(excinfo.value.__cause__, ConnectionRefusedError)


def test_exception_handlers_are_resolved_request_first():
    transport = StubTransport({BASE: RuntimeError("boom")})
    http = make_http(transport, lambda oc: oc.response.exception(lambda exc: "client"))

    assert http.get() == "client"
    assert http.get(lambda c: c.response.exception(lambda exc: ("request", type(exc).__name__))) == (
        "request",
        "TransportError",
    )


def test_parser_error_routes_to_exception_handler():
    transport = StubTransport({BASE: _json(200, b"{not json")})
    http = make_http(transport)

    with pytest.raises(ParserError) as excinfo:
        http.get()
    assert excinfo.value.content_type == "application/json"
    assert excinfo.value.truncated is False

    assert http.get(lambda c: c.response.exception(lambda exc: "recovered")) == "recovered"


def test_parser_error_reports_truncated_body():
    transport = StubTransport(
        {
            BASE: lambda request: FromServer.from_bytes(
                200, b'{"items": [1, 2', {"Content-Type": "application/json"}, truncated=True
            )
        }
    )
    http = make_http(transport)

    with pytest.raises(ParserError, match="truncated") as excinfo:
        http.get()
    assert excinfo.value.truncated is True


def test_custom_request_parser_overrides_root():
    transport = StubTransport({BASE: _json(200, b'{"a": 1}')})
    http = make_http(transport)

    result = http.get(lambda c: c.response.parser("application/json", lambda config, fs: fs.read().upper()))

    assert result == b'{"A": 1}'


def test_interceptor_wraps_selected_verbs():
    transport = StubTransport({BASE: _reply(200, b"ok", {"Content-Type": "text/plain"})})
    seen = []

    def interceptor(config, proceed):
        seen.append(config.request.verb)
        return ("wrapped", proceed(config))

    http = make_http(transport, lambda oc: oc.execution.interceptor([HttpVerb.GET, "post"], interceptor))

    assert http.get() == ("wrapped", "ok")
    assert http.post() == ("wrapped", "ok")
    assert http.put() == "ok"
    assert seen == [HttpVerb.GET, HttpVerb.POST]


def test_interceptor_registration_overwrites_slot():
    transport = StubTransport({BASE: _reply(200, b"ok", {"Content-Type": "text/plain"})})

    def configure(oc):
        oc.execution.interceptor(HttpVerb.GET, lambda config, proceed: "first")
        oc.execution.interceptor(HttpVerb.GET, lambda config, proceed: "second")

    http = make_http(transport, configure)

    assert http.get() == "second"
    assert transport.requests == []


def test_request_config_is_frozen_after_execution():
    transport = StubTransport({BASE: _reply(200)})
    http = make_http(transport)
    captured = []

    http.get(captured.append)

    assert captured[0].frozen is True
    with pytest.raises(FrozenConfigError):
        captured[0].request.set_headers({"X": "1"})


def test_success_cookies_are_stored_and_sent():
    transport = StubTransport()
    transport.add(
        f"{BASE}/login",
        _reply(200, headers=[Header("Set-Cookie", "session=abc; Path=/"), Header("Set-Cookie", "theme=dark")]),
    )
    transport.add(f"{BASE}/profile", _reply(200))
    http = make_http(transport)

    http.post(lambda c: c.request.uri.set_path("/login"))
    http.get(lambda c: (c.request.uri.set_path("/profile"), c.request.cookie("extra", "1")))

    assert {cookie.name: cookie.value for cookie in http.cookie_store.cookies()} == {"session": "abc", "theme": "dark"}
    assert transport.requests[1].headers["Cookie"] == "session=abc; theme=dark; extra=1"


def test_failure_cookies_are_not_stored():
    transport = StubTransport({BASE: _reply(500, headers=[Header("Set-Cookie", "session=bad")])})
    http = make_http(transport, lambda oc: oc.response.failure(lambda fs, body: None))

    http.get()

    assert http.cookie_store.cookies() == []


def test_cookie_store_can_be_disabled():
    transport = StubTransport({BASE: _reply(200, headers=[Header("Set-Cookie", "session=abc")])})
    http = make_http(transport, settings=HttpSettings(cookies_enabled=False))

    http.get()
    http.get()

    assert isinstance(http.cookie_store, NullCookieStore)
    assert "Cookie" not in transport.requests[1].headers


def test_result_type_is_enforced():
    transport = StubTransport({BASE: _json(200, b'{"a": 1}')})
    http = make_http(transport)

    assert http.get(result_type=dict) == {"a": 1}
    with pytest.raises(TypeError):
        http.get(result_type=list)


def test_response_type_from_chain_is_enforced():
    transport = StubTransport({BASE: _json(200, b"[1, 2]")})
    http = make_http(transport, lambda oc: setattr(oc.response, "type", dict))

    with pytest.raises(TypeError):
        http.get()


def test_async_verbs_return_futures():
    transport = StubTransport({BASE: _json(200, b'{"async": true}')})

    with make_http(transport, lambda oc: setattr(oc.execution, "max_threads", 2)) as http:
        futures = [http.get_async() for _ in range(4)]
        results = [future.result(timeout=5) for future in futures]

    assert results == [{"async": True}] * 4
    assert transport.closed is True


def test_async_errors_surface_through_future():
    transport = StubTransport({BASE: _reply(500)})

    with make_http(transport) as http:
        future = http.delete_async()
        with pytest.raises(HttpException):
            future.result(timeout=5)


def test_caller_supplied_executor_is_used_and_left_open():
    transport = StubTransport({BASE: _reply(200, b"ok", {"Content-Type": "text/plain"})})
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="caller")

    try:
        http = make_http(transport, lambda oc: setattr(oc.execution, "executor", executor))
        assert http.post_async().result(timeout=5) == "ok"
        http.close()
        assert executor.submit(lambda: 42).result(timeout=5) == 42
    finally:
        executor.shutdown(wait=True)
