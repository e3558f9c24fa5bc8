"""
Unit tests for recorder/capture/builder.py

Tests for:
- begin() snapshots method, host, path and headers from the ASGI scope
- Request bodies are teed without being consumed
- complete() only works once, after the final response chunk
- Absent vs empty bodies, and declared bodies the handler never read
- Header redaction
"""

import logging

import pytest

pytestmark = pytest.mark.unit

from recorder.capture import (
    ExchangeAlreadyCompletedError,
    ExchangeIncompleteError,
    begin,
    complete,
)


def make_scope(method="GET", path="/", query=b"", headers=None, raw_path=None):
    scope = {
        "type": "http",
        "method": method,
        "scheme": "http",
        "path": path,
        "query_string": query,
        "headers": headers if headers is not None else [(b"host", b"testserver")],
        "server": ("testserver", 80),
    }
    if raw_path is not None:
        scope["raw_path"] = raw_path
    return scope


def finish(pending, status=200, body=b"ok", headers=None):
    pending.observe_response(
        {"type": "http.response.start", "status": status, "headers": headers or []}
    )
    return pending.observe_response({"type": "http.response.body", "body": body})


class TestBegin:
    def test_snapshots_request_line(self):
        pending = begin(make_scope(method="get", path="/users", query=b"page=2"))

        assert pending.method == "GET"
        assert pending.path == "/users?page=2"
        assert pending.host == "testserver"
        assert pending.protocol == "http"

    def test_raw_path_with_query_is_not_duplicated(self):
        pending = begin(make_scope(path="/a b", query=b"x=1", raw_path=b"/a%20b?x=1"))
        assert pending.path == "/a%20b?x=1"

    def test_host_falls_back_to_server(self):
        pending = begin(make_scope(headers=[]))
        assert pending.host == "testserver:80"

    def test_redacts_configured_headers(self):
        scope = make_scope(headers=[(b"authorization", b"Bearer secret"), (b"accept", b"*/*")])
        pending = begin(scope, redact_headers=["Authorization"])

        assert ("authorization", "***") in pending.request_headers
        assert ("accept", "*/*") in pending.request_headers


class TestObserve:
    def test_request_chunks_are_teed(self):
        pending = begin(make_scope(method="POST", headers=[(b"content-length", b"6")]))
        first = {"type": "http.request", "body": b"abc", "more_body": True}
        second = {"type": "http.request", "body": b"def", "more_body": False}

        pending.observe_request(first)
        pending.observe_request(second)
        finish(pending)

        assert first["body"] == b"abc"
        assert complete(pending).request.body == b"abcdef"

    def test_streamed_response_finishes_on_last_chunk(self):
        pending = begin(make_scope())
        pending.observe_response({"type": "http.response.start", "status": 200, "headers": []})

        assert not pending.observe_response(
            {"type": "http.response.body", "body": b"a", "more_body": True}
        )
        assert pending.observe_response({"type": "http.response.body", "body": b"b"})
        assert complete(pending).response.body == b"ab"


class TestComplete:
    def test_complete_before_response_raises(self):
        pending = begin(make_scope())
        pending.observe_response({"type": "http.response.start", "status": 200, "headers": []})

        with pytest.raises(ExchangeIncompleteError):
            complete(pending)

    def test_complete_twice_raises(self):
        pending = begin(make_scope())
        finish(pending)
        complete(pending)

        with pytest.raises(ExchangeAlreadyCompletedError):
            complete(pending)

    def test_request_without_declared_body_is_absent(self):
        pending = begin(make_scope())
        finish(pending)
        assert complete(pending).request.body is None

    def test_declared_empty_request_body_is_empty(self):
        pending = begin(make_scope(method="POST", headers=[(b"content-length", b"0")]))
        pending.observe_request({"type": "http.request", "body": b""})
        finish(pending)
        assert complete(pending).request.body == b""

    def test_unread_declared_body_records_what_was_read(self, caplog):
        pending = begin(make_scope(method="POST", headers=[(b"content-length", b"12")]))
        finish(pending, status=401, body=b"unauthorized")

        with caplog.at_level(logging.DEBUG, logger="recorder.capture.builder"):
            exchange = complete(pending)

        assert exchange.request.body == b""
        assert exchange.response.status_code == 401
        assert any("declared a 12 byte body" in r.getMessage() for r in caplog.records)

    def test_no_content_response_body_is_absent(self):
        pending = begin(make_scope(method="DELETE"))
        finish(pending, status=204, body=b"")
        assert complete(pending).response.body is None

    def test_empty_ok_response_body_is_empty(self):
        pending = begin(make_scope())
        finish(pending, status=200, body=b"")
        assert complete(pending).response.body == b""

    def test_head_response_body_is_absent(self):
        pending = begin(make_scope(method="HEAD"))
        finish(pending, status=200, body=b"")
        assert complete(pending).response.body is None

    def test_response_headers_and_timestamps(self):
        pending = begin(make_scope())
        finish(pending, headers=[(b"Content-Type", b"text/plain"), (b"set-cookie", b"a=1"), (b"set-cookie", b"b=2")])
        exchange = complete(pending)

        assert exchange.response.get_header("content-type") == "text/plain"
        assert exchange.response.get_all_headers("Set-Cookie") == ["a=1", "b=2"]
        assert exchange.request.timestamp <= exchange.response.timestamp
