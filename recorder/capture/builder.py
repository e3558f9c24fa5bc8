"""
Exchange record builder.

``begin()`` snapshots an ASGI request when processing starts. The returned
PendingExchange observes the messages flowing through ``receive`` and
``send`` without consuming them, and ``complete()`` turns it into an
immutable HttpExchange once the final response body chunk has been written.

The request body is the bytes the application actually read through
``receive``. A handler that answers without reading a declared body (an
early 401 or 404 on a POST) leaves the rest unread, so the record holds only
what was read, possibly ``b""``. Reading it on the handler's behalf would
consume the client's stream, so the shortfall is logged at debug level
instead.
"""

import logging
from collections.abc import Iterable, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from domain.models import ExchangeRequest, ExchangeResponse, HttpExchange

logger = logging.getLogger(__name__)

REDACTED = "***"

# Status codes that never carry a response body.
_BODYLESS_STATUS = {204, 304}


class ExchangeIncompleteError(RuntimeError):
    """Raised when complete() is called before the response finished."""


class ExchangeAlreadyCompletedError(RuntimeError):
    """Raised when complete() is called twice for one request."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _decode_headers(
    raw: Iterable[tuple[bytes, bytes]], redact: frozenset
) -> tuple[tuple[str, str], ...]:
    headers = []
    for name, value in raw:
        key = name.decode("latin-1").lower()
        headers.append((key, REDACTED if key in redact else value.decode("latin-1")))
    return tuple(headers)


@dataclass
class PendingExchange:
    """Per-request capture state. Owned by a single request; never shared."""

    method: str
    protocol: str
    host: str
    path: str
    request_headers: tuple[tuple[str, str], ...]
    request_has_body: bool
    request_timestamp: datetime
    redact: frozenset = frozenset()
    request_declared_length: int | None = None

    request_chunks: list[bytes] = field(default_factory=list)
    status_code: int | None = None
    response_headers: tuple[tuple[str, str], ...] = ()
    response_chunks: list[bytes] = field(default_factory=list)
    response_timestamp: datetime | None = None
    finished: bool = False
    completed: bool = False

    def observe_request(self, message: MutableMapping[str, Any]) -> None:
        """Tee one message returned by the server's receive()."""
        if message.get("type") == "http.request":
            body = message.get("body", b"")
            if body:
                self.request_chunks.append(body)

    def observe_response(self, message: MutableMapping[str, Any]) -> bool:
        """
        Record one message passed to the server's send().

        Returns:
            True once the final body chunk of the response has been sent
        """
        message_type = message.get("type")
        if message_type == "http.response.start":
            self.status_code = message["status"]
            self.response_headers = _decode_headers(message.get("headers", ()), self.redact)
        elif message_type == "http.response.body" and self.status_code is not None:
            body = message.get("body", b"")
            if body:
                self.response_chunks.append(body)
            if not message.get("more_body", False):
                self.finished = True
                self.response_timestamp = _utcnow()
        return self.finished

    def _response_body(self) -> bytes | None:
        body = b"".join(self.response_chunks)
        if body:
            return body
        if self.method == "HEAD" or self.status_code < 200 or self.status_code in _BODYLESS_STATUS:
            return None
        return body


def begin(scope: MutableMapping[str, Any], *, redact_headers: Iterable[str] = ()) -> PendingExchange:
    """Snapshot an HTTP scope at the moment the server starts processing it."""
    redact = frozenset(h.lower() for h in redact_headers)
    headers = _decode_headers(scope.get("headers", ()), redact)
    header_names = {name for name, _ in headers}

    host = next((v for k, v in headers if k == "host"), "")
    if not host and scope.get("server"):
        server_host, server_port = scope["server"]
        host = f"{server_host}:{server_port}" if server_port else server_host

    # Some servers put the query string in raw_path as well.
    raw_path = scope.get("raw_path") or scope.get("path", "/").encode("utf-8")
    path = raw_path.split(b"?", 1)[0].decode("latin-1")
    query = scope.get("query_string", b"")
    if query:
        path = f"{path}?{query.decode('latin-1')}"

    content_length = next((v for k, v in headers if k == "content-length"), "")

    return PendingExchange(
        method=scope.get("method", "GET").upper(),
        protocol=scope.get("scheme", "http"),
        host=host,
        path=path,
        request_headers=headers,
        request_has_body="content-length" in header_names
        or "transfer-encoding" in header_names,
        request_timestamp=_utcnow(),
        redact=redact,
        request_declared_length=int(content_length) if content_length.isdigit() else None,
    )


def complete(pending: PendingExchange) -> HttpExchange:
    """
    Build the immutable record for a finished request.

    Raises:
        ExchangeIncompleteError: If the response has not been fully written
        ExchangeAlreadyCompletedError: If the exchange was already completed
    """
    if pending.completed:
        raise ExchangeAlreadyCompletedError(
            f"Exchange for {pending.method} {pending.path} was already completed"
        )
    if not pending.finished:
        raise ExchangeIncompleteError(
            f"Response for {pending.method} {pending.path} has not been fully written"
        )
    pending.completed = True

    request_body = b"".join(pending.request_chunks) if pending.request_has_body else None
    declared = pending.request_declared_length
    if declared is not None and len(request_body) < declared:
        logger.debug(
            "%s %s declared a %d byte body but the application read %d; recording what was read",
            pending.method,
            pending.path,
            declared,
            len(request_body),
        )

    return HttpExchange(
        request=ExchangeRequest(
            method=pending.method,
            protocol=pending.protocol,
            host=pending.host,
            path=pending.path,
            headers=pending.request_headers,
            body=request_body,
            timestamp=pending.request_timestamp,
        ),
        response=ExchangeResponse(
            status_code=pending.status_code,
            headers=pending.response_headers,
            body=pending._response_body(),
            timestamp=pending.response_timestamp,
        ),
    )
