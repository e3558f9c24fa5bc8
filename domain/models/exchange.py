"""
Exchange value objects.

An exchange is one HTTP request paired with the response that was written
for it. Records are frozen once built; the capture layer is the only place
that constructs them.

The wire form is a JSON document shaped like::

    {
        "request": {"method", "protocol", "host", "path", "pathname",
                    "query", "headers", "body"?, "bodyEncoding"?, "timestamp"},
        "response": {"statusCode", "headers", "body"?, "bodyEncoding"?,
                     "timestamp"}
    }

Header values are always lists so repeated headers survive. A missing
``body`` key means the message had no body, ``""`` means an empty one.
"""

import base64
import binascii
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

HeaderPairs = Tuple[Tuple[str, str], ...]

BODY_ENCODING_UTF8 = "utf-8"
BODY_ENCODING_BASE64 = "base64"


class ExchangeCodecError(ValueError):
    """Raised when a serialized exchange cannot be decoded."""


def _normalize_headers(value: Any) -> HeaderPairs:
    if isinstance(value, dict):
        pairs = []
        for name, values in value.items():
            if isinstance(values, (list, tuple)):
                pairs.extend((name, v) for v in values)
            else:
                pairs.append((name, values))
        value = pairs
    return tuple((str(name).lower(), str(v)) for name, v in value)


class _ExchangeMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    headers: HeaderPairs = Field(
        default=(), description="Header (name, value) pairs in arrival order"
    )
    body: Optional[bytes] = Field(
        default=None, description="Raw body bytes, None when the message had no body"
    )
    timestamp: datetime

    @field_validator("headers", mode="before")
    @classmethod
    def lower_header_names(cls, v: Any) -> HeaderPairs:
        return _normalize_headers(v)

    def get_header(self, name: str) -> Optional[str]:
        """Return the first value of a header, matched case-insensitively."""
        values = self.get_all_headers(name)
        return values[0] if values else None

    def get_all_headers(self, name: str) -> List[str]:
        """Return every value of a header in arrival order."""
        name = name.lower()
        return [v for k, v in self.headers if k == name]

    def headers_as_dict(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for name, value in self.headers:
            grouped.setdefault(name, []).append(value)
        return grouped


class ExchangeRequest(_ExchangeMessage):
    """Snapshot of an inbound request."""

    method: str
    protocol: str = "http"
    host: str = ""
    path: str = Field(description="Request path including the query string")

    @property
    def pathname(self) -> str:
        return urlsplit(self.path).path

    @property
    def query(self) -> Dict[str, List[str]]:
        return parse_qs(urlsplit(self.path).query, keep_blank_values=True)


class ExchangeResponse(_ExchangeMessage):
    """Snapshot of the response that was written to the client."""

    status_code: int


class HttpExchange(BaseModel):
    """
    One completed request/response pair.

    Examples:
        >>> exchange = HttpExchange.from_json_bytes(payload)
        >>> exchange.request.method, exchange.response.status_code
        ('GET', 200)
    """

    model_config = ConfigDict(frozen=True)

    request: ExchangeRequest
    response: ExchangeResponse

    # -------------------------------------------------------------------------
    # Wire codec
    # -------------------------------------------------------------------------

    def to_wire(self) -> Dict[str, Any]:
        """Convert to the JSON-compatible wire dict."""
        request = {
            "method": self.request.method,
            "protocol": self.request.protocol,
            "host": self.request.host,
            "path": self.request.path,
            "pathname": self.request.pathname,
            "query": self.request.query,
            "headers": self.request.headers_as_dict(),
            "timestamp": self.request.timestamp.isoformat(),
        }
        _put_body(request, self.request.body)

        response = {
            "statusCode": self.response.status_code,
            "headers": self.response.headers_as_dict(),
            "timestamp": self.response.timestamp.isoformat(),
        }
        _put_body(response, self.response.body)

        return {"request": request, "response": response}

    def to_json_bytes(self) -> bytes:
        return json.dumps(self.to_wire(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "HttpExchange":
        """Rebuild an exchange from its wire dict. Derived fields are ignored."""
        try:
            req = data["request"]
            resp = data["response"]
            return cls(
                request=ExchangeRequest(
                    method=req["method"],
                    protocol=req.get("protocol", "http"),
                    host=req.get("host", ""),
                    path=req["path"],
                    headers=req.get("headers", {}),
                    body=_get_body(req),
                    timestamp=req["timestamp"],
                ),
                response=ExchangeResponse(
                    status_code=resp["statusCode"],
                    headers=resp.get("headers", {}),
                    body=_get_body(resp),
                    timestamp=resp["timestamp"],
                ),
            )
        except (KeyError, TypeError, ValidationError) as e:
            raise ExchangeCodecError(f"Malformed exchange: {e}") from e

    @classmethod
    def from_json_bytes(cls, payload: bytes) -> "HttpExchange":
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ExchangeCodecError(f"Invalid exchange JSON: {e}") from e
        return cls.from_wire(data)


def _put_body(target: Dict[str, Any], body: Optional[bytes]) -> None:
    if body is None:
        return
    try:
        target["body"] = body.decode("utf-8")
        target["bodyEncoding"] = BODY_ENCODING_UTF8
    except UnicodeDecodeError:
        target["body"] = base64.b64encode(body).decode("ascii")
        target["bodyEncoding"] = BODY_ENCODING_BASE64


def _get_body(source: Dict[str, Any]) -> Optional[bytes]:
    body = source.get("body")
    if body is None:
        return None
    if not isinstance(body, str):
        raise ExchangeCodecError(f"Body must be a string, got {type(body).__name__}")
    encoding = source.get("bodyEncoding", BODY_ENCODING_UTF8)
    if encoding == BODY_ENCODING_BASE64:
        try:
            return base64.b64decode(body, validate=True)
        except binascii.Error as e:
            raise ExchangeCodecError(f"Invalid base64 body: {e}") from e
    if encoding == BODY_ENCODING_UTF8:
        return body.encode("utf-8")
    raise ExchangeCodecError(f"Unknown body encoding: {encoding!r}")
