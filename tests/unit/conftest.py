"""Shared fixtures for recorder unit tests."""

from datetime import datetime, timezone

import pytest

from domain.models import ExchangeRequest, ExchangeResponse, HttpExchange


@pytest.fixture
def make_exchange():
    """Factory for small HttpExchange records."""

    def _make(
        method: str = "GET",
        path: str = "/",
        status_code: int = 200,
        request_body=None,
        response_body=b'{"hello":"world"}',
    ) -> HttpExchange:
        ts = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
        return HttpExchange(
            request=ExchangeRequest(
                method=method,
                host="testserver",
                path=path,
                headers=[("Host", "testserver"), ("Accept", "*/*")],
                body=request_body,
                timestamp=ts,
            ),
            response=ExchangeResponse(
                status_code=status_code,
                headers=[("content-type", "application/json")],
                body=response_body,
                timestamp=ts,
            ),
        )

    return _make
