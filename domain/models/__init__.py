"""
Domain models for the exchange recorder.

- HttpExchange: one completed request/response pair (ExchangeRequest + ExchangeResponse)
- User, UserCreate, UserUpdate: records of the demo resource store

Usage:
    >>> from domain.models import HttpExchange
    >>> HttpExchange.from_json_bytes(payload).response.status_code
    201
"""

from domain.models.exchange import (
    ExchangeCodecError,
    ExchangeRequest,
    ExchangeResponse,
    HttpExchange,
)
from domain.models.user import User, UserCreate, UserUpdate

__all__ = [
    # Exchange
    "ExchangeCodecError",
    "ExchangeRequest",
    "ExchangeResponse",
    "HttpExchange",
    # Demo store
    "User",
    "UserCreate",
    "UserUpdate",
]
