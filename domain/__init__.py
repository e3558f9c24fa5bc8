"""
Domain layer for the exchange recorder.

This package contains pure models that are independent of infrastructure
concerns (broker clients, the HTTP server, storage).
"""

from domain.models import (
    ExchangeCodecError,
    ExchangeRequest,
    ExchangeResponse,
    HttpExchange,
    User,
    UserCreate,
    UserUpdate,
)

__all__ = [
    "ExchangeCodecError",
    "ExchangeRequest",
    "ExchangeResponse",
    "HttpExchange",
    "User",
    "UserCreate",
    "UserUpdate",
]
