"""
Exchange Transport Interface (Port).

A transport is anything that accepts one HttpExchange and eventually
delivers it somewhere or reports failure. Two shapes are accepted:

- an object with ``async def send(exchange)`` (ExchangeTransport)
- a plain ``async def transport(exchange)`` callable

Transports that own a connection additionally expose ``connect()`` and
``close()`` (ManagedTransport); process bootstrap drives that lifecycle.
"""

import inspect
from typing import Any, Awaitable, Callable, Protocol, Union, runtime_checkable

from domain.models import HttpExchange

TransportCallable = Callable[[HttpExchange], Awaitable[Any]]


class TransportError(Exception):
    """Base class for transport failures."""


class TransportNotConnectedError(TransportError):
    """Raised when send() is called on a transport that is not connected."""


class TransportConnectionError(TransportError):
    """Raised when a transport cannot establish its connection."""


class DeliveryError(TransportError):
    """Raised when a connected transport fails to deliver one exchange."""


@runtime_checkable
class ExchangeTransport(Protocol):
    """
    Abstract interface for exchange delivery.

    ``send`` resolves once the sink has accepted the record and raises a
    TransportError (or any other exception) when delivery failed.
    """

    async def send(self, exchange: HttpExchange) -> None:
        ...


@runtime_checkable
class ManagedTransport(Protocol):
    """A transport with an explicit connection lifecycle."""

    name: str

    async def connect(self) -> None:
        ...

    async def send(self, exchange: HttpExchange) -> None:
        ...

    async def close(self, timeout: float = 10.0) -> int:
        """Flush and disconnect. Returns the number of undelivered records."""
        ...


Transport = Union[ExchangeTransport, TransportCallable]


def as_transport_callable(transport: Transport) -> TransportCallable:
    """Normalize a transport object or async callable into a callable."""
    send = getattr(transport, "send", None)
    if send is not None and callable(send):
        return send
    if callable(transport):
        return transport
    raise TypeError(f"{transport!r} is not an exchange transport")


def transport_name(transport: Transport) -> str:
    """Human-readable name used in log lines."""
    name = getattr(transport, "name", None)
    if isinstance(name, str) and name:
        return name
    if inspect.isfunction(transport) or inspect.ismethod(transport):
        return transport.__qualname__
    return type(transport).__name__
