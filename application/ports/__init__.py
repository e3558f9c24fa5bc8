"""
Interfaces (Ports) for the exchange recorder.

This package defines abstract interfaces that decouple the capture layer
and the demo application from infrastructure (broker clients, files, storage).
Implementations are provided in the infrastructure layer.

Architecture follows the Ports & Adapters (Hexagonal) pattern:
- Ports: Abstract interfaces defined here (what the core needs)
- Adapters: Concrete implementations in infrastructure/ (how it's provided)

Usage:
    from application.ports import ExchangeTransport

    class StdoutTransport:
        async def send(self, exchange):
            print(exchange.to_json_bytes())
"""

# Exchange delivery
from application.ports.exchange_transport import (
    DeliveryError,
    ExchangeTransport,
    ManagedTransport,
    Transport,
    TransportCallable,
    TransportConnectionError,
    TransportError,
    TransportNotConnectedError,
    as_transport_callable,
    transport_name,
)

# Demo store persistence
from application.ports.user_repository import UserRepository

__all__ = [
    # Exchange delivery
    "DeliveryError",
    "ExchangeTransport",
    "ManagedTransport",
    "Transport",
    "TransportCallable",
    "TransportConnectionError",
    "TransportError",
    "TransportNotConnectedError",
    "as_transport_callable",
    "transport_name",
    # Demo store
    "UserRepository",
]
