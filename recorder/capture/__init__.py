"""Capture middleware for recording API traffic.

Usage::

    from recorder.capture import install_capture

    # In your FastAPI app factory:
    install_capture(app, transports=[producer])

Every request that reaches the app produces one HttpExchange once its
response has been fully written, including the 500 written for an
unhandled exception. Records are dispatched to transports in
the background; the client response never waits for them.
"""

from .builder import (
    ExchangeAlreadyCompletedError,
    ExchangeIncompleteError,
    PendingExchange,
    begin,
    complete,
)
from .dispatch import DispatchStats, ExchangeDispatcher
from .middleware import CaptureMiddleware, install_capture

__all__ = [
    "CaptureMiddleware",
    "DispatchStats",
    "ExchangeAlreadyCompletedError",
    "ExchangeDispatcher",
    "ExchangeIncompleteError",
    "PendingExchange",
    "begin",
    "complete",
    "install_capture",
]
