"""
Fire-and-forget exchange dispatch.

Each completed exchange is handed to every configured transport in a
background task. The caller never awaits delivery; outcomes are only logged
and counted. A failing or slow transport does not stop the others.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from application.ports import (
    Transport,
    TransportCallable,
    as_transport_callable,
    transport_name,
)
from domain.models import HttpExchange

logger = logging.getLogger(__name__)


@dataclass
class DispatchStats:
    """Counters for dispatched records and per-transport attempts."""

    dispatched: int = 0
    delivered: int = 0
    failed: int = 0


class ExchangeDispatcher:
    """
    Hands exchanges to an ordered list of transports.

    Background tasks are kept referenced until they finish so that drain()
    can wait for them at shutdown.
    """

    def __init__(self, transports: Sequence[Transport] = ()):
        self._transports: list[tuple[Transport, str, TransportCallable]] = [
            (t, transport_name(t), as_transport_callable(t)) for t in transports
        ]
        self._tasks: set[asyncio.Task] = set()
        self.stats = DispatchStats()

    @property
    def transports(self) -> tuple[Transport, ...]:
        return tuple(t for t, _, _ in self._transports)

    @property
    def pending(self) -> int:
        """Number of dispatch tasks that have not finished yet."""
        return len(self._tasks)

    def remove(self, transport: Transport) -> None:
        """Stop handing exchanges to ``transport``. Unknown transports are ignored."""
        self._transports = [entry for entry in self._transports if entry[0] is not transport]

    def dispatch(self, exchange: HttpExchange) -> asyncio.Task | None:
        """
        Schedule delivery of one exchange to every transport.

        Must be called from a running event loop. Returns the scheduled task,
        or None when no transports are configured.
        """
        self.stats.dispatched += 1
        if not self._transports:
            logger.debug(
                "No transports configured; dropping %s %s exchange",
                exchange.request.method,
                exchange.request.path,
            )
            return None

        task = asyncio.get_running_loop().create_task(
            self._deliver_all(exchange, list(self._transports))
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver_all(
        self,
        exchange: HttpExchange,
        transports: list[tuple[Transport, str, TransportCallable]],
    ) -> None:
        await asyncio.gather(
            *(self._deliver(name, send, exchange) for _, name, send in transports)
        )

    async def _deliver(self, name: str, send: TransportCallable, exchange: HttpExchange) -> None:
        try:
            await send(exchange)
        except Exception:
            self.stats.failed += 1
            logger.exception(
                "Transport %s failed to deliver %s %s exchange",
                name,
                exchange.request.method,
                exchange.request.path,
            )
        else:
            self.stats.delivered += 1

    async def drain(self, timeout: float | None = None) -> int:
        """
        Wait for in-flight dispatches.

        Returns:
            Number of dispatch tasks still running when the timeout expired
        """
        if not self._tasks:
            return 0
        _, not_done = await asyncio.wait(set(self._tasks), timeout=timeout)
        if not_done:
            logger.error(
                "%d exchange dispatch(es) still pending after %ss", len(not_done), timeout
            )
        return len(not_done)
