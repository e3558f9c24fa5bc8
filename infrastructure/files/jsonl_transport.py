"""
JSON Lines exchange transport.

Appends each exchange's wire JSON as one line of a local file. Useful as a
second sink next to Kafka, or on its own for local development.
"""

import asyncio
import logging
from pathlib import Path
from typing import Union

from application.ports import DeliveryError, TransportNotConnectedError
from domain.models import HttpExchange

logger = logging.getLogger(__name__)


class JsonlFileTransport:
    """Writes exchanges to a ``.jsonl`` file, one record per line."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._connected = False
        self._lock = asyncio.Lock()
        self._written = 0
        self._pending = 0

    @property
    def name(self) -> str:
        return f"jsonl:{self.path}"

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def written(self) -> int:
        return self._written

    async def connect(self) -> None:
        await asyncio.to_thread(self.path.parent.mkdir, parents=True, exist_ok=True)
        self._connected = True
        logger.info("Recording exchanges to %s", self.path)

    async def send(self, exchange: HttpExchange) -> None:
        if not self._connected:
            raise TransportNotConnectedError(
                f"{self.name} is not connected; call connect() before send()"
            )
        line = exchange.to_json_bytes() + b"\n"
        self._pending += 1
        try:
            async with self._lock:
                await asyncio.to_thread(self._append, line)
                self._written += 1
        except OSError as e:
            raise DeliveryError(f"Failed to write exchange to {self.path}: {e}") from e
        finally:
            self._pending -= 1

    def _append(self, line: bytes) -> None:
        with open(self.path, "ab") as f:
            f.write(line)

    async def close(self, timeout: float = 10.0) -> int:
        # Writes complete inside send(); waiting on the lock drains the last one.
        if not self._connected:
            return 0
        self._connected = False
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Closed %s with %d unwritten exchange(s)", self.name, self._pending
            )
            return self._pending
        self._lock.release()
        logger.info("Closed %s after %d exchange(s)", self.name, self._written)
        return 0
