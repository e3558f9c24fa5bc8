"""
Kafka Exchange Producer.

Publishes HttpExchange records to a single Kafka topic using aiokafka.

Lifecycle (held explicitly in ProducerState):

    DISCONNECTED -> CONNECTING -> CONNECTED -> CLOSING -> DISCONNECTED

- connect() must complete before send() is usable. A send() in any other
  state raises TransportNotConnectedError and enqueues nothing.
- send() enqueues under a lock so the client's accumulator sees records in
  the order send() was called, then awaits the broker acknowledgement.
- close() waits for in-flight records, flushes and stops the client. Records
  that could not be delivered before the timeout are counted and logged.

Delivery is best-effort from the application's side: there is no retry
above the client. aiokafka retries internally (idempotently when
enable_idempotence is on), which makes delivery at-least-once within the
client's own retry window.

Usage:
    producer = KafkaExchangeProducer.from_settings(get_settings())
    await producer.connect()
    await producer.send(exchange)
    await producer.close()
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Union

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from application.ports import (
    DeliveryError,
    TransportConnectionError,
    TransportError,
    TransportNotConnectedError,
)
from domain.models import HttpExchange

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_ATTEMPTS = 3
DEFAULT_CONNECT_BACKOFF_SECONDS = 1.0
DEFAULT_CONNECT_BACKOFF_MAX_SECONDS = 10.0
DEFAULT_CLOSE_TIMEOUT_SECONDS = 10.0


class ProducerState(str, Enum):
    """Connection states of a KafkaExchangeProducer."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


class KafkaExchangeProducer:
    """
    Durable exchange transport backed by a Kafka topic.

    One instance holds one client connection shared by every request. All
    internal queue access is serialized here; callers need no locking.
    """

    def __init__(
        self,
        bootstrap_servers: Union[str, List[str]],
        topic: str,
        *,
        client_id: str = "http-exchange-recorder",
        acks: Union[int, str] = "all",
        enable_idempotence: bool = True,
        linger_ms: int = 0,
        request_timeout_ms: int = 40000,
        connect_attempts: int = DEFAULT_CONNECT_ATTEMPTS,
        connect_backoff_seconds: float = DEFAULT_CONNECT_BACKOFF_SECONDS,
        connect_backoff_max_seconds: float = DEFAULT_CONNECT_BACKOFF_MAX_SECONDS,
        producer_factory: Callable[..., Any] = AIOKafkaProducer,
    ):
        if not topic:
            raise ValueError("topic must be a non-empty string")
        if connect_attempts < 1:
            raise ValueError(f"connect_attempts must be >= 1, got {connect_attempts}")

        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._client_kwargs = {
            "bootstrap_servers": bootstrap_servers,
            "client_id": client_id,
            "acks": acks,
            "enable_idempotence": enable_idempotence,
            "linger_ms": linger_ms,
            "request_timeout_ms": request_timeout_ms,
        }
        self._connect_attempts = connect_attempts
        self._connect_backoff_seconds = connect_backoff_seconds
        self._connect_backoff_max_seconds = connect_backoff_max_seconds
        self._producer_factory = producer_factory

        self._state = ProducerState.DISCONNECTED
        self._client: Optional[Any] = None
        self._send_lock = asyncio.Lock()
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> "KafkaExchangeProducer":
        """Build a producer from a Settings instance."""
        kwargs = {
            "client_id": settings.kafka_client_id,
            "acks": settings.kafka_acks_value,
            "enable_idempotence": settings.kafka_enable_idempotence,
            "linger_ms": settings.kafka_linger_ms,
            "request_timeout_ms": settings.kafka_request_timeout_ms,
            "connect_attempts": settings.kafka_connect_attempts,
        }
        kwargs.update(overrides)
        return cls(
            settings.kafka_bootstrap_servers_list,
            settings.kafka_topic,
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return f"kafka:{self._topic}"

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def state(self) -> ProducerState:
        return self._state

    @property
    def in_flight(self) -> int:
        """Records accepted by send() that have not been acknowledged yet."""
        return self._in_flight

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Connect to the cluster.

        Raises:
            TransportError: If the producer is not disconnected
            TransportConnectionError: If every connection attempt failed
        """
        if self._state is not ProducerState.DISCONNECTED:
            raise TransportError(
                f"Cannot connect producer for topic {self._topic!r} in state {self._state.value}"
            )

        self._state = ProducerState.CONNECTING
        logger.info(
            "Connecting Kafka producer to %s (topic=%s)",
            self._bootstrap_servers,
            self._topic,
        )

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((KafkaError, OSError)),
                stop=stop_after_attempt(self._connect_attempts),
                wait=wait_exponential(
                    multiplier=self._connect_backoff_seconds,
                    max=self._connect_backoff_max_seconds,
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    self._client = await self._start_client()
        except (KafkaError, OSError) as e:
            self._client = None
            self._state = ProducerState.DISCONNECTED
            raise TransportConnectionError(
                f"Could not connect to Kafka at {self._bootstrap_servers}: {e}"
            ) from e
        except BaseException:
            self._client = None
            self._state = ProducerState.DISCONNECTED
            raise

        self._state = ProducerState.CONNECTED
        logger.info("Kafka producer connected (topic=%s)", self._topic)

    async def _start_client(self) -> Any:
        client = self._producer_factory(**self._client_kwargs)
        try:
            await client.start()
        except BaseException:
            try:
                await client.stop()
            except Exception:
                logger.debug("Ignoring error while stopping a failed client", exc_info=True)
            raise
        return client

    async def close(self, timeout: float = DEFAULT_CLOSE_TIMEOUT_SECONDS) -> int:
        """
        Flush buffered records and disconnect.

        Args:
            timeout: Seconds to wait for in-flight records before stopping

        Returns:
            Number of records that were still undelivered when the client stopped
        """
        if self._state is not ProducerState.CONNECTED:
            return 0

        self._state = ProducerState.CLOSING
        logger.info(
            "Closing Kafka producer (topic=%s, in_flight=%d)", self._topic, self._in_flight
        )

        try:
            await asyncio.wait_for(self._idle.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        undelivered = self._in_flight

        client = self._client
        try:
            if undelivered == 0:
                await client.flush()
            await client.stop()
        except KafkaError:
            logger.exception("Error while stopping Kafka producer (topic=%s)", self._topic)
        finally:
            self._client = None
            self._state = ProducerState.DISCONNECTED

        if undelivered:
            logger.error(
                "Kafka producer closed with %d undelivered exchange(s) (topic=%s)",
                undelivered,
                self._topic,
            )
        else:
            logger.info("Kafka producer closed (topic=%s)", self._topic)
        return undelivered

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    async def send(self, exchange: HttpExchange) -> None:
        """
        Publish one exchange and wait for the broker to accept it.

        Raises:
            TransportNotConnectedError: If the producer is not connected
            DeliveryError: If the broker rejected the record
        """
        if self._state is not ProducerState.CONNECTED:
            raise TransportNotConnectedError(
                f"Kafka producer for topic {self._topic!r} is {self._state.value}; "
                "call connect() before send()"
            )

        payload = exchange.to_json_bytes()
        self._in_flight += 1
        self._idle.clear()
        try:
            async with self._send_lock:
                # close() may have stopped the client while this send waited.
                if self._state is not ProducerState.CONNECTED or self._client is None:
                    raise TransportNotConnectedError(
                        f"Kafka producer for topic {self._topic!r} closed before "
                        "the exchange was enqueued"
                    )
                logger.debug(
                    "Sending %s %s exchange to Kafka (topic=%s)",
                    exchange.request.method,
                    exchange.request.path,
                    self._topic,
                )
                delivery = await self._client.send(self._topic, value=payload, key=None)
            metadata = await delivery
            logger.debug(
                "Exchange delivered (topic=%s, partition=%s, offset=%s)",
                self._topic,
                getattr(metadata, "partition", None),
                getattr(metadata, "offset", None),
            )
        except KafkaError as e:
            raise DeliveryError(
                f"Failed to publish exchange to topic {self._topic!r}: {e}"
            ) from e
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()
