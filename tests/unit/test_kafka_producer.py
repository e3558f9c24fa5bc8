"""
Unit tests for infrastructure/kafka/producer.py

Uses FakeKafkaCluster in place of aiokafka.AIOKafkaProducer.

Tests for:
- Explicit connection states
- send() before connect() fails and enqueues nothing
- connect() retries, then raises TransportConnectionError
- Records are enqueued in send() call order
- Broker rejections surface as DeliveryError
- close() flushes and reports undelivered records
"""

import asyncio
import logging

import pytest

pytestmark = pytest.mark.unit

from application.ports import (
    DeliveryError,
    TransportConnectionError,
    TransportError,
    TransportNotConnectedError,
)
from domain.models import HttpExchange
from infrastructure.kafka import KafkaExchangeProducer, ProducerState
from recorder.settings import Settings
from tests.fakes import FakeKafkaCluster

TOPIC = "express_recordings"


def make_producer(cluster: FakeKafkaCluster, **kwargs) -> KafkaExchangeProducer:
    kwargs.setdefault("connect_backoff_seconds", 0)
    return KafkaExchangeProducer(
        "localhost:9092", TOPIC, producer_factory=cluster, **kwargs
    )


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_transitions_to_connected(self):
        cluster = FakeKafkaCluster()
        producer = make_producer(cluster)
        assert producer.state is ProducerState.DISCONNECTED

        await producer.connect()

        assert producer.state is ProducerState.CONNECTED
        assert cluster.clients[0].started
        assert cluster.client_kwargs["bootstrap_servers"] == "localhost:9092"
        assert cluster.client_kwargs["acks"] == "all"

    @pytest.mark.asyncio
    async def test_connect_retries_transient_failures(self):
        cluster = FakeKafkaCluster(start_failures=2)
        producer = make_producer(cluster, connect_attempts=3)

        await producer.connect()

        assert producer.state is ProducerState.CONNECTED
        assert len(cluster.clients) == 3
        assert cluster.clients[0].stopped
        assert cluster.clients[1].stopped

    @pytest.mark.asyncio
    async def test_connect_failure_raises_connection_error(self):
        cluster = FakeKafkaCluster(start_failures=5)
        producer = make_producer(cluster, connect_attempts=2)

        with pytest.raises(TransportConnectionError):
            await producer.connect()

        assert producer.state is ProducerState.DISCONNECTED
        assert len(cluster.clients) == 2

    @pytest.mark.asyncio
    async def test_connect_twice_is_an_error(self):
        producer = make_producer(FakeKafkaCluster())
        await producer.connect()

        with pytest.raises(TransportError):
            await producer.connect()

    def test_rejects_empty_topic(self):
        with pytest.raises(ValueError):
            KafkaExchangeProducer("localhost:9092", "", producer_factory=FakeKafkaCluster())


class TestSend:
    @pytest.mark.asyncio
    async def test_send_before_connect_fails_fast(self, make_exchange):
        cluster = FakeKafkaCluster()
        producer = make_producer(cluster)

        with pytest.raises(TransportNotConnectedError):
            await producer.send(make_exchange())

        assert cluster.messages == []
        assert producer.in_flight == 0

    @pytest.mark.asyncio
    async def test_send_publishes_wire_json(self, make_exchange):
        cluster = FakeKafkaCluster()
        producer = make_producer(cluster)
        await producer.connect()
        exchange = make_exchange(method="POST", path="/users", request_body=b'{"name":"A"}')

        await producer.send(exchange)

        assert len(cluster.messages) == 1
        message = cluster.messages[0]
        assert message.topic == TOPIC
        assert message.key is None
        assert HttpExchange.from_json_bytes(message.value) == exchange

    @pytest.mark.asyncio
    async def test_concurrent_sends_keep_call_order(self, make_exchange):
        cluster = FakeKafkaCluster()
        producer = make_producer(cluster)
        await producer.connect()

        await asyncio.gather(
            *(producer.send(make_exchange(path=f"/{i}")) for i in range(25))
        )

        paths = [HttpExchange.from_json_bytes(m.value).request.path for m in cluster.messages]
        assert paths == [f"/{i}" for i in range(25)]

    @pytest.mark.asyncio
    async def test_broker_rejection_raises_delivery_error(self, make_exchange):
        cluster = FakeKafkaCluster(reject_sends=True)
        producer = make_producer(cluster)
        await producer.connect()

        with pytest.raises(DeliveryError):
            await producer.send(make_exchange())

        assert producer.in_flight == 0
        assert producer.state is ProducerState.CONNECTED


class TestClose:
    @pytest.mark.asyncio
    async def test_close_flushes_and_disconnects(self, make_exchange):
        cluster = FakeKafkaCluster()
        producer = make_producer(cluster)
        await producer.connect()
        await producer.send(make_exchange())

        undelivered = await producer.close()

        assert undelivered == 0
        assert producer.state is ProducerState.DISCONNECTED
        assert cluster.clients[0].flushed
        assert cluster.clients[0].stopped

    @pytest.mark.asyncio
    async def test_close_waits_for_in_flight_records(self, make_exchange):
        cluster = FakeKafkaCluster(hold_acks=True)
        producer = make_producer(cluster)
        await producer.connect()
        send_task = asyncio.create_task(producer.send(make_exchange()))
        while not cluster.held:
            await asyncio.sleep(0)

        close_task = asyncio.create_task(producer.close(timeout=5))
        await asyncio.sleep(0)
        assert producer.state is ProducerState.CLOSING
        cluster.release_acks()

        assert await close_task == 0
        await send_task

    @pytest.mark.asyncio
    async def test_close_reports_undelivered_records(self, make_exchange, caplog):
        cluster = FakeKafkaCluster(hold_acks=True)
        producer = make_producer(cluster)
        await producer.connect()
        send_task = asyncio.create_task(producer.send(make_exchange()))
        while not cluster.held:
            await asyncio.sleep(0)

        with caplog.at_level(logging.ERROR, logger="infrastructure.kafka.producer"):
            undelivered = await producer.close(timeout=0.01)

        assert undelivered == 1
        assert any("1 undelivered" in r.getMessage() for r in caplog.records)
        with pytest.raises(DeliveryError):
            await send_task

    @pytest.mark.asyncio
    async def test_send_while_closing_is_rejected(self, make_exchange):
        cluster = FakeKafkaCluster(hold_acks=True)
        producer = make_producer(cluster)
        await producer.connect()
        send_task = asyncio.create_task(producer.send(make_exchange()))
        while not cluster.held:
            await asyncio.sleep(0)
        close_task = asyncio.create_task(producer.close(timeout=5))
        await asyncio.sleep(0)

        with pytest.raises(TransportNotConnectedError):
            await producer.send(make_exchange())

        cluster.release_acks()
        await close_task
        await send_task
        assert len(cluster.messages) == 1

    @pytest.mark.asyncio
    async def test_send_queued_behind_lock_fails_cleanly_after_close(self, make_exchange):
        cluster = FakeKafkaCluster()
        producer = make_producer(cluster)
        await producer.connect()

        await producer._send_lock.acquire()
        send_task = asyncio.create_task(producer.send(make_exchange()))
        await asyncio.sleep(0)
        assert producer.in_flight == 1

        undelivered = await producer.close(timeout=0.01)
        producer._send_lock.release()

        assert undelivered == 1
        with pytest.raises(TransportNotConnectedError):
            await send_task
        assert cluster.messages == []
        assert producer.in_flight == 0

    @pytest.mark.asyncio
    async def test_close_when_disconnected_is_noop(self):
        producer = make_producer(FakeKafkaCluster())
        assert await producer.close() == 0


class TestFromSettings:
    def test_maps_settings_to_client_config(self):
        settings = Settings(
            kafka_bootstrap_servers="k1:9092, k2:9092",
            kafka_topic="recordings",
            kafka_client_id="svc",
            kafka_linger_ms=5,
            _env_file=None,
        )
        producer = KafkaExchangeProducer.from_settings(settings, producer_factory=FakeKafkaCluster())

        assert producer.topic == "recordings"
        assert producer.name == "kafka:recordings"
        assert producer._client_kwargs["bootstrap_servers"] == ["k1:9092", "k2:9092"]
        assert producer._client_kwargs["client_id"] == "svc"
        assert producer._client_kwargs["linger_ms"] == 5
        assert producer._client_kwargs["enable_idempotence"] is True
