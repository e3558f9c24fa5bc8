"""
Fake implementations for testing.

No broker, network or filesystem dependencies required.

Usage:
    from tests.fakes import FakeKafkaCluster, RecordingTransport, FailingTransport
"""
from tests.fakes.kafka_client import FakeAIOKafkaProducer, FakeKafkaCluster, SentMessage
from tests.fakes.transports import (
    BlockingTransport,
    FailingTransport,
    ManagedFakeTransport,
    RecordingTransport,
)

__all__ = [
    "BlockingTransport",
    "FailingTransport",
    "FakeAIOKafkaProducer",
    "FakeKafkaCluster",
    "ManagedFakeTransport",
    "RecordingTransport",
    "SentMessage",
]
