"""
Infrastructure Layer for the exchange recorder.

This package contains concrete implementations of the application ports:
- kafka/: Kafka producer transport (aiokafka)
- files/: JSON Lines file transport
- memory/: In-memory user store for the demo application
"""

from infrastructure.files import JsonlFileTransport
from infrastructure.kafka import KafkaExchangeProducer, ProducerState
from infrastructure.memory import InMemoryUserRepository

__all__ = [
    "JsonlFileTransport",
    "KafkaExchangeProducer",
    "ProducerState",
    "InMemoryUserRepository",
]
