"""
Kafka infrastructure.

- producer.py: KafkaExchangeProducer, the durable exchange transport
"""

from infrastructure.kafka.producer import KafkaExchangeProducer, ProducerState

__all__ = ["KafkaExchangeProducer", "ProducerState"]
