"""Kafka producer for sending events to topics."""

import json
import logging
import uuid
from typing import Any, Optional

from confluent_kafka import Producer

from shared.kafka.config import KafkaConfig
from shared.kafka.topics import Topic
from shared.utils.datetime_utils import utc_now


logger = logging.getLogger(__name__)


class KafkaProducer:
    """
    Kafka producer for sending messages to topics.

    Usage:
        producer = KafkaProducer()
        producer.emit(EventType.ORDER_CREATED, entity_id=order_id, data={...})
        producer.flush()
    """

    def __init__(self, config: Optional[KafkaConfig] = None):
        self._config = config or KafkaConfig.from_env(client_id="order-service")
        self._producer = Producer(self._config.to_producer_config()) if self._config.enabled else None

    def _delivery_callback(self, err, msg) -> None:
        """Callback for message delivery reports."""
        if err is not None:
            logger.error(f"Delivery failed for {msg.topic()} key={msg.key()}: {err}")
        else:
            logger.debug(f"Delivered to {msg.topic()} [{msg.partition()}] @ {msg.offset()}")

    def send(
        self,
        topic: str,
        value: dict[str, Any],
        key: Optional[str] = None,
    ) -> None:
        """
        Send a message to a Kafka topic.

        Args:
            topic: Target topic name
            value: Message payload (will be JSON serialized)
            key: Optional partition key
        """
        if self._producer is None:
            logger.info(f"[KAFKA_DISABLED] {topic} {value.get('event_type')} {key}")
            return
        self._producer.produce(
            topic,
            value=json.dumps(value, default=str).encode("utf-8"),
            key=key.encode("utf-8") if key else None,
            callback=self._delivery_callback,
        )
        # serve delivery callbacks of earlier messages
        self._producer.poll(0)

    def flush(self, timeout: float = 10.0) -> int:
        """
        Flush all pending messages.

        Args:
            timeout: Max time to wait in seconds

        Returns:
            Number of messages still in queue (0 if all delivered)
        """
        if self._producer is None:
            return 0
        return self._producer.flush(timeout)

    def emit(
        self,
        event_type: str,
        entity_id: str,
        data: dict[str, Any],
    ) -> None:
        """
        Emit a domain event to Kafka.

        Args:
            event_type: Event type constant (e.g., EventType.ORDER_SHIPPED)
            entity_id: Primary entity ID (used as partition key)
            data: Event payload data
        """
        event = {
            "event_id": str(uuid.uuid4()),
            "event_type": event_type,
            "entity_id": entity_id,
            "timestamp": utc_now().isoformat(),
            "data": data,
        }
        self.send(Topic.for_event(event_type), value=event, key=entity_id)


# Singleton instance
kafka_producer: Optional[KafkaProducer] = None


def get_kafka_producer() -> KafkaProducer:
    """Get or create the Kafka producer singleton."""
    global kafka_producer
    if kafka_producer is None:
        kafka_producer = KafkaProducer()
    return kafka_producer
