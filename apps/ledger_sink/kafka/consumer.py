"""Kafka consumer for subscribing to domain events."""

import json
import logging
import signal
from typing import Callable, Optional

from confluent_kafka import Consumer, KafkaError

from shared.kafka.config import KafkaConfig
from shared.kafka.topics import Topic


logger = logging.getLogger(__name__)


class KafkaConsumer:
    """Kafka consumer for subscribing to domain events."""

    def __init__(self, group_id: str = "order-ledger-sink", config: Optional[KafkaConfig] = None):
        self._config = config or KafkaConfig.from_env(client_id="order-ledger-sink")
        self._consumer = Consumer(self._config.to_consumer_config(group_id))
        self._handlers: dict[str, Callable] = {}
        self._running = False

    def register_handler(self, event_type: str, handler: Callable) -> None:
        """Register a handler for a specific event type."""
        self._handlers[event_type] = handler

    def subscribe(self, topics: Optional[list[str]] = None) -> None:
        """Subscribe to topics."""
        topics = topics or Topic.all()
        self._consumer.subscribe(topics)
        logger.info(f"Subscribed to {topics}")

    def _process_message(self, msg) -> None:
        """Decode one message and hand it to its handler.

        A handler failure is logged and the message skipped so one bad event
        does not stall the partition.
        """
        try:
            event = json.loads(msg.value().decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Undecodable message on {msg.topic()} @ {msg.offset()}: {e}")
            return

        event_type = event.get("event_type")
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.debug(f"No handler for {event_type}")
            return

        try:
            handler(event)
        except Exception:
            logger.exception(f"Handler failed for {event_type} event {event.get('event_id')}")

    def start(self) -> None:
        """Start consuming messages."""
        self._setup_signal_handlers()
        self._running = True
        logger.info("Consumer started")
        try:
            while self._running:
                msg = self._consumer.poll(timeout=1.0)
                if msg is None:
                    continue
                if msg.error():
                    code = msg.error().code()
                    if code in (KafkaError._PARTITION_EOF, KafkaError.UNKNOWN_TOPIC_OR_PART):
                        continue
                    logger.error(f"Consumer error: {msg.error()}")
                    continue
                self._process_message(msg)
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop the consumer."""
        if self._consumer is None:
            return
        self._running = False
        self._consumer.close()
        self._consumer = None
        logger.info("Consumer stopped")

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""

        def _shutdown(signum, frame):
            logger.info(f"Received signal {signum}, shutting down")
            self._running = False

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)
