"""Entry point: mirror order events from Kafka into the MySQL ledger."""

import logging
import os

from shared.kafka.topics import Topic
from apps.ledger_sink.consumers.order_consumer import OrderConsumer
from apps.ledger_sink.db.connection import get_database
from apps.ledger_sink.kafka.consumer import KafkaConsumer

logger = logging.getLogger(__name__)


def main():
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db = get_database()
    db.connect()
    db.init_tables()

    consumer = KafkaConsumer()
    for event_type, handler in OrderConsumer().get_handlers().items():
        consumer.register_handler(event_type, handler)
    consumer.subscribe([Topic.ORDER])
    consumer.start()


if __name__ == "__main__":
    main()
