"""Kafka configuration for producer and consumer."""

import os

from pydantic import BaseModel, Field

from shared.utils.env import env_flag


class KafkaConfig(BaseModel):
    """Kafka configuration from environment variables.

    With ``enabled`` off the producer logs events instead of publishing them,
    which keeps local runs working without a broker.
    """

    bootstrap_servers: str = Field(default="localhost:9092")
    client_id: str = Field(default="service")
    enabled: bool = Field(default=True)

    @classmethod
    def from_env(cls, client_id: str = "service") -> "KafkaConfig":
        return cls(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            client_id=os.getenv("KAFKA_CLIENT_ID", client_id),
            enabled=env_flag("KAFKA_ENABLED", "true"),
        )

    def to_producer_config(self) -> dict:
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            # order events must not be reordered or duplicated on retry
            "enable.idempotence": True,
            "acks": "all",
        }

    def to_consumer_config(self, group_id: str) -> dict:
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "group.id": group_id,
            "client.id": self.client_id,
            "auto.offset.reset": os.getenv("KAFKA_AUTO_OFFSET_RESET", "earliest"),
            "enable.auto.commit": True,
            "auto.commit.interval.ms": 5000,
        }
