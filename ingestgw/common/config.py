"""Environment-driven settings for the ingest gateway.

The process loads these once at startup. Every Kafka producer knob is sourced
from its own `KAFKA_*` variable (see `.env.example`); integers that fail to
parse abort startup with a `pydantic.ValidationError`.
"""

from typing import Any

from pydantic import NonNegativeInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """Typed, immutable view of runtime configuration."""

    service_name: str = "ingest-gateway"
    log_level: str = "INFO"
    port: NonNegativeInt = 5666
    ingest_topic: str = "before-processor-topic"
    otel_exporter_otlp_endpoint: str = ""

    kafka_bootstrap_servers: str = "127.0.0.1:9092"
    kafka_api_version: str = "auto"
    kafka_security_protocol: str = "PLAINTEXT"
    kafka_ssl_cafile: str | None = None
    kafka_retry_backoff_ms: NonNegativeInt = 100
    kafka_metadata_max_age_ms: NonNegativeInt = 300_000
    kafka_request_timeout_ms: NonNegativeInt = 40_000
    kafka_connections_max_idle_ms: NonNegativeInt = 540_000
    kafka_acks: str | None = None
    kafka_enable_idempotence: bool = False
    kafka_transactional_id: str | None = None
    kafka_client_id_producer: str | None = None
    kafka_compression_type: str = "none"
    kafka_max_batch_size: NonNegativeInt = 16_384
    kafka_max_request_size: NonNegativeInt = 504_857_600
    kafka_linger_ms: NonNegativeInt = 0
    kafka_send_backoff_ms: NonNegativeInt | None = None
    kafka_transaction_timeout_ms: NonNegativeInt = 60_000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @field_validator("kafka_acks")
    @classmethod
    def _check_acks(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        value = value.strip().lower()
        if value not in ("0", "1", "-1", "all"):
            raise ValueError("KAFKA_ACKS must be one of 0, 1, -1, all")
        return value

    @field_validator("kafka_transactional_id", "kafka_client_id_producer", "kafka_ssl_cafile")
    @classmethod
    def _blank_is_unset(cls, value: str | None) -> str | None:
        # An empty variable means "not configured", matching an unset one.
        if value is not None and not value.strip():
            return None
        return value

    @property
    def transactional(self) -> bool:
        return self.kafka_transactional_id is not None

    def _acks(self) -> int | str | None:
        if self.kafka_acks is None:
            # Idempotent producers need acks=all; let the client pick it.
            if self.kafka_enable_idempotence or self.transactional:
                return None
            return 1
        if self.kafka_acks == "all":
            return "all"
        return int(self.kafka_acks)

    def _retry_backoff_ms(self) -> int:
        # Send backoff aliases retry backoff; a set send value wins.
        if self.kafka_send_backoff_ms is not None:
            return self.kafka_send_backoff_ms
        return self.kafka_retry_backoff_ms

    def producer_kwargs(self) -> dict[str, Any]:
        """Map settings onto `AIOKafkaProducer` keyword arguments."""

        compression = self.kafka_compression_type.strip().lower()
        kwargs: dict[str, Any] = {
            "bootstrap_servers": self.kafka_bootstrap_servers,
            "api_version": self.kafka_api_version,
            "security_protocol": self.kafka_security_protocol,
            "retry_backoff_ms": self._retry_backoff_ms(),
            "metadata_max_age_ms": self.kafka_metadata_max_age_ms,
            "request_timeout_ms": self.kafka_request_timeout_ms,
            "connections_max_idle_ms": self.kafka_connections_max_idle_ms,
            "enable_idempotence": self.kafka_enable_idempotence,
            "compression_type": None if compression in ("", "none") else compression,
            "max_batch_size": self.kafka_max_batch_size,
            "max_request_size": self.kafka_max_request_size,
            "linger_ms": self.kafka_linger_ms,
            "transaction_timeout_ms": self.kafka_transaction_timeout_ms,
        }
        acks = self._acks()
        if acks is not None:
            kwargs["acks"] = acks
        if self.kafka_client_id_producer is not None:
            kwargs["client_id"] = self.kafka_client_id_producer
        if self.kafka_transactional_id is not None:
            kwargs["transactional_id"] = self.kafka_transactional_id
        return kwargs


def load_settings() -> GatewaySettings:
    """Read the environment once; raises `ValidationError` on bad values."""

    return GatewaySettings()
