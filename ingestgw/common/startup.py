"""Startup-time helpers for safe config logging."""

import os

from ingestgw.common.logging import logger


STARTUP_KEYS = [
    "SERVICE_NAME",
    "PORT",
    "INGEST_TOPIC",
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_API_VERSION",
    "KAFKA_SECURITY_PROTOCOL",
    "KAFKA_SSL_CAFILE",
    "KAFKA_ACKS",
    "KAFKA_ENABLE_IDEMPOTENCE",
    "KAFKA_TRANSACTIONAL_ID",
    "KAFKA_CLIENT_ID_PRODUCER",
    "KAFKA_COMPRESSION_TYPE",
    "KAFKA_REQUEST_TIMEOUT_MS",
    "KAFKA_RETRY_BACKOFF_MS",
    "KAFKA_SEND_BACKOFF_MS",
    "KAFKA_LINGER_MS",
]

# Any name containing one of these is never logged; SASL covers the
# username/password pair and mechanism options.
SECRET_MARKERS = ["KEY", "SECRET", "PASSWORD", "TOKEN", "SASL", "CREDENTIAL"]


def _safe_env(name: str) -> str:
    """Return env value with simple redaction for secret-like variable names."""

    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(secret in name.upper() for secret in SECRET_MARKERS):
        return "<redacted>"
    return value


def log_startup_config(service_name: str, keys: list[str] | None = None) -> None:
    """Log selected startup config keys for quick troubleshooting."""

    config = {"service": service_name}
    for key in keys or STARTUP_KEYS:
        config[key] = _safe_env(key)
    logger.info("startup_config=%s", config)
