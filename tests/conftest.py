"""Shared fixtures: clean environment and an in-memory producer."""

import os

import pytest
from fastapi.testclient import TestClient

from ingestgw.common.config import GatewaySettings
from ingestgw.services.gateway.main import create_app
from tests.fakes import FakeProducer


_SERVICE_VARS = ("PORT", "INGEST_TOPIC", "SERVICE_NAME", "LOG_LEVEL", "OTEL_EXPORTER_OTLP_ENDPOINT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment variables out of settings under test."""

    for name in list(os.environ):
        if name.startswith("KAFKA_") or name in _SERVICE_VARS:
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(_env_file=None)


@pytest.fixture
def producer() -> FakeProducer:
    return FakeProducer()


@pytest.fixture
def client(settings, producer):
    """Gateway client with the app lifespan running against the fake producer."""

    app = create_app(settings, producer_factory=lambda _: producer)
    with TestClient(app) as test_client:
        yield test_client
