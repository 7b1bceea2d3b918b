"""Kafka producer factory and the shared producer handle.

One `KafkaBus` exists per process. It is created in the application lifespan
and handed to request handlers through dependency injection.
"""

import asyncio
from typing import Callable

from aiokafka import AIOKafkaProducer
from aiokafka.helpers import create_ssl_context

from ingestgw.common.config import GatewaySettings
from ingestgw.common.logging import logger


_SSL_PROTOCOLS = ("SSL", "SASL_SSL")


def build_producer(settings: GatewaySettings) -> AIOKafkaProducer:
    """Construct (but do not start) a producer from settings.

    Raises `ValueError`/`RuntimeError` for client configuration the library
    rejects, e.g. an unknown codec or `acks` incompatible with idempotence.
    Needs a running event loop.
    """

    kwargs = settings.producer_kwargs()
    if settings.kafka_security_protocol.upper() in _SSL_PROTOCOLS:
        kwargs["ssl_context"] = create_ssl_context(cafile=settings.kafka_ssl_cafile)
    return AIOKafkaProducer(**kwargs)


class KafkaBus:
    """Lazily started producer wrapper shared by every request."""

    def __init__(self, factory: Callable[[], AIOKafkaProducer], transactional: bool = False) -> None:
        self._factory = factory
        self._transactional = transactional
        self._producer: AIOKafkaProducer | None = None
        self._started = False
        self._starting: asyncio.Task | None = None
        self._txn_lock = asyncio.Lock()

    def open(self) -> None:
        """Build the producer now so bad configuration fails startup."""

        if self._producer is None:
            self._producer = self._factory()

    async def producer(self) -> AIOKafkaProducer:
        """Return the started producer, starting it if needed.

        Concurrent callers await the same start attempt, so during an outage
        they all fail together after one connect attempt instead of queueing
        for one attempt each.
        """

        if self._started and self._producer is not None:
            return self._producer
        if self._starting is None:
            self._starting = asyncio.ensure_future(self._start())
        task = self._starting
        try:
            # Shielded so one cancelled request does not abort the start for the others.
            return await asyncio.shield(task)
        finally:
            if task.done() and self._starting is task:
                self._starting = None

    async def _start(self) -> AIOKafkaProducer:
        if self._producer is None:
            self._producer = self._factory()
        producer = self._producer
        try:
            await producer.start()
        except Exception:
            # A half-started client is not reusable; release it and build a new one next time.
            self._producer = None
            await self._stop_quietly(producer)
            raise
        self._started = True
        logger.info("producer_started")
        return producer

    async def _stop_quietly(self, producer: AIOKafkaProducer) -> None:
        try:
            await producer.stop()
        except Exception as exc:
            logger.warning("producer_stop_failed error=%r", exc)

    async def publish(self, topic: str, value: bytes) -> None:
        """Send one unkeyed message and wait for the broker acknowledgment.

        No deadline is imposed here: the wait is bounded by the client's
        `request_timeout_ms`, after which the send fails.
        """

        producer = await self.producer()
        if not self._transactional:
            await producer.send_and_wait(topic, value)
            return
        # A producer holds at most one open transaction.
        async with self._txn_lock:
            async with producer.transaction():
                await producer.send_and_wait(topic, value)

    async def close(self) -> None:
        """Flush buffered messages and release connections.

        A producer that was built but never started is stopped too.
        """

        if self._starting is not None and not self._starting.done():
            self._starting.cancel()
            await asyncio.gather(self._starting, return_exceptions=True)
        self._starting = None
        if self._producer is not None:
            await self._producer.stop()
            logger.info("producer_stopped")
        self._producer = None
        self._started = False
