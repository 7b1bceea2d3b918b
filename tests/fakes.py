"""In-memory stand-in for the Kafka producer."""

import asyncio
from contextlib import asynccontextmanager


class FakeProducer:
    """Mimics the parts of `AIOKafkaProducer` the gateway uses; records sends."""

    def __init__(
        self,
        fail_with: Exception | None = None,
        start_error: Exception | None = None,
        start_delay: float = 0,
    ) -> None:
        self.fail_with = fail_with
        self.start_error = start_error
        self.start_delay = start_delay
        self.sent: list[tuple[str, bytes | None, bytes]] = []
        self.start_calls = 0
        self.stopped = False
        self.transactions = 0

    async def start(self) -> None:
        self.start_calls += 1
        await asyncio.sleep(self.start_delay)
        if self.start_error is not None:
            raise self.start_error

    async def stop(self) -> None:
        self.stopped = True

    async def send_and_wait(self, topic: str, value: bytes | None = None, key: bytes | None = None):
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((topic, key, value))

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield
