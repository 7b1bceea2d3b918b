"""Print JSON messages from the ingest topic.

Used to check that what the gateway accepted is what landed on the topic.
"""

import argparse
import asyncio
import json
from uuid import uuid4

from aiokafka import AIOKafkaConsumer


async def consume(bootstrap_servers: str, topic: str, limit: int, timeout_seconds: int) -> int:
    """Read up to `limit` messages from the start of `topic`; return how many were read."""

    consumer = AIOKafkaConsumer(
        topic,
        bootstrap_servers=bootstrap_servers,
        group_id=f"ingest-check-{uuid4()}",
        auto_offset_reset="earliest",
        enable_auto_commit=False,
    )
    await consumer.start()
    seen = 0
    try:
        deadline = asyncio.get_running_loop().time() + timeout_seconds
        while seen < limit and asyncio.get_running_loop().time() < deadline:
            batches = await consumer.getmany(timeout_ms=500, max_records=limit - seen)
            for tp, messages in batches.items():
                for msg in messages:
                    try:
                        value = json.loads(msg.value.decode("utf-8"))
                    except ValueError as exc:
                        print(f"partition={tp.partition} offset={msg.offset} undecodable: {exc}")
                        continue
                    print(f"partition={tp.partition} offset={msg.offset} value={json.dumps(value)}")
                    seen += 1
    finally:
        await consumer.stop()
    return seen


def main() -> None:
    """Parse CLI args and dump messages."""

    parser = argparse.ArgumentParser(description="Dump JSON messages from the ingest topic.")
    parser.add_argument("--bootstrap-servers", default="localhost:9092")
    parser.add_argument("--topic", default="before-processor-topic")
    parser.add_argument("--limit", type=int, default=10)
    parser.add_argument("--timeout", type=int, default=10)
    args = parser.parse_args()

    seen = asyncio.run(consume(args.bootstrap_servers, args.topic, args.limit, args.timeout))
    print(f"read={seen} topic={args.topic}")


if __name__ == "__main__":
    main()
