"""Publishes one message through an exchange and reports topic metrics."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Optional

from toolshed.mq.exchange import Exchange
from toolshed.mq.topic import DEFAULT_DIRECTORY

logger = logging.getLogger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Message queue example.")
    parser.add_argument("--directory", default=DEFAULT_DIRECTORY)
    parser.add_argument("--wait", type=float, default=100.0, help="seconds to keep running")
    options = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    exchange = Exchange(directory=options.directory)
    try:
        exchange.run()
        exchange.create_topic("test")
        exchange.create_topic("testing")

        count = 0

        def handler(msg_id: str, payload: bytes) -> None:
            nonlocal count
            logger.info("%d %s %s", count, msg_id, payload.decode("utf-8", errors="replace"))
            count += 1

        consumer = exchange.new_consumer("test", "testing", handler)
        try:
            logger.info("publishing message...")
            publisher = exchange.new_publisher("test")
            msg_id = publisher.publish("test", b"hello world!")
            print("publish", 0, msg_id)

            metrics = exchange.get_topic("testing").metrics()
            logger.info("metrics: %d %d", metrics.total_messages, metrics.total_channels)

            time.sleep(options.wait)
        finally:
            consumer.stop()
    finally:
        exchange.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())