"""Downstream event sink.

Workers push decoded events; the host drains them. A full sink blocks the
pushing worker, which is the only flow control in the pipeline.
"""

import logging
import queue
from collections.abc import Iterator
from typing import Protocol

from s3snssqs.core.models import OutputEvent

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    def push(self, event: OutputEvent) -> bool:
        """Deliver ``event``; False means the sink is congested and the event was not taken."""
        ...


class BoundedEventSink:
    """Thread-safe bounded queue of OutputEvents."""

    def __init__(self, maxsize: int = 1000, push_timeout: float | None = 60.0):
        self._queue: queue.Queue[OutputEvent] = queue.Queue(maxsize=maxsize)
        self.push_timeout = push_timeout

    def push(self, event: OutputEvent) -> bool:
        try:
            self._queue.put(event, timeout=self.push_timeout)
        except queue.Full:
            logger.warning(
                f"Sink still full after {self.push_timeout}s, "
                f"rejecting event from s3://{event.metadata.bucket}/{event.metadata.key}"
            )
            return False
        return True

    def get(self, timeout: float | None = None) -> OutputEvent | None:
        """Take the next event, or None if none arrives within ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> Iterator[OutputEvent]:
        """Yield the events currently queued without blocking."""
        while True:
            try:
                yield self._queue.get_nowait()
            except queue.Empty:
                return

    def __len__(self) -> int:
        return self._queue.qsize()
