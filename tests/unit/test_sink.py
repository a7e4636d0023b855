"""Tests for s3snssqs/processing/sink.py."""

import threading

from s3snssqs.core.models import EventMetadata, OutputEvent
from s3snssqs.processing.sink import BoundedEventSink


def _event(n: int) -> OutputEvent:
    return OutputEvent(data={"n": n}, metadata=EventMetadata(bucket="logs", key="k", codec="plain"))


class TestBoundedEventSink:
    def test_push_and_get(self):
        sink = BoundedEventSink(maxsize=2)

        assert sink.push(_event(1)) is True
        assert sink.get(timeout=0.1).data == {"n": 1}
        assert sink.get(timeout=0.01) is None

    def test_full_sink_rejects_after_timeout(self):
        sink = BoundedEventSink(maxsize=1, push_timeout=0.01)
        sink.push(_event(1))

        assert sink.push(_event(2)) is False
        assert len(sink) == 1

    def test_push_waits_for_room(self):
        """A blocked push succeeds once the consumer takes an event."""
        sink = BoundedEventSink(maxsize=1, push_timeout=5)
        sink.push(_event(1))
        result = []
        pusher = threading.Thread(target=lambda: result.append(sink.push(_event(2))))
        pusher.start()

        assert sink.get(timeout=1).data == {"n": 1}
        pusher.join(timeout=5)

        assert result == [True]
        assert sink.get(timeout=1).data == {"n": 2}

    def test_drain(self):
        sink = BoundedEventSink(maxsize=10)
        for n in range(3):
            sink.push(_event(n))

        assert [e.data["n"] for e in sink.drain()] == [0, 1, 2]
        assert len(sink) == 0

    def test_concurrent_pushes(self):
        sink = BoundedEventSink(maxsize=1000)
        threads = [
            threading.Thread(target=lambda base=base: [sink.push(_event(base + i)) for i in range(100)])
            for base in range(0, 500, 100)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(e.data["n"] for e in sink.drain()) == list(range(500))
