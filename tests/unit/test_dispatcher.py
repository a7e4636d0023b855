"""Tests for s3snssqs/processing/dispatcher.py."""

import pytest

from s3snssqs.core.config import IngestConfig
from s3snssqs.core.models import CompletionVerdict, Record
from s3snssqs.processing.dispatcher import ContentDispatcher
from s3snssqs.processing.format_resolver import FormatResolver
from s3snssqs.processing.sink import BoundedEventSink


@pytest.fixture
def dispatcher():
    config = IngestConfig(
        queue="q",
        s3_options_by_bucket={
            "logs": {
                "folders": [
                    {"key": "^elb/", "codec": "plain", "type": "elb"},
                    {"key": "^app/", "codec": "json_lines", "type": "app"},
                ]
            }
        },
    )
    return ContentDispatcher(FormatResolver.from_config(config))


def _record(scratch_dir, key: str, content: bytes) -> Record:
    path = scratch_dir / key.rsplit("/", 1)[-1]
    path.write_bytes(content)
    return Record(bucket="logs", key=key, local_path=path, message_id="m1")


class ListSink:
    """Sink accepting ``capacity`` events, then reporting congestion."""

    def __init__(self, capacity: int | None = None):
        self.capacity = capacity
        self.events = []

    def push(self, event):
        if self.capacity is not None and len(self.events) >= self.capacity:
            return False
        self.events.append(event)
        return True


class TestProcess:
    """Tests for ContentDispatcher.process."""

    def test_plain_lines_tagged(self, dispatcher, scratch_dir):
        """One event per line, stamped with type and source metadata."""
        record = _record(scratch_dir, "elb/2024/01/01/file.log", b"GET /a\nGET /b\n")
        sink = ListSink()

        assert dispatcher.process(record, sink) is CompletionVerdict.COMPLETED

        assert [e.data["message"] for e in sink.events] == ["GET /a", "GET /b"]
        assert {e.type for e in sink.events} == {"elb"}
        assert sink.events[0].metadata.bucket == "logs"
        assert sink.events[0].metadata.key == "elb/2024/01/01/file.log"
        assert sink.events[0].metadata.codec == "plain"

    def test_default_codec_no_type(self, dispatcher, scratch_dir):
        """Unmatched keys use the default codec and carry no type."""
        record = _record(scratch_dir, "unknown/file.log", b"hello\n")
        sink = ListSink()

        assert dispatcher.process(record, sink) is CompletionVerdict.COMPLETED

        assert sink.events[0].type is None
        assert sink.events[0].metadata.codec == "plain"

    def test_decode_error_retryable(self, dispatcher, scratch_dir):
        """Malformed content for the resolved codec is retryable."""
        record = _record(scratch_dir, "app/events.log", b'{"ok": 1}\nnot json\n')
        sink = ListSink()

        assert dispatcher.process(record, sink) is CompletionVerdict.FAILED_RETRYABLE

        assert len(sink.events) == 1

    def test_congestion_stops_immediately(self, dispatcher, scratch_dir):
        """A rejected push ends decoding with FAILED_SKIP_DELETE."""
        record = _record(scratch_dir, "elb/x.log", b"1\n2\n3\n4\n5\n")
        sink = ListSink(capacity=2)

        assert dispatcher.process(record, sink) is CompletionVerdict.FAILED_SKIP_DELETE

        assert [e.data["message"] for e in sink.events] == ["1", "2"]

    def test_congestion_with_bounded_sink(self, dispatcher, scratch_dir):
        """A full BoundedEventSink reports congestion after its timeout."""
        record = _record(scratch_dir, "elb/x.log", b"1\n2\n3\n")
        sink = BoundedEventSink(maxsize=1, push_timeout=0.01)

        assert dispatcher.process(record, sink) is CompletionVerdict.FAILED_SKIP_DELETE

        assert len(sink) == 1

    def test_missing_file(self, dispatcher, scratch_dir):
        record = Record(bucket="logs", key="elb/x.log", local_path=scratch_dir / "gone.log")

        assert dispatcher.process(record, ListSink()) is CompletionVerdict.FAILED_RETRYABLE

    def test_not_downloaded(self, dispatcher):
        record = Record(bucket="logs", key="elb/x.log")

        assert dispatcher.process(record, ListSink()) is CompletionVerdict.FAILED_RETRYABLE
