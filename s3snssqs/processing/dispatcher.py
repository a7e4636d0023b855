"""Decodes downloaded files and pushes their events downstream."""

import logging

from s3snssqs.core.exceptions import DecodeError
from s3snssqs.core.models import CompletionVerdict, EventMetadata, OutputEvent, Record
from s3snssqs.processing.codecs import get_codec
from s3snssqs.processing.format_resolver import FormatResolver
from s3snssqs.processing.sink import EventSink

logger = logging.getLogger(__name__)


class ContentDispatcher:
    """Turns one downloaded Record into events on the sink."""

    def __init__(self, resolver: FormatResolver):
        self.resolver = resolver

    def process(self, record: Record, sink: EventSink) -> CompletionVerdict:
        """
        Decode ``record.local_path`` with the codec resolved for its key.

        Returns:
            COMPLETED once every event was pushed, FAILED_SKIP_DELETE if the
            sink rejected an event (decoding stops there), FAILED_RETRYABLE
            if the file could not be read or decoded
        """
        if record.local_path is None:
            logger.error(f"{record.uri} has no local file, was it downloaded?")
            return CompletionVerdict.FAILED_RETRYABLE

        resolved = self.resolver.resolve(record.bucket, record.key)
        codec = get_codec(resolved.codec)
        metadata = EventMetadata(bucket=record.bucket, key=record.key, codec=resolved.codec)
        pushed = 0

        try:
            with open(record.local_path, "rb") as fh:
                for data in codec.decode(fh):
                    event = OutputEvent(data=data, type=resolved.type, metadata=metadata)
                    if not sink.push(event):
                        logger.warning(
                            f"Sink congested after {pushed} events from {record.uri}, "
                            f"keeping message {record.message_id}"
                        )
                        return CompletionVerdict.FAILED_SKIP_DELETE
                    pushed += 1
        except DecodeError as exc:
            logger.error(
                f"{record.uri} is not valid {resolved.codec} after {pushed} events "
                f"(message {record.message_id}): {exc}"
            )
            return CompletionVerdict.FAILED_RETRYABLE
        except OSError as exc:
            logger.error(f"Could not read {record.local_path} for {record.uri}: {exc}")
            return CompletionVerdict.FAILED_RETRYABLE

        logger.info(f"Processed {record.uri}: {pushed} events as {resolved.codec} (type={resolved.type})")
        return CompletionVerdict.COMPLETED
