"""Format resolution, decoding and dispatch of downloaded objects."""

from s3snssqs.processing.codecs import CODECS, Codec, get_codec, register_codec
from s3snssqs.processing.dispatcher import ContentDispatcher
from s3snssqs.processing.format_resolver import FormatResolver, ResolvedFormat
from s3snssqs.processing.sink import BoundedEventSink, EventSink

__all__ = [
    "CODECS",
    "Codec",
    "get_codec",
    "register_codec",
    "ContentDispatcher",
    "FormatResolver",
    "ResolvedFormat",
    "BoundedEventSink",
    "EventSink",
]
