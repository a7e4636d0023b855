"""Codecs turning a downloaded file into event payloads.

Each codec reads a binary stream incrementally and yields one dict per
decoded unit. New codecs are added with :func:`register_codec`.
"""

import json
from collections.abc import Iterator
from typing import Any, BinaryIO

from s3snssqs.core.exceptions import ConfigurationError, DecodeError

CODECS: dict[str, type["Codec"]] = {}


def register_codec(codec_class: type["Codec"]) -> type["Codec"]:
    """Class decorator adding a codec to the registry under its ``name``."""
    CODECS[codec_class.name] = codec_class
    return codec_class


def get_codec(name: str) -> "Codec":
    """
    Instantiate the codec registered as ``name``.

    Raises:
        ConfigurationError: If no codec has that name
    """
    try:
        return CODECS[name]()
    except KeyError:
        raise ConfigurationError(f"Unknown codec {name!r}, expected one of {sorted(CODECS)}") from None


def _as_event_data(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {"message": value}


class Codec:
    """Base codec."""

    name = ""

    def decode(self, stream: BinaryIO) -> Iterator[dict[str, Any]]:
        raise NotImplementedError


@register_codec
class PlainCodec(Codec):
    """One event per line."""

    name = "plain"

    def decode(self, stream: BinaryIO) -> Iterator[dict[str, Any]]:
        for raw in stream:
            yield {"message": raw.decode("utf-8", errors="replace").rstrip("\r\n")}


@register_codec
class JsonLinesCodec(Codec):
    """One JSON value per line; blank lines are skipped."""

    name = "json_lines"

    def decode(self, stream: BinaryIO) -> Iterator[dict[str, Any]]:
        for number, raw in enumerate(stream, start=1):
            line = raw.strip()
            if not line:
                continue
            try:
                value = json.loads(line)
            except ValueError as exc:
                raise DecodeError(f"line {number}: {exc}") from exc
            yield _as_event_data(value)


@register_codec
class JsonCodec(Codec):
    """A single JSON document; a top-level array yields one event per element."""

    name = "json"

    def decode(self, stream: BinaryIO) -> Iterator[dict[str, Any]]:
        document = _load_document(stream)
        if isinstance(document, list):
            for item in document:
                yield _as_event_data(item)
        else:
            yield _as_event_data(document)


@register_codec
class CloudTrailCodec(Codec):
    """CloudTrail log file: one event per entry of ``Records``."""

    name = "cloudtrail"

    def decode(self, stream: BinaryIO) -> Iterator[dict[str, Any]]:
        document = _load_document(stream)
        if not isinstance(document, dict) or not isinstance(document.get("Records"), list):
            raise DecodeError("CloudTrail document has no Records list")
        for item in document["Records"]:
            yield _as_event_data(item)


def _load_document(stream: BinaryIO) -> Any:
    try:
        return json.load(stream)
    except ValueError as exc:
        raise DecodeError(str(exc)) from exc
