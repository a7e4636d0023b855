"""Per-bucket, per-path codec and type selection.

Rules are kept as an ordered list per bucket and scanned linearly; the first
pattern found in the key decides. Keys without a matching rule use the
default codec and no type.
"""

import re
from dataclasses import dataclass

from s3snssqs.core.config import IngestConfig
from s3snssqs.processing.codecs import get_codec


@dataclass(frozen=True)
class FolderRule:
    pattern: re.Pattern
    codec: str | None = None
    type: str | None = None


@dataclass(frozen=True)
class ResolvedFormat:
    codec: str
    type: str | None = None


class FormatResolver:
    """Maps (bucket, key) to a codec name and an optional event type."""

    def __init__(self, default_codec: str, rules_by_bucket: dict[str, list[FolderRule]] | None = None):
        self.default_codec = default_codec
        self.rules_by_bucket = rules_by_bucket or {}

    @classmethod
    def from_config(cls, config: IngestConfig) -> "FormatResolver":
        """
        Compile the folder rules of every configured bucket.

        Raises:
            ConfigurationError: If the default codec or a rule's codec is unknown
        """
        get_codec(config.default_codec)

        rules_by_bucket = {}
        for bucket, options in config.s3_options_by_bucket.items():
            rules = []
            for folder in options.folders:
                if folder.codec is not None:
                    get_codec(folder.codec)
                rules.append(FolderRule(re.compile(folder.key), folder.codec, folder.type or None))
            if rules:
                rules_by_bucket[bucket] = rules

        return cls(config.default_codec, rules_by_bucket)

    def resolve(self, bucket: str, key: str) -> ResolvedFormat:
        for rule in self.rules_by_bucket.get(bucket, []):
            if rule.pattern.search(key):
                return ResolvedFormat(rule.codec or self.default_codec, rule.type)
        return ResolvedFormat(self.default_codec)
