"""Tests for s3snssqs/processing/format_resolver.py."""

import re

import pytest

from s3snssqs.core.config import IngestConfig
from s3snssqs.core.exceptions import ConfigurationError
from s3snssqs.processing.format_resolver import FolderRule, FormatResolver, ResolvedFormat


def _config(folders: list[dict], default_codec: str = "plain") -> IngestConfig:
    return IngestConfig(
        queue="q",
        default_codec=default_codec,
        s3_options_by_bucket={"logs": {"folders": folders}},
    )


@pytest.fixture
def resolver():
    return FormatResolver.from_config(
        _config(
            [
                {"key": "^elb/", "codec": "plain", "type": "elb"},
                {"key": "^app/", "codec": "json", "type": "app"},
            ],
            default_codec="json_lines",
        )
    )


class TestResolve:
    """Tests for FormatResolver.resolve."""

    def test_first_rule(self, resolver):
        assert resolver.resolve("logs", "elb/2024/01/01/file.log.gz") == ResolvedFormat("plain", "elb")

    def test_second_rule(self, resolver):
        assert resolver.resolve("logs", "app/events.json") == ResolvedFormat("json", "app")

    def test_no_match_uses_default(self, resolver):
        """Unmatched keys resolve to (default codec, no type)."""
        assert resolver.resolve("logs", "unknown/file.log") == ResolvedFormat("json_lines", None)

    def test_unknown_bucket_uses_default(self, resolver):
        assert resolver.resolve("other", "elb/file.log") == ResolvedFormat("json_lines", None)

    def test_first_match_wins(self):
        """When several patterns match, declaration order decides."""
        resolver = FormatResolver.from_config(
            _config(
                [
                    {"key": "elb", "codec": "plain", "type": "first"},
                    {"key": "^elb/special/", "codec": "json", "type": "second"},
                ]
            )
        )

        assert resolver.resolve("logs", "elb/special/x.log") == ResolvedFormat("plain", "first")

    def test_order_reversed_changes_winner(self):
        resolver = FormatResolver(
            "plain",
            {
                "logs": [
                    FolderRule(re.compile("^elb/special/"), "json", "second"),
                    FolderRule(re.compile("elb"), "plain", "first"),
                ]
            },
        )

        assert resolver.resolve("logs", "elb/special/x.log") == ResolvedFormat("json", "second")

    def test_deterministic(self, resolver):
        results = {resolver.resolve("logs", "app/a.json") for _ in range(50)}
        assert results == {ResolvedFormat("json", "app")}

    def test_missing_codec_uses_default_keeps_type(self):
        """A rule with only a type uses the default codec."""
        resolver = FormatResolver.from_config(_config([{"key": "^cloudfront/", "type": "cdn"}]))

        assert resolver.resolve("logs", "cloudfront/a.gz") == ResolvedFormat("plain", "cdn")

    def test_missing_type_left_unset(self):
        """A rule with only a codec leaves the type unset; empty types count as unset."""
        resolver = FormatResolver.from_config(
            _config([{"key": "^a/", "codec": "json"}, {"key": "^b/", "codec": "json", "type": ""}])
        )

        assert resolver.resolve("logs", "a/x") == ResolvedFormat("json", None)
        assert resolver.resolve("logs", "b/x") == ResolvedFormat("json", None)

    def test_pattern_searched_anywhere(self):
        """Patterns are searched in the key, not anchored."""
        resolver = FormatResolver.from_config(_config([{"key": r"\.json$", "codec": "json"}]))

        assert resolver.resolve("logs", "deep/path/x.json").codec == "json"
        assert resolver.resolve("logs", "deep/path/x.json.bak").codec == "plain"


class TestFromConfig:
    """Tests for FormatResolver.from_config validation."""

    def test_unknown_rule_codec(self):
        with pytest.raises(ConfigurationError, match="Unknown codec"):
            FormatResolver.from_config(_config([{"key": ".*", "codec": "avro"}]))

    def test_unknown_default_codec(self):
        with pytest.raises(ConfigurationError):
            FormatResolver.from_config(_config([], default_codec="xml"))

    def test_bucket_without_folders_has_no_rules(self):
        resolver = FormatResolver.from_config(_config([]))

        assert resolver.rules_by_bucket == {}
