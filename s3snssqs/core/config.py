"""Configuration management using Pydantic Settings.

Values load from ``S3SNSSQS_*`` environment variables, a ``.env`` file, or a
JSON file passed to :func:`load_config`. Pydantic raises ValidationError if
the queue is missing or a folder pattern does not compile.
"""

import json
import re
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BucketCredentials(BaseModel):
    """How to reach one bucket. Empty means the default credential chain."""

    role_arn: str | None = Field(default=None, description="IAM role to assume for this bucket")
    access_key_id: str | None = Field(default=None, description="Static access key id")
    secret_access_key: str | None = Field(default=None, description="Static secret access key")
    session_token: str | None = Field(default=None, description="Static session token")
    region: str | None = Field(default=None, description="Region override for this bucket")
    endpoint_url: str | None = Field(default=None, description="Endpoint override (LocalStack)")


class FolderOption(BaseModel):
    """Codec/type rule for keys matching ``key`` (a regular expression)."""

    key: str = Field(..., description="Regular expression searched in the object key")
    codec: str | None = Field(default=None, description="Codec name, default codec if unset")
    type: str | None = Field(default=None, description="Type stamped on emitted events")

    @field_validator("key")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid folder pattern {value!r}: {exc}") from exc
        return value


class BucketOptions(BaseModel):
    """Per-bucket credentials and ordered folder rules (first match wins)."""

    credentials: BucketCredentials = Field(default_factory=BucketCredentials)
    folders: list[FolderOption] = Field(default_factory=list)


class IngestConfig(BaseSettings):
    """Global configuration - loads from environment variables or .env file."""

    # SQS
    queue: str = Field(..., description="SQS queue name or URL")
    queue_owner_aws_account_id: str | None = Field(default=None, description="Owner account of the queue")
    from_sns: bool = Field(default=True, description="Bodies are SNS envelopes (S3>SNS>SQS)")
    sqs_skip_delete: bool = Field(default=False, description="Never delete processed messages")
    visibility_timeout: int = Field(default=600, ge=0, le=43200, description="Seconds a received message stays hidden")
    wait_time_seconds: int | None = Field(
        default=None, ge=0, le=20, description="Long poll wait, queue attribute if unset"
    )
    max_number_of_messages: int = Field(default=10, ge=1, le=10, description="Messages per receive call")

    # S3
    delete_on_success: bool = Field(default=False, description="Delete source objects after processing")
    s3_role_session_name: str = Field(default="s3snssqs", description="Session name for assumed roles")
    s3_options_by_bucket: dict[str, BucketOptions] = Field(default_factory=dict)

    # AWS
    aws_region: str = Field(default="us-east-1", description="AWS region")
    endpoint_url: str | None = Field(default=None, description="Endpoint override (LocalStack)")

    # Processing
    default_codec: str = Field(default="plain", description="Codec when no folder rule applies")
    sink_max_size: int = Field(default=1000, ge=1, description="Capacity of the output event queue")
    sink_push_timeout: float = Field(default=60.0, gt=0, description="Seconds to wait on a full sink")

    # System
    temporary_directory: Path = Field(default=Path(tempfile.gettempdir()) / "s3snssqs")
    consumer_threads: int = Field(default=1, ge=1, description="Number of worker threads")
    shutdown_grace_period: float = Field(default=30.0, ge=0, description="Seconds to wait for workers on stop")
    metrics_namespace: str | None = Field(default=None, description="CloudWatch namespace, disabled if unset")
    log_level: str = Field(default="INFO", description="Root log level")

    model_config = SettingsConfigDict(
        env_prefix="S3SNSSQS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def ensure_temporary_directory(self) -> Path:
        """Create the scratch directory if needed and return it."""
        self.temporary_directory.mkdir(parents=True, exist_ok=True)
        return self.temporary_directory


def load_config(path: str | Path | None = None, **overrides) -> IngestConfig:
    """
    Build the configuration.

    Args:
        path: Optional JSON file; its values take precedence over the environment
        **overrides: Values taking precedence over both

    Returns:
        Validated IngestConfig

    Raises:
        ValidationError: If required values are missing or invalid
        OSError: If the file cannot be read
    """
    values = {}
    if path is not None:
        values.update(json.loads(Path(path).read_text()))
    values.update({k: v for k, v in overrides.items() if v is not None})
    return IngestConfig(**values)
