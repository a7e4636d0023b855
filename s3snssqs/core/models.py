"""Pydantic models - Single source of truth for data structures."""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CompletionVerdict(str, Enum):
    """Outcome of processing one Record."""

    COMPLETED = "completed"
    FAILED_RETRYABLE = "failed_retryable"
    # Stop decoding early but keep the message for redelivery
    FAILED_SKIP_DELETE = "failed_skip_delete"


class Record(BaseModel):
    """One S3 object to ingest, owned by a single worker thread."""

    bucket: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)
    size: int | None = Field(default=None, ge=0, description="Object size from the notification")
    local_path: Path | None = Field(default=None, description="Scratch file, set once downloaded")
    receipt_handle: str | None = None
    message_id: str | None = None

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class EventMetadata(BaseModel):
    """Source of an output event."""

    bucket: str
    key: str
    codec: str


class OutputEvent(BaseModel):
    """Decoded unit pushed to the sink."""

    data: dict[str, Any]
    type: str | None = None
    metadata: EventMetadata


# S3 event notification schema
# https://docs.aws.amazon.com/AmazonS3/latest/userguide/notification-content-structure.html


class S3ObjectInfo(BaseModel):
    key: str = Field(..., min_length=1)
    size: int | None = Field(default=None, ge=0)


class S3BucketInfo(BaseModel):
    name: str = Field(..., min_length=1)


class S3Entity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bucket: S3BucketInfo
    s3_object: S3ObjectInfo = Field(..., alias="object")


class S3EventRecord(BaseModel):
    """One entry of an S3 notification's ``Records`` list."""

    model_config = ConfigDict(populate_by_name=True)

    event_name: str | None = Field(default=None, alias="eventName")
    s3: S3Entity

    @property
    def is_object_created(self) -> bool:
        # Entries without an eventName are accepted as created objects
        return self.event_name is None or self.event_name.startswith("ObjectCreated")


class S3EventNotification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    records: list[S3EventRecord] = Field(default_factory=list, alias="Records")


class SNSEnvelope(BaseModel):
    """SNS notification delivered to SQS; ``Message`` holds the S3 event as JSON."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., alias="Message")
    message_id: str | None = Field(default=None, alias="MessageId")
    topic_arn: str | None = Field(default=None, alias="TopicArn")
