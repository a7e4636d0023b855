"""Exception hierarchy for S3SNSSQS ingest."""


class IngestError(Exception):
    """Base exception for all ingest errors."""


class ConfigurationError(IngestError):
    """Configuration is inconsistent (e.g. unknown codec name)."""


class MalformedNotificationError(IngestError):
    """SQS message body is not a usable S3 event notification.

    Messages raising this are deleted instead of being retried.
    """

    def __init__(self, message_id: str | None, reason: str):
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"Malformed notification {message_id}: {reason}")


class IntegrityError(IngestError):
    """Downloaded object does not match its notification."""

    def __init__(self, bucket: str, key: str, expected: int, actual: int):
        self.bucket = bucket
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"s3://{bucket}/{key}: expected {expected} bytes, got {actual}")


class DecodeError(IngestError):
    """File content does not match the resolved codec."""
