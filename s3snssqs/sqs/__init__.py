"""SQS operations for S3SNSSQS ingest."""

from s3snssqs.sqs.client import SQSClient
from s3snssqs.sqs.poller import SQSPoller, parse_notification

__all__ = ["SQSClient", "SQSPoller", "parse_notification"]
