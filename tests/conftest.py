"""Shared pytest fixtures."""

import json
import os

import boto3
import pytest
from moto import mock_aws

# Fake credentials before any boto3 client is created
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

REGION = "us-east-1"
BUCKET = "logs"
QUEUE_NAME = "my-elb-log-queue"


def s3_entry(bucket: str, key: str, size: int | None = None, event_name: str = "ObjectCreated:Put") -> dict:
    """One entry of an S3 event notification's Records list."""
    s3_object = {"key": key}
    if size is not None:
        s3_object["size"] = size
    return {
        "eventVersion": "2.1",
        "eventSource": "aws:s3",
        "eventName": event_name,
        "s3": {"bucket": {"name": bucket}, "object": s3_object},
    }


def notification_body(entries: list[dict], from_sns: bool = False) -> str:
    """SQS message body for ``entries``, optionally wrapped in an SNS envelope."""
    payload = json.dumps({"Records": entries})
    if not from_sns:
        return payload
    return json.dumps(
        {
            "Type": "Notification",
            "MessageId": "sns-message-id",
            "TopicArn": "arn:aws:sns:us-east-1:123456789012:s3-events",
            "Message": payload,
        }
    )


@pytest.fixture
def make_entry():
    return s3_entry


@pytest.fixture
def make_body():
    return notification_body


@pytest.fixture
def aws():
    """Mock every AWS service for the duration of a test."""
    with mock_aws():
        yield


@pytest.fixture
def s3(aws):
    """Mocked S3 client with the ``logs`` bucket created."""
    client = boto3.client("s3", region_name=REGION)
    client.create_bucket(Bucket=BUCKET)
    return client


@pytest.fixture
def sqs(aws):
    """Mocked SQS client."""
    return boto3.client("sqs", region_name=REGION)


@pytest.fixture
def queue_url(sqs):
    """URL of a mocked notification queue."""
    response = sqs.create_queue(QueueName=QUEUE_NAME, Attributes={"VisibilityTimeout": "600"})
    return response["QueueUrl"]


@pytest.fixture
def scratch_dir(tmp_path):
    """Temporary directory standing in for the provisioned scratch directory."""
    d = tmp_path / "scratch"
    d.mkdir()
    return d


@pytest.fixture(autouse=True)
def reset_env():
    """Reset environment variables after each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
