"""SQS notification poller.

Receives S3 object-created notifications (directly or wrapped by SNS), turns
them into Records and decides whether each message is deleted or left for
redelivery after its visibility timeout.
"""

import json
import logging
import threading
from collections.abc import Callable
from urllib.parse import unquote_plus

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from s3snssqs.core.exceptions import MalformedNotificationError
from s3snssqs.core.models import Record, S3EventNotification, SNSEnvelope
from s3snssqs.sqs.client import SQSClient

logger = logging.getLogger(__name__)

# Sent by S3 when a notification configuration is created
S3_TEST_EVENT = "s3:TestEvent"

RecordHandler = Callable[[Record], bool]


def parse_notification(
    body: str,
    from_sns: bool,
    message_id: str | None = None,
    receipt_handle: str | None = None,
) -> list[Record]:
    """
    Extract Records from one SQS message body.

    Args:
        body: Raw message body
        from_sns: Body is an SNS envelope whose ``Message`` is the S3 event
        message_id: SQS message id, copied onto each Record
        receipt_handle: SQS receipt handle, copied onto each Record

    Returns:
        Records in notification order (empty for test events)

    Raises:
        MalformedNotificationError: If the body is not valid JSON or lacks required fields
    """
    try:
        if from_sns:
            envelope = SNSEnvelope.model_validate_json(body)
            payload = json.loads(envelope.message)
        else:
            payload = json.loads(body)
    except (ValidationError, ValueError) as exc:
        raise MalformedNotificationError(message_id, str(exc)) from exc

    if not isinstance(payload, dict):
        raise MalformedNotificationError(message_id, f"expected a JSON object, got {type(payload).__name__}")

    if payload.get("Event") == S3_TEST_EVENT:
        logger.info(f"Ignoring {S3_TEST_EVENT} for bucket {payload.get('Bucket')}")
        return []

    if "Records" in payload:
        entries = payload["Records"]
    elif "s3" in payload:
        entries = [payload]
    else:
        raise MalformedNotificationError(message_id, "no Records in S3 event")

    try:
        notification = S3EventNotification.model_validate({"Records": entries})
    except ValidationError as exc:
        raise MalformedNotificationError(message_id, str(exc)) from exc

    records = []
    for entry in notification.records:
        if not entry.is_object_created:
            logger.debug(f"Skipping {entry.event_name} for s3://{entry.s3.bucket.name}/{entry.s3.s3_object.key}")
            continue
        records.append(
            Record(
                bucket=entry.s3.bucket.name,
                key=unquote_plus(entry.s3.s3_object.key),
                size=entry.s3.s3_object.size,
                receipt_handle=receipt_handle,
                message_id=message_id,
            )
        )
    return records


class SQSPoller:
    """Long-polls one queue and feeds Records to a handler."""

    def __init__(
        self,
        client: SQSClient,
        from_sns: bool = True,
        skip_delete: bool = False,
        visibility_timeout: int | None = 600,
        wait_time_seconds: int | None = None,
        max_messages: int = 10,
    ):
        self.client = client
        self.from_sns = from_sns
        self.skip_delete = skip_delete
        self.visibility_timeout = visibility_timeout
        self.wait_time_seconds = wait_time_seconds
        self.max_messages = max_messages

    def run(self, handler: RecordHandler, stop_event: threading.Event) -> None:
        """
        Poll until ``stop_event`` is set.

        ``handler`` is called once per Record and returns True on success.
        A message is deleted only if every one of its Records succeeded.
        Messages received but not yet handled when stopping are made visible again.
        """
        logger.info(f"Polling {self.client.queue_url}")

        while not stop_event.is_set():
            messages = self.poll_once()
            for index, message in enumerate(messages):
                if stop_event.is_set():
                    self._release(messages[index:])
                    break
                self.handle_message(message, handler)

        logger.info(f"Stopped polling {self.client.queue_url}")

    def poll_once(self) -> list[dict]:
        """Receive one batch; SQS errors are logged and yield an empty batch."""
        try:
            return self.client.receive_messages(
                max_messages=self.max_messages,
                visibility_timeout=self.visibility_timeout,
                wait_time_seconds=self.wait_time_seconds,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.warning(f"Receive from {self.client.queue_url} failed, polling again: {exc}")
            return []

    def handle_message(self, message: dict, handler: RecordHandler) -> bool:
        """
        Process one SQS message.

        Returns:
            True if every Record succeeded (message consumed), False if retained
        """
        message_id = message.get("MessageId")
        receipt_handle = message.get("ReceiptHandle")

        try:
            records = parse_notification(message.get("Body", ""), self.from_sns, message_id, receipt_handle)
        except MalformedNotificationError as exc:
            logger.error(f"Discarding message {message_id}: {exc.reason}")
            # Poison messages are removed even in skip-delete mode
            self._delete(message_id, receipt_handle)
            return True

        completed = True
        for record in records:
            # Every record is attempted even after an earlier failure
            if not self._call_handler(handler, record):
                completed = False

        if not completed:
            logger.warning(
                f"Keeping message {message_id} for redelivery (receipt handle {receipt_handle})"
            )
            return False

        if self.skip_delete:
            logger.debug(f"Skip delete enabled, leaving message {message_id}")
        else:
            self._delete(message_id, receipt_handle)
        return True

    def _call_handler(self, handler: RecordHandler, record: Record) -> bool:
        try:
            return bool(handler(record))
        except Exception:
            logger.exception(f"Unhandled error processing {record.uri} (message {record.message_id})")
            return False

    def _delete(self, message_id: str | None, receipt_handle: str | None) -> None:
        if not receipt_handle:
            logger.error(f"Cannot delete message {message_id}: receipt handle missing")
            return
        try:
            self.client.delete_message(receipt_handle)
            logger.debug(f"Deleted message {message_id}")
        except (ClientError, BotoCoreError) as exc:
            # It will be redelivered, which at-least-once tolerates
            logger.error(f"Failed to delete message {message_id} ({receipt_handle}): {exc}")

    def _release(self, messages: list[dict]) -> None:
        """Make unhandled messages visible to other consumers right away."""
        for message in messages:
            receipt_handle = message.get("ReceiptHandle")
            if not receipt_handle:
                continue
            try:
                self.client.change_visibility(receipt_handle, 0)
                logger.info(f"Released message {message.get('MessageId')} on shutdown")
            except (ClientError, BotoCoreError) as exc:
                logger.warning(f"Could not release message {message.get('MessageId')}: {exc}")
