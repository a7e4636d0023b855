"""SQS client wrapper.

NO try-catch blocks - let boto3 exceptions bubble up to the poller.
"""

import boto3


class SQSClient:
    """High-level SQS operations on one queue."""

    def __init__(
        self,
        queue: str,
        region: str,
        owner_account_id: str | None = None,
        endpoint_url: str | None = None,
    ):
        kwargs = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self.sqs = boto3.client("sqs", **kwargs)
        self.queue_url = self._resolve_queue_url(queue, owner_account_id)

    def _resolve_queue_url(self, queue: str, owner_account_id: str | None) -> str:
        """Accept either a queue URL or a queue name (looked up, optionally in another account)."""
        if queue.startswith(("https://", "http://")):
            return queue

        params = {"QueueName": queue}
        if owner_account_id:
            params["QueueOwnerAWSAccountId"] = owner_account_id
        return self.sqs.get_queue_url(**params)["QueueUrl"]

    def receive_messages(
        self,
        max_messages: int = 10,
        visibility_timeout: int | None = None,
        wait_time_seconds: int | None = None,
    ) -> list[dict]:
        """
        Long-poll the queue once.

        Args:
            max_messages: Upper bound of messages returned (1-10)
            visibility_timeout: Seconds the messages stay hidden, queue default if None
            wait_time_seconds: Long poll wait, queue's ReceiveMessageWaitTimeSeconds if None

        Returns:
            List of raw SQS messages (possibly empty)

        Raises:
            ClientError: If SQS receive fails
        """
        params = {
            "QueueUrl": self.queue_url,
            "MaxNumberOfMessages": max_messages,
            "AttributeNames": ["ApproximateReceiveCount"],
        }
        if visibility_timeout is not None:
            params["VisibilityTimeout"] = visibility_timeout
        if wait_time_seconds is not None:
            params["WaitTimeSeconds"] = wait_time_seconds

        response = self.sqs.receive_message(**params)
        return response.get("Messages", [])

    def delete_message(self, receipt_handle: str) -> None:
        """
        Remove a processed message.

        Raises:
            ClientError: If SQS delete fails
        """
        self.sqs.delete_message(QueueUrl=self.queue_url, ReceiptHandle=receipt_handle)

    def change_visibility(self, receipt_handle: str, seconds: int) -> None:
        """
        Hide a received message for ``seconds`` more (0 makes it visible again).

        Raises:
            ClientError: If the receipt handle is stale or the call fails
        """
        self.sqs.change_message_visibility(
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=seconds,
        )

    def get_queue_attributes(self) -> dict:
        """
        Get queue statistics and polling settings.

        Returns:
            Dictionary with 'available', 'in_flight', 'delayed' message counts,
            'receive_wait_time' and 'visibility_timeout' seconds

        Raises:
            ClientError: If get attributes fails
        """
        response = self.sqs.get_queue_attributes(
            QueueUrl=self.queue_url,
            AttributeNames=[
                "ApproximateNumberOfMessages",
                "ApproximateNumberOfMessagesNotVisible",
                "ApproximateNumberOfMessagesDelayed",
                "ReceiveMessageWaitTimeSeconds",
                "VisibilityTimeout",
            ],
        )

        attrs = response["Attributes"]
        return {
            "available": int(attrs.get("ApproximateNumberOfMessages", 0)),
            "in_flight": int(attrs.get("ApproximateNumberOfMessagesNotVisible", 0)),
            "delayed": int(attrs.get("ApproximateNumberOfMessagesDelayed", 0)),
            "receive_wait_time": int(attrs.get("ReceiveMessageWaitTimeSeconds", 0)),
            "visibility_timeout": int(attrs.get("VisibilityTimeout", 30)),
        }
