"""CloudWatch metrics for ingest monitoring.

Every processed record publishes one ``RecordsProcessed`` count, dimensioned
by bucket and verdict, and its ``ProcessingDuration``. Metric failures are
logged and never interrupt processing.
"""

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from s3snssqs.core.models import CompletionVerdict

logger = logging.getLogger(__name__)


class MetricsClient:
    """Publishes per-record outcomes to CloudWatch."""

    def __init__(self, namespace: str = "S3SNSSQSIngest", region: str | None = None):
        self.namespace = namespace
        self.cloudwatch = boto3.client("cloudwatch", region_name=region)

    def record_outcome(self, bucket: str, verdict: CompletionVerdict, duration_ms: float) -> None:
        """
        Publish the verdict and processing time of one record in a single call.

        Args:
            bucket: Source bucket of the record
            verdict: How processing of the record ended
            duration_ms: Time from download start to cleanup, in milliseconds
        """
        bucket_dimension = {"Name": "Bucket", "Value": bucket}
        metric_data = [
            {
                "MetricName": "RecordsProcessed",
                "Value": 1,
                "Unit": "Count",
                "Dimensions": [bucket_dimension, {"Name": "Verdict", "Value": verdict.value}],
            },
            {
                "MetricName": "ProcessingDuration",
                "Value": duration_ms,
                "Unit": "Milliseconds",
                "Dimensions": [bucket_dimension],
            },
        ]

        try:
            self.cloudwatch.put_metric_data(Namespace=self.namespace, MetricData=metric_data)
        except (ClientError, BotoCoreError) as exc:
            logger.warning(f"Failed to publish metrics for s3://{bucket} ({verdict.value}): {exc}")
