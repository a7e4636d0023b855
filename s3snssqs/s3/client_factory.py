"""Per-bucket S3 clients.

Each bucket may use its own static keys, an assumed IAM role, a region or an
endpoint override. Clients are built on first use and cached; clients using
assumed-role credentials are rebuilt shortly before the credentials expire.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import boto3

from s3snssqs.core.config import BucketCredentials, BucketOptions

logger = logging.getLogger(__name__)

# Rebuild assumed-role clients this long before their credentials expire
REFRESH_MARGIN = timedelta(minutes=5)


@dataclass(frozen=True)
class _CachedClient:
    client: object
    expires_at: datetime | None = None

    def is_fresh(self) -> bool:
        if self.expires_at is None:
            return True
        return datetime.now(timezone.utc) + REFRESH_MARGIN < self.expires_at


class S3ClientFactory:
    """Thread-safe, lazily populated map of bucket -> S3 client."""

    def __init__(
        self,
        region: str,
        options_by_bucket: dict[str, BucketOptions] | None = None,
        role_session_name: str = "s3snssqs",
        endpoint_url: str | None = None,
    ):
        self.region = region
        self.options_by_bucket = options_by_bucket or {}
        self.role_session_name = role_session_name
        self.endpoint_url = endpoint_url
        self._clients: dict[str, _CachedClient] = {}
        self._bucket_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def _lock_for(self, bucket: str) -> threading.Lock:
        with self._lock:
            return self._bucket_locks.setdefault(bucket, threading.Lock())

    def get_client(self, bucket: str):
        """
        Return the S3 client for ``bucket``, creating it on first use.

        Creation holds only that bucket's lock, so a slow role assumption
        never delays other buckets.

        Raises:
            ClientError: If assuming the bucket's role fails
        """
        cached = self._clients.get(bucket)
        if cached is not None and cached.is_fresh():
            return cached.client

        with self._lock_for(bucket):
            # Another thread may have populated it while we waited
            cached = self._clients.get(bucket)
            if cached is None or not cached.is_fresh():
                cached = self._create(bucket)
                self._clients[bucket] = cached
            return cached.client

    def _create(self, bucket: str) -> _CachedClient:
        options = self.options_by_bucket.get(bucket)
        credentials = options.credentials if options else BucketCredentials()

        kwargs = {"region_name": credentials.region or self.region}
        endpoint_url = credentials.endpoint_url or self.endpoint_url
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        expires_at = None
        if credentials.role_arn:
            sts = boto3.client("sts", **kwargs)
            response = sts.assume_role(
                RoleArn=credentials.role_arn,
                RoleSessionName=self.role_session_name,
            )
            assumed = response["Credentials"]
            kwargs["aws_access_key_id"] = assumed["AccessKeyId"]
            kwargs["aws_secret_access_key"] = assumed["SecretAccessKey"]
            kwargs["aws_session_token"] = assumed["SessionToken"]
            expires_at = assumed["Expiration"]
            logger.info(f"Assumed {credentials.role_arn} for bucket {bucket} until {expires_at}")
        elif credentials.access_key_id:
            kwargs["aws_access_key_id"] = credentials.access_key_id
            kwargs["aws_secret_access_key"] = credentials.secret_access_key
            if credentials.session_token:
                kwargs["aws_session_token"] = credentials.session_token
            logger.info(f"Using static credentials for bucket {bucket}")
        else:
            logger.info(f"Using default credentials for bucket {bucket}")

        return _CachedClient(client=boto3.client("s3", **kwargs), expires_at=expires_at)
