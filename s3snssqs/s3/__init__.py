"""S3 operations for S3SNSSQS ingest."""

from s3snssqs.s3.client_factory import S3ClientFactory
from s3snssqs.s3.downloader import S3Downloader

__all__ = ["S3ClientFactory", "S3Downloader"]
