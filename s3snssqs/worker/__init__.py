"""Worker pool for S3SNSSQS ingest."""

from s3snssqs.worker.pool import WorkerPool

__all__ = ["WorkerPool"]
