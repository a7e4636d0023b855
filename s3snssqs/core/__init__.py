"""Core configuration, models and errors for S3SNSSQS ingest."""

from s3snssqs.core.config import BucketOptions, IngestConfig, load_config
from s3snssqs.core.models import CompletionVerdict, OutputEvent, Record

__all__ = ["BucketOptions", "IngestConfig", "load_config", "CompletionVerdict", "OutputEvent", "Record"]
