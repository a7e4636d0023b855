"""S3SNSSQS - Ingest S3 objects announced through SQS (optionally via SNS)."""

__version__ = "1.0.0"

from s3snssqs.core.config import IngestConfig, load_config
from s3snssqs.core.models import CompletionVerdict, OutputEvent, Record

__all__ = ["IngestConfig", "load_config", "CompletionVerdict", "OutputEvent", "Record", "__version__"]
