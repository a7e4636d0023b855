"""Command line interface for S3SNSSQS ingest."""
