"""S3 object download and cleanup."""

import gzip
import logging
import zlib
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from s3snssqs.core.exceptions import IntegrityError
from s3snssqs.core.models import Record
from s3snssqs.s3.client_factory import S3ClientFactory

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class CountingReader:
    """File-like view of an S3 body that counts the bytes read through it."""

    def __init__(self, body):
        self._body = body
        self.count = 0

    def read(self, size: int = -1) -> bytes:
        data = self._body.read(size if size is not None and size >= 0 else None)
        self.count += len(data)
        return data


class S3Downloader:
    """Copies S3 objects to the scratch directory and cleans up afterwards."""

    def __init__(
        self,
        temporary_directory: str | Path,
        client_factory: S3ClientFactory,
        delete_on_success: bool = False,
    ):
        self.temporary_directory = Path(temporary_directory)
        self.client_factory = client_factory
        self.delete_on_success = delete_on_success

    def local_path_for(self, key: str) -> Path:
        return self.temporary_directory / Path(key).name

    def download(self, record: Record) -> bool:
        """
        Download ``record`` to disk, gunzipping if the object is gzip encoded.

        When the notification carried a size, the number of bytes written must
        equal it. For gzip objects the stored (compressed) byte count is also
        accepted, since S3 notifications report the stored size.

        Returns:
            True and sets ``record.local_path`` on success; False otherwise,
            with no file left behind
        """
        local_path = self.local_path_for(record.key)
        record.local_path = local_path

        try:
            client = self.client_factory.get_client(record.bucket)
            response = client.get_object(Bucket=record.bucket, Key=record.key)
            gzipped = "gzip" in response.get("ContentEncoding", "").lower()
            received, written = self._copy(response["Body"], local_path, gzipped)
            if record.size is not None and record.size not in (written, received):
                raise IntegrityError(record.bucket, record.key, record.size, written)
        except IntegrityError as exc:
            logger.error(f"Size mismatch, dropping download (message {record.message_id}): {exc}")
            self.cleanup_local(record)
            return False
        except (ClientError, BotoCoreError) as exc:
            logger.error(f"Could not fetch {record.uri} (message {record.message_id}): {exc}")
            self.cleanup_local(record)
            return False
        except (OSError, EOFError, zlib.error) as exc:
            # gzip.BadGzipFile is an OSError
            logger.error(f"Could not write or decompress {record.uri} (message {record.message_id}): {exc}")
            self.cleanup_local(record)
            return False

        logger.info(f"Downloaded {record.uri} ({received} bytes, {written} written) to {local_path}")
        return True

    def _copy(self, body, local_path: Path, gzipped: bool) -> tuple[int, int]:
        """Stream ``body`` to ``local_path``; returns (bytes read from S3, bytes written)."""
        reader = CountingReader(body)
        source = gzip.GzipFile(fileobj=reader, mode="rb") if gzipped else reader
        written = 0

        with local_path.open("wb") as fh:
            while True:
                chunk = source.read(CHUNK_SIZE)
                if not chunk:
                    break
                fh.write(chunk)
                written += len(chunk)

        return reader.count, written

    def cleanup_local(self, record: Record) -> None:
        """Remove the scratch file of ``record``; a missing file is fine."""
        if record.local_path is None:
            return
        try:
            record.local_path.unlink(missing_ok=True)
            logger.debug(f"Deleted local file: {record.local_path}")
        except OSError as exc:
            logger.error(f"Could not delete local file {record.local_path}: {exc}")
        record.local_path = None

    def cleanup_remote(self, record: Record) -> bool:
        """
        Delete the source object if delete-on-success is enabled.

        Only call after a COMPLETED verdict.

        Returns:
            True if the object was deleted
        """
        if not self.delete_on_success:
            return False
        try:
            client = self.client_factory.get_client(record.bucket)
            client.delete_object(Bucket=record.bucket, Key=record.key)
        except (ClientError, BotoCoreError) as exc:
            logger.error(f"Could not delete {record.uri}: {exc}")
            return False
        logger.info(f"Deleted {record.uri}")
        return True
