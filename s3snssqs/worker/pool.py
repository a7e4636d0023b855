"""Worker threads wiring poller, downloader and dispatcher together.

Each thread runs its own poll loop; SQS decides which thread gets which
message, so threads share nothing but the read-only configuration, the S3
client cache and the sink.
"""

import logging
import threading
import time

from s3snssqs.core.metrics import MetricsClient
from s3snssqs.core.models import CompletionVerdict, Record
from s3snssqs.processing.dispatcher import ContentDispatcher
from s3snssqs.processing.sink import EventSink
from s3snssqs.s3.downloader import S3Downloader
from s3snssqs.sqs.poller import SQSPoller

logger = logging.getLogger(__name__)


class WorkerPool:
    """Runs N poll loops and stops them cooperatively, abandoning stragglers."""

    def __init__(
        self,
        poller: SQSPoller,
        downloader: S3Downloader,
        dispatcher: ContentDispatcher,
        grace_period: float = 30.0,
        metrics: MetricsClient | None = None,
    ):
        self.poller = poller
        self.downloader = downloader
        self.dispatcher = dispatcher
        self.grace_period = grace_period
        self.metrics = metrics
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._stopping = False

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self, n: int, sink: EventSink) -> None:
        """
        Launch ``n`` worker threads pushing to ``sink``.

        Raises:
            ValueError: If n < 1
            RuntimeError: If the pool was already started
        """
        if n < 1:
            raise ValueError(f"Need at least one worker, got {n}")

        with self._lock:
            if self._threads:
                raise RuntimeError("Worker pool already started")
            for index in range(n):
                thread = threading.Thread(
                    target=self._run_worker,
                    args=(sink,),
                    name=f"s3snssqs-worker-{index}",
                    # Daemon so a thread stuck in a network call cannot keep the process alive
                    daemon=True,
                )
                self._threads.append(thread)
                thread.start()

        logger.info(f"Started {n} worker threads")

    def _run_worker(self, sink: EventSink) -> None:
        logger.info("Starting new worker thread")
        try:
            self.poller.run(lambda record: self.process_record(record, sink), self._stop_event)
        except Exception:
            logger.exception("Worker thread crashed")
            raise
        logger.info("Worker thread finished")

    def process_record(self, record: Record, sink: EventSink) -> bool:
        """
        Fetch, decode and clean up one Record.

        Returns:
            True only for a COMPLETED verdict
        """
        start = time.monotonic()
        verdict = self._process(record, sink)
        if self.metrics:
            self.metrics.record_outcome(record.bucket, verdict, (time.monotonic() - start) * 1000)

        if verdict is CompletionVerdict.COMPLETED:
            return True

        logger.warning(
            f"{record.uri} finished as {verdict.value} "
            f"(message {record.message_id}, receipt handle {record.receipt_handle})"
        )
        return False

    def _process(self, record: Record, sink: EventSink) -> CompletionVerdict:
        if not self.downloader.download(record):
            return CompletionVerdict.FAILED_RETRYABLE

        try:
            verdict = self.dispatcher.process(record, sink)
        finally:
            self.downloader.cleanup_local(record)

        if verdict is CompletionVerdict.COMPLETED:
            self.downloader.cleanup_remote(record)
        return verdict

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every worker exits (or ``timeout``); True if all exited."""
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(timeout=remaining)
        return not self.is_running

    def stop(self) -> bool:
        """
        Ask every worker to stop and wait at most ``grace_period`` seconds.

        Workers finish their current record; only the next receive is skipped.
        Workers still running after the grace period are abandoned and die
        with the process. Calling stop again returns immediately.

        Returns:
            True if all workers exited
        """
        with self._lock:
            if self._stopping:
                return not self.is_running
            self._stopping = True

        logger.info(f"Stopping {len(self._threads)} worker threads")
        self._stop_event.set()
        self.wait(self.grace_period)

        stragglers = [thread for thread in self._threads if thread.is_alive()]
        for thread in stragglers:
            logger.warning(f"Worker {thread.name} did not stop within {self.grace_period}s, forcing termination")
        return not stragglers
