"""Command line entry point.

Runs the worker pool and writes every decoded event to stdout as one JSON
document per line. SIGINT/SIGTERM stop the workers gracefully.

Usage:
    s3snssqs --config config.json
    S3SNSSQS_QUEUE=my-elb-log-queue s3snssqs --consumer-threads 4
"""

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Callable
from typing import TextIO

from botocore.exceptions import BotoCoreError, ClientError

from s3snssqs.core.config import IngestConfig, load_config
from s3snssqs.core.metrics import MetricsClient
from s3snssqs.processing.dispatcher import ContentDispatcher
from s3snssqs.processing.format_resolver import FormatResolver
from s3snssqs.processing.sink import BoundedEventSink
from s3snssqs.s3.client_factory import S3ClientFactory
from s3snssqs.s3.downloader import S3Downloader
from s3snssqs.sqs.client import SQSClient
from s3snssqs.sqs.poller import SQSPoller
from s3snssqs.worker.pool import WorkerPool

logger = logging.getLogger(__name__)


def build_pool(config: IngestConfig) -> WorkerPool:
    """
    Wire all components from ``config``.

    Raises:
        ConfigurationError: If a configured codec is unknown
        ClientError: If the queue URL cannot be resolved
    """
    sqs_client = SQSClient(
        config.queue,
        region=config.aws_region,
        owner_account_id=config.queue_owner_aws_account_id,
        endpoint_url=config.endpoint_url,
    )
    if config.wait_time_seconds is None:
        _check_long_polling(sqs_client)

    poller = SQSPoller(
        sqs_client,
        from_sns=config.from_sns,
        skip_delete=config.sqs_skip_delete,
        visibility_timeout=config.visibility_timeout,
        wait_time_seconds=config.wait_time_seconds,
        max_messages=config.max_number_of_messages,
    )
    client_factory = S3ClientFactory(
        region=config.aws_region,
        options_by_bucket=config.s3_options_by_bucket,
        role_session_name=config.s3_role_session_name,
        endpoint_url=config.endpoint_url,
    )
    downloader = S3Downloader(config.ensure_temporary_directory(), client_factory, config.delete_on_success)
    dispatcher = ContentDispatcher(FormatResolver.from_config(config))
    metrics = MetricsClient(config.metrics_namespace, config.aws_region) if config.metrics_namespace else None

    return WorkerPool(poller, downloader, dispatcher, config.shutdown_grace_period, metrics)


def _check_long_polling(sqs_client: SQSClient) -> None:
    try:
        attributes = sqs_client.get_queue_attributes()
    except (ClientError, BotoCoreError) as exc:
        logger.warning(f"Could not read attributes of {sqs_client.queue_url}: {exc}")
        return

    logger.info(
        f"Queue {sqs_client.queue_url}: {attributes['available']} available, "
        f"{attributes['in_flight']} in flight, wait time {attributes['receive_wait_time']}s"
    )
    if attributes["receive_wait_time"] == 0:
        logger.warning("Queue uses short polling; set ReceiveMessageWaitTimeSeconds (e.g. 10) or wait_time_seconds")


def pump_events(sink: BoundedEventSink, out: TextIO, keep_going: Callable[[], bool]) -> int:
    """Write events from ``sink`` to ``out`` while ``keep_going()``; returns the count written."""
    written = 0
    while keep_going():
        event = sink.get(timeout=0.5)
        if event is not None:
            out.write(event.model_dump_json() + "\n")
            written += 1
    for event in sink.drain():
        out.write(event.model_dump_json() + "\n")
        written += 1
    out.flush()
    return written


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest S3 objects announced via SQS (optionally through SNS)")
    parser.add_argument("--config", help="JSON configuration file (environment S3SNSSQS_* otherwise)")
    parser.add_argument("--log-level", help="Log level, e.g. DEBUG or INFO")
    parser.add_argument("--consumer-threads", type=int, help="Number of worker threads")
    args = parser.parse_args(argv)

    config = load_config(args.config, log_level=args.log_level, consumer_threads=args.consumer_threads)

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(threadName)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stderr,
    )

    pool = build_pool(config)
    sink = BoundedEventSink(config.sink_max_size, config.sink_push_timeout)
    shutdown = threading.Event()

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}, shutting down gracefully...")
        shutdown.set()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    pool.start(config.consumer_threads, sink)
    pump_events(sink, sys.stdout, lambda: not shutdown.is_set() and pool.is_running)

    # Keep draining while workers finish their current record
    result = {}
    stopper = threading.Thread(target=lambda: result.update(clean=pool.stop()), name="s3snssqs-stop")
    stopper.start()
    written = pump_events(sink, sys.stdout, stopper.is_alive)

    logger.info(f"Shutdown complete, {written} events written after stop")
    return 0 if result.get("clean") else 1


if __name__ == "__main__":
    sys.exit(main())
