"""Main module for the pixel pipeline CLI."""

import sys
import json
import uuid
import argparse
import logging
from typing import Any, Dict

from .core import PipelineConfig, UploadEvent, get_logger
from .core.exceptions import PixelPipelineError
from .core.factories import WorkerFactory
from .core.observability import MetricsCollector

WORKER_CHOICES = ["metadata", "converter", "resizer"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixel-pipeline",
        description="Pixel Pipeline - upload fanout to metadata, converter and resizer workers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Publish an upload event for an existing object
  pixel-pipeline notify --bucket my-images --key photos/cat.png

  # Replay an upload event through the resizer locally
  pixel-pipeline run --worker resizer --bucket my-images --key photos/cat.png

  # Show version
  pixel-pipeline version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    notify_parser = subparsers.add_parser(
        "notify", help="Publish an upload event to the fanout topic"
    )
    notify_parser.add_argument("--bucket", required=True, help="Source bucket")
    notify_parser.add_argument("--key", required=True, help="Source object key")
    notify_parser.add_argument(
        "--topic-arn", default=None, help="Topic ARN (default: PIXEL_TOPIC_ARN)"
    )
    notify_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    run_parser = subparsers.add_parser(
        "run", help="Process one upload event with a worker"
    )
    run_parser.add_argument(
        "--worker", required=True, choices=WORKER_CHOICES, help="Worker to run"
    )
    run_parser.add_argument("--bucket", required=True, help="Source bucket")
    run_parser.add_argument("--key", required=True, help="Source object key")
    run_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("version", help="Show version information")
    return parser


def build_queue_event(upload: UploadEvent) -> Dict[str, Any]:
    """Wrap an upload event the way the queue delivers it."""
    return {
        "Records": [
            {"messageId": f"local-{uuid.uuid4()}", "body": upload.model_dump_json()}
        ]
    }


def run_command(args: argparse.Namespace) -> None:
    """Run the "notify" or "run" command against the configured collaborators."""
    logger = get_logger("cli")
    try:
        config = PipelineConfig.from_env()
        overrides: Dict[str, Any] = {}
        if args.debug:
            overrides["debug"] = True
            logger.setLevel(logging.DEBUG)
        if args.command == "notify" and args.topic_arn:
            overrides["topic_arn"] = args.topic_arn
        if overrides:
            config = config.model_copy(update=overrides)

        metrics = MetricsCollector()
        factory = WorkerFactory(config, metrics_collector=metrics)
        upload = UploadEvent(bucket=args.bucket, key=args.key)

        if args.command == "notify":
            message_id = factory.create_notifier().publish(upload)
            print(json.dumps({"message_id": message_id}))
            return

        worker = factory.create_worker(args.worker)
        response = worker.handle_event(build_queue_event(upload))
        logger.info(f"{args.worker} metrics: {metrics.get_summary(args.worker)}")
        print(json.dumps(response))
        if response["batchItemFailures"]:
            sys.exit(1)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
    except PixelPipelineError as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


def main() -> None:
    """
    Entry point for the pixel pipeline command-line interface.

    "notify" publishes an upload event through the notifier, "run" feeds a
    single upload event to one worker and prints its batch response.
    """
    parser = build_parser()
    args: argparse.Namespace = parser.parse_args()

    if args.command in ("notify", "run"):
        run_command(args)

    elif args.command == "version":
        print("Pixel Pipeline CLI")
        print("Version 0.1.0")
        print("Upload fanout to metadata, converter and resizer workers")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
