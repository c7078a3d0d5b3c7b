"""
Histogram Subscriber Entry Point
================================

Command-line entry point: subscribe to the bus, decode histograms,
print one report line per frame until stopped.

Usage:
    histo-subscriber
    histo-subscriber --address tcp://*:5024 --expected-type TH1F
    histo-subscriber --address tcp://publisher:5024 --connect --format json

Exit status:
    0 - stopped cleanly (SIGINT / SIGTERM)
    1 - fatal transport or reporting error
    2 - invalid configuration
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

import yaml
from pydantic import ValidationError

from histo_subscriber import __version__
from histo_subscriber.config import Settings, load_config, setup_logging
from histo_subscriber.pipeline import SubscriberPipeline
from histo_subscriber.report import ReportingError, create_report_sink
from histo_subscriber.stream import TransportError, ZmqFrameSource


logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="histo-subscriber",
        description="Receive, verify and decode histograms published over ZeroMQ.",
    )
    parser.add_argument("--config", type=str, help="Path to config.yaml")
    parser.add_argument("--address", type=str, help="ZeroMQ endpoint, e.g. tcp://*:5024")
    parser.add_argument(
        "--connect",
        action="store_true",
        help="Connect to the endpoint instead of binding it",
    )
    parser.add_argument(
        "--expected-type",
        type=str,
        help="Class name of the objects to decode (e.g. TH1F)",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["text", "json", "none"],
        help="Report format",
    )
    parser.add_argument("--log-level", type=str, help="Log level (DEBUG, INFO, ...)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with command-line flags applied on top."""
    data = settings.model_dump()

    if args.address is not None:
        data["subscriber"]["address"] = args.address
    if args.connect:
        data["subscriber"]["bind"] = False
    if args.expected_type is not None:
        data["subscriber"]["expected_type"] = args.expected_type
    if args.format is not None:
        data["report"]["format"] = args.format
    if args.log_level is not None:
        data["logging"]["level"] = args.log_level

    return Settings.model_validate(data)


async def run(settings: Settings) -> int:
    """
    Run the subscriber until stopped.

    Returns:
        Process exit status
    """
    source = ZmqFrameSource(
        address=settings.subscriber.address,
        bind=settings.subscriber.bind,
        receive_hwm=settings.subscriber.receive_hwm,
    )

    try:
        sink = create_report_sink(settings.report.format)
        pipeline = SubscriberPipeline(
            source=source,
            sink=sink,
            expected_type=settings.subscriber.expected_type,
            max_queue_size=settings.subscriber.max_queue_size,
        )
    except ValueError as e:
        logger.critical(f"Invalid configuration: {e}")
        return EXIT_CONFIG

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, pipeline.stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    try:
        async with source:
            await pipeline.run()
    except TransportError as e:
        logger.critical(f"Transport error, stopping: {e}")
        return EXIT_FATAL
    except ReportingError as e:
        logger.critical(f"Reporting error, stopping: {e}")
        return EXIT_FATAL

    logger.info(f"Stopped after {pipeline.iteration} frames")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = apply_cli_overrides(load_config(args.config), args)
    except (FileNotFoundError, ValidationError, yaml.YAMLError, ValueError) as e:
        print(f"histo-subscriber: invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(settings)
    logger.info(
        f"Starting histo-subscriber {__version__} on {settings.subscriber.address} "
        f"({'bind' if settings.subscriber.bind else 'connect'}), "
        f"expecting {settings.subscriber.expected_type}"
    )

    return asyncio.run(run(settings))


if __name__ == "__main__":
    sys.exit(main())
