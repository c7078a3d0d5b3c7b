"""
Report Sinks
============

Operator-facing output of the subscriber pipeline.

One line per frame:

    text: "<iteration> size=<n> even=0x.. odd=0x.. histogram=<name> entries=.. mean=.. std_dev=.."
          "<iteration> size=<n> even=- odd=- no object decoded (<reason>)"
          "<iteration> size=<n> even=0x.. odd=0x.. type mismatch: got <found>, expected <expected>"
    json: one JSON object per line with the same information

Failure:
    A sink that can't write raises ReportingError. That is the only
    fatal outcome of reporting; decode outcomes are never errors here.
"""

import json
import logging
import sys
from typing import Optional, Protocol, TextIO

from histo_subscriber.integrity.checksum import ChecksumResult
from histo_subscriber.models.decoded import DecodeResult, DecodeStatus
from histo_subscriber.stream.frame import Frame


logger = logging.getLogger(__name__)


REPORT_FORMATS = ("text", "json")


class ReportingError(Exception):
    """Raised when a report can't be written to its output."""
    pass


class ReportSink(Protocol):
    """Receives one report per processed frame."""

    def report(
        self,
        iteration: int,
        frame: Frame,
        checksum: Optional[ChecksumResult],
        decoded: DecodeResult,
    ) -> None:
        ...


class NullReportSink:
    """Sink that discards every report."""

    def report(
        self,
        iteration: int,
        frame: Frame,
        checksum: Optional[ChecksumResult],
        decoded: DecodeResult,
    ) -> None:
        pass


class ConsoleReportSink:
    """
    Line-oriented sink writing to a text stream (stdout by default).

    Attributes:
        stream: Output text stream
        fmt: "text" or "json"
    """

    def __init__(self, stream: Optional[TextIO] = None, fmt: str = "text") -> None:
        if fmt not in REPORT_FORMATS:
            raise ValueError(
                f"Unknown report format {fmt!r} (expected one of {', '.join(REPORT_FORMATS)})"
            )
        self.stream = stream if stream is not None else sys.stdout
        self.fmt = fmt

    def report(
        self,
        iteration: int,
        frame: Frame,
        checksum: Optional[ChecksumResult],
        decoded: DecodeResult,
    ) -> None:
        """
        Write one report line.

        Raises:
            ReportingError: If the output stream fails
        """
        if self.fmt == "json":
            line = self._format_json(iteration, frame, checksum, decoded)
        else:
            line = self._format_text(iteration, frame, checksum, decoded)

        try:
            self.stream.write(line + "\n")
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise ReportingError(f"Cannot write report {iteration}: {e}") from e

    @staticmethod
    def _format_text(
        iteration: int,
        frame: Frame,
        checksum: Optional[ChecksumResult],
        decoded: DecodeResult,
    ) -> str:
        if checksum is None:
            prefix = f"{iteration} size={frame.size} even=- odd=-"
        else:
            prefix = (
                f"{iteration} size={frame.size} "
                f"even=0x{checksum.even:02x} odd=0x{checksum.odd:02x}"
            )

        if decoded.status is DecodeStatus.HISTOGRAM:
            histogram = decoded.histogram
            return (
                f"{prefix} histogram={histogram.name or '-'} "
                f"entries={histogram.entries:g} "
                f"mean={histogram.mean:g} std_dev={histogram.std_dev:g}"
            )
        if decoded.status is DecodeStatus.TYPE_MISMATCH:
            return (
                f"{prefix} type mismatch: got {decoded.found_type}, "
                f"expected {decoded.expected_type}"
            )
        return f"{prefix} no object decoded ({decoded.reason})"

    @staticmethod
    def _format_json(
        iteration: int,
        frame: Frame,
        checksum: Optional[ChecksumResult],
        decoded: DecodeResult,
    ) -> str:
        record = {
            "iteration": iteration,
            "sequence": frame.sequence,
            "size": frame.size,
            "checksum": checksum.to_dict() if checksum is not None else None,
            **decoded.to_dict(),
        }
        return json.dumps(record)


def create_report_sink(fmt: str = "text", stream: Optional[TextIO] = None) -> ReportSink:
    """
    Create a sink for the configured format.

    Args:
        fmt: "text", "json" or "none"
        stream: Output stream for console formats (default stdout)
    """
    if fmt == "none":
        logger.info("Reporting disabled")
        return NullReportSink()
    return ConsoleReportSink(stream=stream, fmt=fmt)
