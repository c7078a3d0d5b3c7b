"""
Report Sink Tests
=================
"""

import io
import json

import pytest

from histo_subscriber.integrity import ChecksumResult, compute_checksum
from histo_subscriber.models import DecodeResult, Histogram
from histo_subscriber.report import (
    ConsoleReportSink,
    NullReportSink,
    ReportingError,
    create_report_sink,
)
from histo_subscriber.stream import Frame


@pytest.fixture
def decoded(sample_histogram):
    return DecodeResult.decoded(sample_histogram)


class TestConsoleReportSinkText:
    """Line format of the text sink."""

    def test_histogram_line(self, output_stream, sample_frame, decoded):
        sink = ConsoleReportSink(stream=output_stream)
        checksum = compute_checksum(sample_frame)

        sink.report(1, sample_frame, checksum, decoded)

        line = output_stream.getvalue()
        assert line.endswith("\n")
        assert line.startswith(f"1 size={sample_frame.size} ")
        assert f"even=0x{checksum.even:02x} odd=0x{checksum.odd:02x}" in line
        assert "histogram=hpx" in line
        assert "entries=40" in line
        assert "mean=2 " in line
        assert "std_dev=0.707107" in line

    def test_missing_checksum(self, output_stream):
        sink = ConsoleReportSink(stream=output_stream)

        sink.report(3, Frame(payload=b""), None, DecodeResult.absent("unreadable header"))

        assert output_stream.getvalue() == (
            "3 size=0 even=- odd=- no object decoded (unreadable header)\n"
        )

    def test_type_mismatch_line(self, output_stream):
        sink = ConsoleReportSink(stream=output_stream)
        frame = Frame(payload=b"\x01\x02")

        sink.report(
            7,
            frame,
            ChecksumResult(even=0x01, odd=0x02),
            DecodeResult.type_mismatch("TH1F", "TH2F"),
        )

        assert output_stream.getvalue() == (
            "7 size=2 even=0x01 odd=0x02 type mismatch: got TH2F, expected TH1F\n"
        )

    def test_unnamed_histogram(self, output_stream, sample_frame):
        histogram = Histogram(name="", edges=[0.0, 1.0], contents=[0, 2, 0])
        sink = ConsoleReportSink(stream=output_stream)

        sink.report(1, sample_frame, None, DecodeResult.decoded(histogram))

        assert "histogram=- " in output_stream.getvalue()

    def test_one_line_per_report(self, output_stream, sample_frame, decoded):
        sink = ConsoleReportSink(stream=output_stream)

        for iteration in range(1, 4):
            sink.report(iteration, sample_frame, None, decoded)

        lines = output_stream.getvalue().splitlines()
        assert [line.split()[0] for line in lines] == ["1", "2", "3"]


class TestConsoleReportSinkJson:
    """JSON lines format."""

    def test_histogram_record(self, output_stream, sample_frame, decoded):
        sink = ConsoleReportSink(stream=output_stream, fmt="json")

        sink.report(1, sample_frame, compute_checksum(sample_frame), decoded)

        record = json.loads(output_stream.getvalue())
        assert record["iteration"] == 1
        assert record["sequence"] == 1
        assert record["size"] == sample_frame.size
        assert set(record["checksum"]) == {"even", "odd"}
        assert record["status"] == "HISTOGRAM"
        assert record["histogram"]["name"] == "hpx"
        assert record["histogram"]["mean"] == pytest.approx(2.0)

    def test_absent_record(self, output_stream):
        sink = ConsoleReportSink(stream=output_stream, fmt="json")

        sink.report(2, Frame(payload=b"\x00"), None, DecodeResult.absent("null object"))

        record = json.loads(output_stream.getvalue())
        assert record["checksum"] is None
        assert record["status"] == "ABSENT"
        assert record["reason"] == "null object"
        assert "histogram" not in record


class TestSinkFailures:
    """Write failures and construction errors."""

    def test_closed_stream_raises(self, sample_frame, decoded):
        stream = io.StringIO()
        sink = ConsoleReportSink(stream=stream)
        stream.close()

        with pytest.raises(ReportingError):
            sink.report(1, sample_frame, None, decoded)

    def test_unknown_format_rejected(self):
        with pytest.raises(ValueError):
            ConsoleReportSink(fmt="xml")

    def test_create_none_sink(self, sample_frame, decoded):
        sink = create_report_sink("none")

        assert isinstance(sink, NullReportSink)
        sink.report(1, sample_frame, None, decoded)

    def test_create_console_sink(self, output_stream):
        sink = create_report_sink("json", stream=output_stream)

        assert isinstance(sink, ConsoleReportSink)
        assert sink.fmt == "json"
        assert sink.stream is output_stream

    def test_create_unknown_format(self):
        with pytest.raises(ValueError):
            create_report_sink("csv")
