"""
Report Module
=============

Sinks for per-frame reports (console text/JSON lines, or none).
"""

from histo_subscriber.report.sink import (
    ConsoleReportSink,
    NullReportSink,
    ReportingError,
    ReportSink,
    create_report_sink,
)

__all__ = [
    "ConsoleReportSink",
    "NullReportSink",
    "ReportingError",
    "ReportSink",
    "create_report_sink",
]
