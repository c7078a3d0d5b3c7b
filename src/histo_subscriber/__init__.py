"""
Histogram Subscriber
====================

Receives self-describing binary histograms from a ZeroMQ bus, checks a
parity-split checksum, decodes them into typed objects and reports
their statistics.

Components:
    - stream: Frame model, ZeroMQ frame source and receiver
    - integrity: Diagnostic even/odd XOR checksum
    - codec: Self-describing object format (decoder, paired encoder, type registry)
    - models: Histogram and decode outcomes
    - report: Per-frame report sinks
    - pipeline: Receive -> check -> decode -> report driver

Example:
    from histo_subscriber.pipeline import SubscriberPipeline
    from histo_subscriber.report import ConsoleReportSink
    from histo_subscriber.stream import ZmqFrameSource

    async with ZmqFrameSource("tcp://*:5024") as source:
        pipeline = SubscriberPipeline(source, ConsoleReportSink(), "TH1F")
        await pipeline.run()
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
