"""
Stream Module
=============

Frame ingestion components.

This module provides the ingestion layer for the histogram subscriber:
    - Frame: Immutable received message (internal representation)
    - ZmqFrameSource / IterableFrameSource: Frame sources
    - FrameReceiver: Moves frames from a source into a bounded asyncio.Queue

Example:
    from histo_subscriber.stream import FrameReceiver, ZmqFrameSource

    async with ZmqFrameSource("tcp://*:5024") as source:
        queue = asyncio.Queue(maxsize=100)
        receiver = FrameReceiver(source, queue)
        task = asyncio.create_task(receiver.run())

        while True:
            frame = await queue.get()
            process(frame)
"""

from histo_subscriber.stream.frame import Frame
from histo_subscriber.stream.source import (
    FrameSource,
    IterableFrameSource,
    TransportError,
    ZmqFrameSource,
)
from histo_subscriber.stream.receiver import FrameReceiver, FrameReceiverMetrics


__all__ = [
    "Frame",
    "FrameSource",
    "IterableFrameSource",
    "ZmqFrameSource",
    "TransportError",
    "FrameReceiver",
    "FrameReceiverMetrics",
]
