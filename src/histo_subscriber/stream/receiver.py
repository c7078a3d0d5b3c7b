"""
Frame Receiver
===============

Pulls frames from a FrameSource into a bounded asyncio.Queue.

This is the only component that touches the source handle, so the
single shared connection never has more than one logical reader.

Back-pressure:
    put() blocks while the queue is full, so the receiver stops reading
    from the source until the pipeline catches up. Pending messages
    then wait in the transport (the ZeroMQ receive high-water mark),
    and the receiver itself never discards a frame.

Design Rules:
    - Does NOT inspect or modify payloads
    - Does NOT reconnect; TransportError ends run() and is left to the caller
    - Exposes metrics for health monitoring
"""

import asyncio
import logging

from histo_subscriber.stream.frame import Frame
from histo_subscriber.stream.source import FrameSource


logger = logging.getLogger(__name__)


class FrameReceiverMetrics:
    """Metrics for FrameReceiver observability."""

    __slots__ = (
        "frames_received",
        "bytes_received",
        "last_sequence",
        "last_timestamp",
        "queue_full_waits",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.bytes_received: int = 0
        self.last_sequence: int = -1
        self.last_timestamp: float = 0.0
        self.queue_full_waits: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_received": self.frames_received,
            "bytes_received": self.bytes_received,
            "last_sequence": self.last_sequence,
            "last_timestamp": self.last_timestamp,
            "queue_full_waits": self.queue_full_waits,
        }


class FrameReceiver:
    """
    Moves frames from a source into a queue until stopped or failed.

    Example:
        queue = asyncio.Queue(maxsize=100)
        receiver = FrameReceiver(source, queue)

        task = asyncio.create_task(receiver.run())
        frame = await queue.get()
        ...
        receiver.stop()
        task.cancel()
    """

    def __init__(self, source: FrameSource, queue: "asyncio.Queue[Frame]") -> None:
        self.source = source
        self.queue = queue
        self.metrics = FrameReceiverMetrics()
        self._running: bool = False

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """
        Receive frames until stop() is called or the source fails.

        Raises:
            TransportError: Propagated from the source
        """
        self._running = True
        logger.info("FrameReceiver started")

        try:
            while self._running:
                frame = await self.source.next()

                self.metrics.frames_received += 1
                self.metrics.bytes_received += frame.size
                self.metrics.last_sequence = frame.sequence
                self.metrics.last_timestamp = frame.timestamp

                if self.queue.full():
                    self.metrics.queue_full_waits += 1
                    logger.debug(
                        f"Queue full ({self.queue.maxsize}), "
                        f"holding frame {frame.sequence}"
                    )
                await self.queue.put(frame)
        except asyncio.CancelledError:
            logger.debug("FrameReceiver cancelled")
            raise
        finally:
            self._running = False
            logger.info(
                f"FrameReceiver stopped after {self.metrics.frames_received} frames"
            )

    def stop(self) -> None:
        """Ask the run loop to exit after the current frame."""
        self._running = False
