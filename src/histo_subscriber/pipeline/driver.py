"""
Subscriber Pipeline
===================

Drives frames from a source through checksum, decode and report.

States:
    IDLE -> RECEIVING -> CHECKING -> DECODING -> REPORTING -> RECEIVING ...

    STOPPED is reached from IDLE or RECEIVING (clean stop or
    TransportError) and from REPORTING (clean stop or ReportingError).
    Every other transition is rejected.

Concurrency:
    A FrameReceiver task pulls frames from the source into a bounded
    asyncio.Queue; the pipeline consumes the queue. A full queue blocks
    the receiver instead of dropping frames, so every received frame is
    reported. Frames already queued when the source fails are processed
    before the TransportError is raised.

Error policy:
    - TransportError (source) and ReportingError (sink) are fatal
    - FrameTooShort only drops the checksum for that frame
    - ABSENT / TYPE_MISMATCH decode outcomes are reported and skipped past
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Union

from histo_subscriber.codec.decoder import ObjectDecoder
from histo_subscriber.codec.registry import TypeTag
from histo_subscriber.integrity.checksum import (
    ChecksumResult,
    FrameTooShort,
    compute_checksum,
)
from histo_subscriber.models.decoded import DecodeResult, DecodeStatus
from histo_subscriber.report.sink import ReportSink
from histo_subscriber.stream.frame import Frame
from histo_subscriber.stream.receiver import FrameReceiver
from histo_subscriber.stream.source import FrameSource, TransportError


logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """States of the pipeline driver."""

    IDLE = "IDLE"
    RECEIVING = "RECEIVING"
    CHECKING = "CHECKING"
    DECODING = "DECODING"
    REPORTING = "REPORTING"
    STOPPED = "STOPPED"


_TRANSITIONS = {
    PipelineState.IDLE: {PipelineState.RECEIVING, PipelineState.STOPPED},
    PipelineState.RECEIVING: {PipelineState.CHECKING, PipelineState.STOPPED},
    PipelineState.CHECKING: {PipelineState.DECODING},
    PipelineState.DECODING: {PipelineState.REPORTING},
    PipelineState.REPORTING: {PipelineState.RECEIVING, PipelineState.STOPPED},
    PipelineState.STOPPED: set(),
}


class PipelineMetrics:
    """Counters for pipeline observability."""

    __slots__ = (
        "frames_processed",
        "histograms_decoded",
        "absent_count",
        "type_mismatch_count",
        "short_frames",
    )

    def __init__(self) -> None:
        self.frames_processed: int = 0
        self.histograms_decoded: int = 0
        self.absent_count: int = 0
        self.type_mismatch_count: int = 0
        self.short_frames: int = 0

    def record(self, decoded: DecodeResult) -> None:
        self.frames_processed += 1
        if decoded.status is DecodeStatus.HISTOGRAM:
            self.histograms_decoded += 1
        elif decoded.status is DecodeStatus.TYPE_MISMATCH:
            self.type_mismatch_count += 1
        else:
            self.absent_count += 1

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_processed": self.frames_processed,
            "histograms_decoded": self.histograms_decoded,
            "absent_count": self.absent_count,
            "type_mismatch_count": self.type_mismatch_count,
            "short_frames": self.short_frames,
        }


class SubscriberPipeline:
    """
    Receive -> check -> decode -> report loop.

    The source handle is owned by the caller; the pipeline only reads
    from it (through its FrameReceiver) and never closes it.

    Attributes:
        sink: Report sink
        decoder: ObjectDecoder for the expected type
        metrics: Pipeline counters
        queue: Frames handed from the receiver to the pipeline
        receiver: FrameReceiver feeding the queue

    Example:
        async with ZmqFrameSource("tcp://*:5024") as source:
            pipeline = SubscriberPipeline(source, ConsoleReportSink(), "TH1F")
            await pipeline.run()
    """

    def __init__(
        self,
        source: FrameSource,
        sink: ReportSink,
        expected_type: Union[TypeTag, str],
        max_queue_size: int = 100,
    ) -> None:
        """
        Initialize pipeline.

        Args:
            source: Frame source to read from
            sink: Where reports are written
            expected_type: TypeTag or class name of the objects to decode
            max_queue_size: Frames queued between receiver and pipeline;
                the receiver waits while the queue is full

        Raises:
            ValueError: If expected_type can't be decoded
        """
        self.sink = sink
        self.decoder = ObjectDecoder(expected_type)
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be >= 1")
        self.queue: "asyncio.Queue[Frame]" = asyncio.Queue(maxsize=max_queue_size)
        self.receiver = FrameReceiver(source, self.queue)
        self.metrics = PipelineMetrics()

        self._state = PipelineState.IDLE
        self._iteration: int = 0
        self._stop_event: Optional[asyncio.Event] = None
        self._stop_requested: bool = False
        self._receiver_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def iteration(self) -> int:
        """Number of frames processed so far."""
        return self._iteration

    def _transition(self, target: PipelineState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Illegal pipeline transition {self._state.value} -> {target.value}"
            )
        self._state = target

    # ------------------------------------------------------------------
    # Per-frame processing
    # ------------------------------------------------------------------

    def process_frame(self, frame: Frame) -> DecodeResult:
        """
        Checksum, decode and report one frame.

        Usable outside run() as well; leaves the pipeline in REPORTING
        state.

        Returns:
            The frame's DecodeResult

        Raises:
            ReportingError: If the sink fails
        """
        if self._state in (PipelineState.IDLE, PipelineState.REPORTING):
            self._transition(PipelineState.RECEIVING)
        self._transition(PipelineState.CHECKING)
        checksum: Optional[ChecksumResult]
        try:
            checksum = compute_checksum(frame)
        except FrameTooShort as e:
            self.metrics.short_frames += 1
            logger.warning(f"Frame {frame.sequence}: {e}")
            checksum = None

        self._transition(PipelineState.DECODING)
        decoded = self.decoder.decode(frame)
        self.metrics.record(decoded)
        if decoded.status is DecodeStatus.ABSENT:
            logger.info(f"Frame {frame.sequence}: no object decoded ({decoded.reason})")
        elif decoded.status is DecodeStatus.TYPE_MISMATCH:
            logger.info(
                f"Frame {frame.sequence}: skipping {decoded.found_type} "
                f"(expected {decoded.expected_type})"
            )

        self._transition(PipelineState.REPORTING)
        iteration = self._iteration
        self._iteration += 1
        self.sink.report(iteration, frame, checksum, decoded)
        return decoded

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """
        Process frames until stop() is called or a fatal error occurs.

        Returns normally on a clean stop.

        Raises:
            TransportError: If the source fails
            ReportingError: If the sink fails
        """
        if self._state is not PipelineState.IDLE:
            raise RuntimeError(f"Pipeline cannot run from state {self._state.value}")

        self._stop_event = asyncio.Event()
        if self._stop_requested:
            self._transition(PipelineState.STOPPED)
            return

        self._transition(PipelineState.RECEIVING)
        self._receiver_task = asyncio.create_task(
            self.receiver.run(), name="frame_receiver"
        )
        logger.info(f"Pipeline started, expecting {self.decoder.expected_type.name}")

        try:
            while True:
                frame = await self._next_frame()
                if frame is None:
                    break
                self.process_frame(frame)
                self._transition(PipelineState.RECEIVING)
        finally:
            await self._stop_receiver()
            self._state = PipelineState.STOPPED
            logger.info(f"Pipeline stopped: {self.metrics.to_dict()}")

        error = self._receiver_error()
        if error is not None and not self._stop_event.is_set():
            raise error

    def stop(self) -> None:
        """Request a clean stop. Unblocks a pending receive."""
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()

    async def _next_frame(self) -> Optional[Frame]:
        """
        Next queued frame, or None when stopping or the receiver ended.
        """
        while not self._stop_event.is_set():
            try:
                return self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            if self._receiver_task.done():
                return None

            getter = asyncio.ensure_future(self.queue.get())
            stopper = asyncio.ensure_future(self._stop_event.wait())
            done, _ = await asyncio.wait(
                {getter, stopper, self._receiver_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            for waiter in (getter, stopper):
                if waiter not in done:
                    waiter.cancel()
            if getter in done:
                return getter.result()
        return None

    def _receiver_error(self) -> Optional[BaseException]:
        task = self._receiver_task
        if task is None or not task.done() or task.cancelled():
            return None
        error = task.exception()
        if error is None:
            return None
        if isinstance(error, TransportError):
            logger.error(f"Transport failed: {error}")
        return error

    async def _stop_receiver(self) -> None:
        self.receiver.stop()
        task = self._receiver_task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
