"""
Frame Sources
=============

Byte frame sources feeding the subscriber pipeline.

A frame source yields a lazy, infinite, non-restartable sequence of
Frame objects, one per published message. It never filters or
transforms payloads.

Implementations:
    - ZmqFrameSource: ZeroMQ SUB socket subscribed to every topic
    - IterableFrameSource: replays in-memory payloads (tests, offline replay)

Example:
    async with ZmqFrameSource("tcp://*:5024") as source:
        async for frame in source:
            print(frame.size)

Failure:
    TransportError is raised when the source is closed, was never
    opened, or the underlying socket errors. The caller decides whether
    that is fatal.
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Iterable, Iterator, Optional, Protocol

import zmq
import zmq.asyncio

from histo_subscriber.stream.frame import Frame


logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when the frame source connection is closed or fails."""
    pass


class FrameSource(Protocol):
    """Anything the pipeline can pull frames from."""

    async def next(self) -> Frame:
        ...

    def close(self) -> None:
        ...


class ZmqFrameSource:
    """
    ZeroMQ subscriber frame source.

    Owns one SUB socket subscribed to everything. The socket is bound
    by default (the subscriber is the fixed endpoint publishers connect
    to); pass bind=False to connect to a publisher instead.

    Attributes:
        address: ZeroMQ endpoint, e.g. "tcp://*:5024"
        bind: Bind (True) or connect (False)
        receive_hwm: Receive high-water mark (0 = unlimited)
    """

    def __init__(
        self,
        address: str,
        bind: bool = True,
        context: Optional[zmq.asyncio.Context] = None,
        receive_hwm: int = 1000,
    ) -> None:
        """
        Initialize the source. No socket is created until open().

        Args:
            address: ZeroMQ endpoint to bind or connect
            bind: Bind the socket instead of connecting it
            context: Shared asyncio context. A private one is created
                (and terminated on close) when omitted.
            receive_hwm: Receive high-water mark
        """
        if not address:
            raise ValueError("address must be a non-empty string")

        self.address = address
        self.bind = bind
        self.receive_hwm = receive_hwm

        self._context = context
        self._owns_context = context is None
        self._socket: Optional[zmq.asyncio.Socket] = None
        self._closed: bool = False
        self._sequence: int = 0

    @property
    def is_open(self) -> bool:
        """Whether the socket is currently open."""
        return self._socket is not None

    def open(self) -> "ZmqFrameSource":
        """
        Create, configure and bind/connect the SUB socket.

        Raises:
            TransportError: If the source was closed before or the
                endpoint can't be bound/connected.
        """
        if self._closed:
            raise TransportError(f"Frame source {self.address} cannot be reopened")
        if self._socket is not None:
            return self

        if self._context is None:
            self._context = zmq.asyncio.Context()

        socket = self._context.socket(zmq.SUB)
        try:
            socket.setsockopt(zmq.RCVHWM, self.receive_hwm)
            socket.setsockopt_string(zmq.SUBSCRIBE, "")  # Subscribe to all topics
            if self.bind:
                socket.bind(self.address)
            else:
                socket.connect(self.address)
        except zmq.ZMQError as e:
            socket.close(linger=0)
            self._release_context()
            self._closed = True
            raise TransportError(f"Cannot open {self.address}: {e}") from e

        self._socket = socket
        logger.info(
            f"Subscriber {'bound to' if self.bind else 'connected to'} {self.address}"
        )
        return self

    async def next(self) -> Frame:
        """
        Wait for the next message and wrap it in a Frame.

        Raises:
            TransportError: If the socket is not open or the receive fails
        """
        if self._socket is None:
            raise TransportError(f"Frame source {self.address} is not open")

        try:
            payload = await self._socket.recv()
        except zmq.ZMQError as e:
            raise TransportError(f"Receive failed on {self.address}: {e}") from e

        self._sequence += 1
        return Frame(payload=payload, sequence=self._sequence, timestamp=time.time())

    def close(self) -> None:
        """Close the socket (and the private context). Safe to call twice."""
        if self._socket is not None:
            self._socket.close(linger=0)
            self._socket = None
            logger.info(f"Subscriber closed: {self.address}")
        self._release_context()
        self._closed = True

    def _release_context(self) -> None:
        if self._owns_context and self._context is not None:
            self._context.term()
            self._context = None

    def __aiter__(self) -> AsyncIterator[Frame]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Frame]:
        while True:
            yield await self.next()

    async def __aenter__(self) -> "ZmqFrameSource":
        return self.open()

    async def __aexit__(self, *args) -> None:
        self.close()


class IterableFrameSource:
    """
    Frame source replaying in-memory payloads.

    Each payload becomes one Frame. Once the payloads run out the
    source behaves like a closed connection and raises TransportError.

    Example:
        source = IterableFrameSource([payload_a, payload_b])
        frame = await source.next()
    """

    def __init__(self, payloads: Iterable[bytes]) -> None:
        self._payloads: Iterator[bytes] = iter(payloads)
        self._closed: bool = False
        self._sequence: int = 0

    async def next(self) -> Frame:
        if self._closed:
            raise TransportError("Frame source is closed")

        # Yield to the loop so consumers interleave as they would on a socket
        await asyncio.sleep(0)

        try:
            payload = next(self._payloads)
        except StopIteration:
            self._closed = True
            raise TransportError("Frame source exhausted") from None

        self._sequence += 1
        return Frame(payload=payload, sequence=self._sequence, timestamp=time.time())

    def close(self) -> None:
        self._closed = True

    def __aiter__(self) -> AsyncIterator[Frame]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Frame]:
        while True:
            yield await self.next()

    async def __aenter__(self) -> "IterableFrameSource":
        return self

    async def __aexit__(self, *args) -> None:
        self.close()
