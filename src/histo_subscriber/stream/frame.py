"""
Frame Data Model
=================

Internal frame representation for the subscriber pipeline.

This module defines the typed Frame class that is used as the interface
between the frame source and the checksum/decode/report stages.

Design Rules:
    - This is the ONLY frame format passed to downstream stages
    - Payload is an immutable bytes object, never a mutable buffer
    - Does NOT interpret payload content
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One message received from the bus.

    Immutable (frozen) and owned by the pipeline iteration that
    received it.

    Attributes:
        payload: Raw message bytes, exactly as delivered by the transport
        sequence: Monotonically increasing receive counter of the source
        timestamp: UNIX timestamp when the frame was received
    """

    payload: bytes
    sequence: int = 0
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.payload, bytes):
            # bytearray / memoryview are copied so the frame can't change under us
            object.__setattr__(self, "payload", bytes(self.payload))

    @property
    def size(self) -> int:
        """Payload length in bytes."""
        return len(self.payload)

    def __len__(self) -> int:
        return len(self.payload)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the payload."""
        return (
            f"Frame(sequence={self.sequence}, "
            f"size={self.size}, "
            f"timestamp={self.timestamp:.3f})"
        )
