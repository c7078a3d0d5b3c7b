"""
Parity-Split Checksum
======================

Diagnostic integrity value computed over a received frame.

Two independent 8-bit accumulators are folded with exclusive-or:
one over the bytes at even indices, one over the bytes at odd indices.
The accumulators are seeded with byte[0] and byte[1].

Example:
    [0x01, 0x02, 0x03, 0x04, 0x05]
        even = 0x01 ^ 0x03 ^ 0x05 = 0x07
        odd  = 0x02 ^ 0x04        = 0x06

Design Note:
    The checksum is never compared against a publisher-side value and
    never gates decoding. It is an operator signal for corrupted or
    tampered payloads, nothing stronger.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

from histo_subscriber.stream.frame import Frame


MIN_CHECKSUM_LENGTH = 2


class FrameTooShort(Exception):
    """Raised when a frame has fewer than two bytes to checksum."""

    def __init__(self, size: int) -> None:
        super().__init__(
            f"Frame of {size} byte(s) is too short for a checksum "
            f"(need >= {MIN_CHECKSUM_LENGTH})"
        )
        self.size = size


@dataclass(frozen=True, slots=True)
class ChecksumResult:
    """
    Even/odd checksum halves of one frame.

    Attributes:
        even: XOR of all even-indexed bytes (0-255)
        odd: XOR of all odd-indexed bytes (0-255)
    """

    even: int
    odd: int

    def __repr__(self) -> str:
        return f"ChecksumResult(even=0x{self.even:02x}, odd=0x{self.odd:02x})"

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {"even": self.even, "odd": self.odd}


def compute_checksum(frame: Union[Frame, bytes, bytearray, memoryview]) -> ChecksumResult:
    """
    Compute the parity-split checksum of a frame.

    Args:
        frame: Frame or bytes-like payload

    Returns:
        ChecksumResult with both halves

    Raises:
        FrameTooShort: If the payload has fewer than 2 bytes
    """
    data = frame.payload if isinstance(frame, Frame) else bytes(frame)

    if len(data) < MIN_CHECKSUM_LENGTH:
        raise FrameTooShort(len(data))

    # Seeding with byte[0] and byte[1] folds to the XOR over each parity class
    view = np.frombuffer(data, dtype=np.uint8)
    even = int(np.bitwise_xor.reduce(view[0::2]))
    odd = int(np.bitwise_xor.reduce(view[1::2]))

    return ChecksumResult(even=even, odd=odd)
