"""
Integrity Module
================

Diagnostic parity-split checksum over received frames.
"""

from histo_subscriber.integrity.checksum import (
    ChecksumResult,
    FrameTooShort,
    compute_checksum,
)

__all__ = [
    "ChecksumResult",
    "FrameTooShort",
    "compute_checksum",
]
