"""
Data Models
===========

Typed objects produced by the subscriber pipeline.

Models:
    - Histogram: Immutable 1-D histogram with derived statistics
    - DecodeStatus: Enum of decode outcomes (HISTOGRAM, ABSENT, TYPE_MISMATCH)
    - DecodeResult: Tagged outcome of decoding one frame
"""

from histo_subscriber.models.histogram import Histogram
from histo_subscriber.models.decoded import DecodeResult, DecodeStatus

__all__ = [
    "Histogram",
    "DecodeResult",
    "DecodeStatus",
]
