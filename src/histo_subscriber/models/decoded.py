"""
Decode Outcomes
===============

Result of interpreting one frame as a typed object.

Every frame yields exactly one DecodeResult. ABSENT and TYPE_MISMATCH
are reportable outcomes, not errors: the pipeline logs them and moves
on to the next frame.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from histo_subscriber.models.histogram import Histogram


class DecodeStatus(str, Enum):
    """
    Outcome of a decode attempt.

    Attributes:
        HISTOGRAM: A histogram of the expected type family was decoded
        ABSENT: No object could be read (null object, truncated or corrupt stream)
        TYPE_MISMATCH: The frame carries an object of another type
    """

    HISTOGRAM = "HISTOGRAM"
    ABSENT = "ABSENT"
    TYPE_MISMATCH = "TYPE_MISMATCH"


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """
    Tagged decode outcome.

    Attributes:
        status: Which variant this is
        histogram: Decoded histogram (HISTOGRAM only)
        expected_type: Expected class name (TYPE_MISMATCH only)
        found_type: Class name found in the stream (TYPE_MISMATCH only)
        reason: Why nothing was decoded (ABSENT only)
    """

    status: DecodeStatus
    histogram: Optional[Histogram] = None
    expected_type: Optional[str] = None
    found_type: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def decoded(cls, histogram: Histogram) -> "DecodeResult":
        return cls(status=DecodeStatus.HISTOGRAM, histogram=histogram)

    @classmethod
    def absent(cls, reason: str) -> "DecodeResult":
        return cls(status=DecodeStatus.ABSENT, reason=reason)

    @classmethod
    def type_mismatch(cls, expected_type: str, found_type: str) -> "DecodeResult":
        return cls(
            status=DecodeStatus.TYPE_MISMATCH,
            expected_type=expected_type,
            found_type=found_type,
        )

    @property
    def is_histogram(self) -> bool:
        return self.status is DecodeStatus.HISTOGRAM

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        data: dict = {"status": self.status.value}
        if self.histogram is not None:
            data["histogram"] = self.histogram.to_dict()
        if self.status is DecodeStatus.TYPE_MISMATCH:
            data["expected_type"] = self.expected_type
            data["found_type"] = self.found_type
        if self.reason is not None:
            data["reason"] = self.reason
        return data
