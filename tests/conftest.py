"""
Test Configuration
==================

Pytest fixtures and test configuration for the histogram subscriber.
"""

import io

import pytest

from histo_subscriber.codec import encode_histogram
from histo_subscriber.models import Histogram
from histo_subscriber.stream import Frame


@pytest.fixture
def sample_histogram():
    """Three bins centered on 1, 2, 3 with counts 10, 20, 10."""
    return Histogram.uniform(
        "hpx",
        nbins=3,
        xmin=0.5,
        xmax=3.5,
        contents=[10, 20, 10],
        title="px distribution",
    )


@pytest.fixture
def sample_payload(sample_histogram):
    """Encoded TH1F payload of sample_histogram."""
    return encode_histogram(sample_histogram, class_name="TH1F")


@pytest.fixture
def sample_frame(sample_payload):
    """Frame carrying sample_payload."""
    return Frame(payload=sample_payload, sequence=1, timestamp=1707321234.567)


@pytest.fixture
def output_stream():
    """In-memory text stream for report sinks."""
    return io.StringIO()
