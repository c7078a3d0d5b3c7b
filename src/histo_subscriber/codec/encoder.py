"""
Object Encoder
==============

Writes histograms in the stream format read by the object decoder.

The subscriber never publishes; this is the paired writer used to
produce payloads for tests and local tooling.

Example:
    payload = encode_histogram(
        Histogram.uniform("h1", nbins=3, xmin=0.5, xmax=3.5, contents=[10, 20, 10])
    )
"""

from typing import Iterable, Optional, Tuple

from histo_subscriber.codec.registry import resolve_type
from histo_subscriber.codec.wire import FieldKind, StreamWriter, null_object
from histo_subscriber.models.histogram import Histogram


DEFAULT_CLASS_VERSION = 3

# Content array kind written for each 1-D class
_CONTENT_KINDS = {
    "TH1C": FieldKind.INT32_ARRAY,
    "TH1S": FieldKind.INT32_ARRAY,
    "TH1I": FieldKind.INT32_ARRAY,
    "TH1F": FieldKind.FLOAT32_ARRAY,
    "TH1D": FieldKind.FLOAT64_ARRAY,
}

ExtraField = Tuple[FieldKind, str, bytes]


def encode_histogram(
    histogram: Histogram,
    class_name: Optional[str] = None,
    version: int = DEFAULT_CLASS_VERSION,
    uniform: bool = False,
    extra_fields: Iterable[ExtraField] = (),
) -> bytes:
    """
    Encode a histogram as one object stream.

    Args:
        histogram: Histogram to write
        class_name: Class to write (defaults to histogram.class_name)
        version: Class version written in the header
        uniform: Write nbins/xmin/xmax instead of explicit edges
        extra_fields: Additional raw (kind, name, value) fields appended
            after the known ones

    Returns:
        Encoded payload
    """
    class_name = class_name or histogram.class_name
    resolve_type(class_name)
    content_kind = _CONTENT_KINDS.get(class_name, FieldKind.FLOAT64_ARRAY)

    writer = StreamWriter()
    writer.add_string("name", histogram.name)
    writer.add_string("title", histogram.title)
    writer.add_int32("nbins", histogram.nbins)
    if uniform:
        writer.add_float64("xmin", float(histogram.edges[0]))
        writer.add_float64("xmax", float(histogram.edges[-1]))
    else:
        writer.add_array("edges", FieldKind.FLOAT64_ARRAY, histogram.edges)
    writer.add_array("contents", content_kind, histogram.contents)
    writer.add_float64("entries", histogram.entries)

    for kind, name, value in extra_fields:
        writer.add_field(kind, name, value)

    return writer.build(class_name, version)


def encode_object(
    class_name: str,
    fields: Iterable[ExtraField] = (),
    version: int = DEFAULT_CLASS_VERSION,
) -> bytes:
    """Encode an arbitrary object from raw (kind, name, value) fields."""
    writer = StreamWriter()
    for kind, name, value in fields:
        writer.add_field(kind, name, value)
    return writer.build(class_name, version)


def encode_null() -> bytes:
    """Encode a null object reference."""
    return null_object()
