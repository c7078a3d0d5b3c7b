"""
Object Decoder
==============

Reconstructs typed objects from self-describing binary frames.

Decoding steps:
    1. Parse the header (byte count, class tag, class name). An
       unreadable header or a null object tag yields ABSENT.
    2. Compare the class against the expected type family. A foreign
       class yields TYPE_MISMATCH before any field is read.
    3. Walk the fields the stream declares. A truncated or
       inconsistent stream yields ABSENT.
    4. Build the Histogram from the fields found by name.

Field defaults (all fields except "contents" are optional):
    name    -> ""
    title   -> ""
    nbins   -> len(contents) - 2
    xmin    -> 0.0
    xmax    -> 1.0
    edges   -> nbins uniform bins over [xmin, xmax]
    entries -> sum of all content cells

Unknown field names and unknown field kinds are skipped, and bytes
after the declared object are ignored, so streams written by newer
or older publishers still decode.

Design Rules:
    - Pure: bytes in, DecodeResult out
    - Never raises for payload content
"""

import logging
from typing import Dict, Optional, Tuple, Union

import numpy as np

from histo_subscriber.codec.registry import TypeTag, lookup_type, resolve_type
from histo_subscriber.codec.wire import (
    ARRAY_DTYPES,
    BYTE_COUNT_FLAG,
    BYTE_COUNT_MASK,
    FieldKind,
    MalformedStream,
    NEW_CLASS_TAG,
    NULL_TAG,
    StreamReader,
    StreamUnderflow,
    decode_value,
)
from histo_subscriber.models.decoded import DecodeResult
from histo_subscriber.models.histogram import Histogram
from histo_subscriber.stream.frame import Frame


logger = logging.getLogger(__name__)


DEFAULT_XMIN = 0.0
DEFAULT_XMAX = 1.0

_INTEGER_KINDS = (FieldKind.INT32, FieldKind.INT64)
_NUMBER_KINDS = (FieldKind.INT32, FieldKind.INT64, FieldKind.FLOAT64)
_ARRAY_KINDS = tuple(ARRAY_DTYPES)
_KNOWN_KINDS = frozenset(int(kind) for kind in FieldKind)

Fields = Dict[str, Tuple[int, object]]


class ObjectDecoder:
    """
    Decoder bound to one expected object type.

    Attributes:
        expected_type: TypeTag whose family this decoder accepts

    Example:
        decoder = ObjectDecoder("TH1F")
        result = decoder.decode(frame)
        if result.is_histogram:
            print(result.histogram.mean)
    """

    def __init__(self, expected_type: Union[TypeTag, str]) -> None:
        """
        Args:
            expected_type: TypeTag or registered class name

        Raises:
            ValueError: If the type is unknown or can't be materialised
        """
        if isinstance(expected_type, str):
            expected_type = resolve_type(expected_type)
        if not expected_type.decodable:
            raise ValueError(
                f"Objects of family {expected_type.family} "
                f"({expected_type.name}) cannot be decoded"
            )
        self.expected_type = expected_type

    def decode(self, frame: Union[Frame, bytes, bytearray, memoryview]) -> DecodeResult:
        """
        Decode one frame.

        Args:
            frame: Frame or bytes-like payload

        Returns:
            DecodeResult with status HISTOGRAM, ABSENT or TYPE_MISMATCH
        """
        payload = frame.payload if isinstance(frame, Frame) else bytes(frame)
        reader = StreamReader(payload)

        try:
            class_name, byte_count, body_start = self._read_header(reader)
        except (StreamUnderflow, MalformedStream) as e:
            return DecodeResult.absent(f"unreadable header: {e}")

        if class_name is None:
            return DecodeResult.absent("null object")

        found = lookup_type(class_name)
        if found is None or not self.expected_type.accepts(found):
            logger.debug(
                f"Type mismatch: expected {self.expected_type.name}, got {class_name}"
            )
            return DecodeResult.type_mismatch(self.expected_type.name, class_name)

        body_end = body_start + byte_count
        if body_end > len(payload):
            return DecodeResult.absent(
                f"truncated object: declares {byte_count} bytes, "
                f"{len(payload) - body_start} available"
            )

        body = StreamReader(payload, reader.offset, body_end)
        try:
            version, fields = self._read_fields(body)
            histogram = self._materialize(class_name, version, fields)
        except (StreamUnderflow, MalformedStream) as e:
            return DecodeResult.absent(f"malformed {class_name}: {e}")

        return DecodeResult.decoded(histogram)

    @staticmethod
    def _read_header(reader: StreamReader) -> Tuple[Optional[str], int, int]:
        """
        Read byte count and class identity.

        Returns:
            (class name or None for a null object, byte count,
            offset where the byte count starts counting)
        """
        word = reader.read_u32()
        if not word & BYTE_COUNT_FLAG:
            raise MalformedStream(f"missing byte count (0x{word:08x})")
        byte_count = word & BYTE_COUNT_MASK
        body_start = reader.offset

        tag = reader.read_u32()
        if tag == NULL_TAG:
            return None, byte_count, body_start
        if tag != NEW_CLASS_TAG:
            raise MalformedStream(f"unsupported class tag 0x{tag:08x}")

        class_name = reader.read_cstring()
        if not class_name:
            raise MalformedStream("empty class name")
        return class_name, byte_count, body_start

    @staticmethod
    def _read_fields(reader: StreamReader) -> Tuple[int, Fields]:
        version = reader.read_u16()
        count = reader.read_u16()

        fields: Fields = {}
        for _ in range(count):
            kind = reader.read_u8()
            name_length = reader.read_u8()
            try:
                name = reader.read_bytes(name_length).decode("ascii")
            except UnicodeDecodeError as e:
                raise MalformedStream(f"field name is not ASCII: {e}") from e
            value = reader.read_bytes(reader.read_u32())

            if kind not in _KNOWN_KINDS:
                logger.debug(f"Skipping field {name!r} of unknown kind 0x{kind:02x}")
                continue
            fields[name] = (kind, decode_value(kind, value))

        return version, fields

    @staticmethod
    def _field(fields: Fields, name: str, kinds: tuple, default=None):
        if name not in fields:
            return default
        kind, value = fields[name]
        if kind not in kinds:
            raise MalformedStream(
                f"field {name!r} has kind {FieldKind(kind).name}"
            )
        return value

    def _materialize(self, class_name: str, version: int, fields: Fields) -> Histogram:
        contents = self._field(fields, "contents", _ARRAY_KINDS)
        if contents is None:
            raise MalformedStream("missing field 'contents'")

        nbins = self._field(fields, "nbins", _INTEGER_KINDS)
        edges = self._field(fields, "edges", _ARRAY_KINDS)

        if edges is not None:
            layout_bins = len(edges) - 1
        elif nbins is not None:
            layout_bins = int(nbins)
        else:
            layout_bins = len(contents) - 2

        if layout_bins < 1:
            raise MalformedStream(f"invalid bin count {layout_bins}")
        if nbins is not None and int(nbins) != layout_bins:
            raise MalformedStream(
                f"nbins={nbins} disagrees with {layout_bins} bins from edges"
            )
        if len(contents) != layout_bins + 2:
            raise MalformedStream(
                f"contents holds {len(contents)} cells, "
                f"expected {layout_bins + 2}"
            )

        if edges is None:
            xmin = float(self._field(fields, "xmin", _NUMBER_KINDS, DEFAULT_XMIN))
            xmax = float(self._field(fields, "xmax", _NUMBER_KINDS, DEFAULT_XMAX))
            edges = np.linspace(xmin, xmax, layout_bins + 1)

        entries = self._field(fields, "entries", _NUMBER_KINDS)

        try:
            return Histogram(
                name=self._field(fields, "name", (FieldKind.STRING,), ""),
                title=self._field(fields, "title", (FieldKind.STRING,), ""),
                edges=edges,
                contents=contents,
                entries=entries,
                class_name=class_name,
                class_version=version,
            )
        except ValueError as e:
            raise MalformedStream(str(e)) from e


def decode(
    frame: Union[Frame, bytes, bytearray, memoryview],
    expected_type: Union[TypeTag, str],
) -> DecodeResult:
    """
    Decode one frame against an expected type.

    Convenience wrapper around ObjectDecoder(expected_type).decode(frame).
    """
    return ObjectDecoder(expected_type).decode(frame)
