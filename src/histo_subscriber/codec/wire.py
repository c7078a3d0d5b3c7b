"""
Wire Primitives
===============

Bounds-checked reader and writer for the self-describing object stream.

Stream layout (big-endian):

    u32  byte count | BYTE_COUNT_FLAG   bytes following this word
    u32  class tag                      NEW_CLASS_TAG + NUL-terminated name,
                                        or NULL_TAG for a null object
    u16  class version
    u16  field count
    field * field count:
        u8   kind                       FieldKind
        u8   name length
        ...  name (ASCII)
        u32  value length
        ...  value

Every field value is length-prefixed, so readers skip kinds and names
they don't know about.
"""

import struct
from enum import IntEnum
from typing import Optional

import numpy as np


BYTE_COUNT_FLAG = 0x40000000
BYTE_COUNT_MASK = BYTE_COUNT_FLAG - 1
NULL_TAG = 0x00000000
NEW_CLASS_TAG = 0xFFFFFFFF
MAX_CLASS_NAME = 80

_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_I32 = struct.Struct(">i")
_I64 = struct.Struct(">q")
_F64 = struct.Struct(">d")


class StreamUnderflow(Exception):
    """Raised when a read runs past the end of the stream."""
    pass


class MalformedStream(Exception):
    """Raised when the stream is readable but structurally invalid."""
    pass


class FieldKind(IntEnum):
    """Type codes of encoded field values."""

    INT32 = 0x01
    INT64 = 0x02
    FLOAT64 = 0x03
    STRING = 0x04
    FLOAT32_ARRAY = 0x10
    FLOAT64_ARRAY = 0x11
    INT32_ARRAY = 0x12


# Big-endian numpy dtypes of the array kinds
ARRAY_DTYPES = {
    FieldKind.FLOAT32_ARRAY: np.dtype(">f4"),
    FieldKind.FLOAT64_ARRAY: np.dtype(">f8"),
    FieldKind.INT32_ARRAY: np.dtype(">i4"),
}

SCALAR_STRUCTS = {
    FieldKind.INT32: _I32,
    FieldKind.INT64: _I64,
    FieldKind.FLOAT64: _F64,
}


class StreamReader:
    """
    Sequential reader over an immutable byte view.

    Every read checks the remaining length first and raises
    StreamUnderflow instead of reading past the end.
    """

    def __init__(self, data: bytes, offset: int = 0, end: Optional[int] = None) -> None:
        self._data = data if isinstance(data, bytes) else bytes(data)
        self._offset = offset
        self._end = len(self._data) if end is None else end

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return self._end - self._offset

    def read_bytes(self, size: int) -> bytes:
        if size < 0 or size > self.remaining:
            raise StreamUnderflow(
                f"Need {size} bytes at offset {self._offset}, "
                f"{self.remaining} remaining"
            )
        start = self._offset
        self._offset += size
        return self._data[start:self._offset]

    def skip(self, size: int) -> None:
        self.read_bytes(size)

    def _unpack(self, fmt: struct.Struct) -> int:
        return fmt.unpack(self.read_bytes(fmt.size))[0]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_cstring(self, limit: int = MAX_CLASS_NAME) -> str:
        """Read an ASCII string terminated by a NUL byte."""
        chars = bytearray()
        while True:
            byte = self.read_u8()
            if byte == 0:
                break
            chars.append(byte)
            if len(chars) > limit:
                raise MalformedStream(f"Class name longer than {limit} bytes")
        try:
            return chars.decode("ascii")
        except UnicodeDecodeError as e:
            raise MalformedStream(f"Class name is not ASCII: {e}") from e

    def sub_reader(self, size: int) -> "StreamReader":
        """Return a reader limited to the next `size` bytes and skip past them."""
        if size < 0 or size > self.remaining:
            raise StreamUnderflow(
                f"Declared {size} bytes at offset {self._offset}, "
                f"{self.remaining} remaining"
            )
        reader = StreamReader(self._data, self._offset, self._offset + size)
        self._offset += size
        return reader


def decode_value(kind: int, value: bytes):
    """
    Convert a raw field value into a Python object.

    Returns:
        int / float / str for scalar kinds, a read-only float64
        numpy array for array kinds, or None for unknown kinds.

    Raises:
        MalformedStream: If the value length doesn't fit the kind
    """
    if kind in SCALAR_STRUCTS:
        fmt = SCALAR_STRUCTS[kind]
        if len(value) != fmt.size:
            raise MalformedStream(
                f"{FieldKind(kind).name} value of {len(value)} bytes, "
                f"expected {fmt.size}"
            )
        return fmt.unpack(value)[0]

    if kind == FieldKind.STRING:
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedStream(f"String value is not UTF-8: {e}") from e

    if kind in ARRAY_DTYPES:
        dtype = ARRAY_DTYPES[kind]
        if len(value) % dtype.itemsize != 0:
            raise MalformedStream(
                f"{FieldKind(kind).name} value of {len(value)} bytes is not "
                f"a multiple of {dtype.itemsize}"
            )
        array = np.frombuffer(value, dtype=dtype).astype(np.float64)
        array.setflags(write=False)
        return array

    return None


class StreamWriter:
    """Builds an object stream; the counterpart of StreamReader."""

    def __init__(self) -> None:
        self._fields: list = []

    def add_field(self, kind: int, name: str, value: bytes) -> None:
        encoded_name = name.encode("ascii")
        if len(encoded_name) > 0xFF:
            raise ValueError(f"Field name too long: {name!r}")
        self._fields.append(
            _U8.pack(kind) + _U8.pack(len(encoded_name)) + encoded_name
            + _U32.pack(len(value)) + value
        )

    def add_int32(self, name: str, value: int) -> None:
        self.add_field(FieldKind.INT32, name, _I32.pack(value))

    def add_int64(self, name: str, value: int) -> None:
        self.add_field(FieldKind.INT64, name, _I64.pack(value))

    def add_float64(self, name: str, value: float) -> None:
        self.add_field(FieldKind.FLOAT64, name, _F64.pack(value))

    def add_string(self, name: str, value: str) -> None:
        self.add_field(FieldKind.STRING, name, value.encode("utf-8"))

    def add_array(self, name: str, kind: FieldKind, values) -> None:
        dtype = ARRAY_DTYPES[kind]
        self.add_field(kind, name, np.asarray(values).astype(dtype).tobytes())

    def build(self, class_name: str, version: int) -> bytes:
        """Assemble header and fields into one object stream."""
        body = (
            _U32.pack(NEW_CLASS_TAG)
            + class_name.encode("ascii") + b"\x00"
            + _U16.pack(version)
            + _U16.pack(len(self._fields))
            + b"".join(self._fields)
        )
        if len(body) > BYTE_COUNT_MASK:
            raise ValueError(f"Object of {len(body)} bytes is too large to encode")
        return _U32.pack(len(body) | BYTE_COUNT_FLAG) + body


def null_object() -> bytes:
    """Stream holding a null object reference."""
    body = _U32.pack(NULL_TAG)
    return _U32.pack(len(body) | BYTE_COUNT_FLAG) + body
