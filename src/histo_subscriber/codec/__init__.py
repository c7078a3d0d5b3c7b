"""
Codec Module
============

Self-describing binary object format.

This module provides:
    - ObjectDecoder / decode: Frame -> DecodeResult
    - encode_histogram / encode_object / encode_null: Paired writer
    - TypeTag registry: Class names and their type families
    - Wire primitives: Bounds-checked StreamReader / StreamWriter
"""

from histo_subscriber.codec.registry import (
    TypeTag,
    lookup_type,
    register_type,
    resolve_type,
)
from histo_subscriber.codec.wire import (
    FieldKind,
    MalformedStream,
    StreamReader,
    StreamUnderflow,
    StreamWriter,
)
from histo_subscriber.codec.decoder import ObjectDecoder, decode
from histo_subscriber.codec.encoder import encode_histogram, encode_null, encode_object

__all__ = [
    # Registry
    "TypeTag",
    "lookup_type",
    "register_type",
    "resolve_type",
    # Wire
    "FieldKind",
    "MalformedStream",
    "StreamReader",
    "StreamUnderflow",
    "StreamWriter",
    # Decode / encode
    "ObjectDecoder",
    "decode",
    "encode_histogram",
    "encode_object",
    "encode_null",
]
