"""Primitive and container codecs."""

from .primitives import (
    ScalarType,
    INT8,
    UINT8,
    INT16,
    UINT16,
    INT32,
    UINT32,
    INT64,
    UINT64,
    FLOAT32,
    FLOAT64,
    SIZE,
    scalar_type,
    read_exact,
    read_scalar,
    write_scalar,
)
from .containers import (
    Serializable,
    Scalar,
    String,
    Bytes,
    Sequence,
    Pair,
    Map,
    serialize,
    deserialize,
    codec_for,
    register_shape,
)

__all__ = [
    "ScalarType",
    "INT8",
    "UINT8",
    "INT16",
    "UINT16",
    "INT32",
    "UINT32",
    "INT64",
    "UINT64",
    "FLOAT32",
    "FLOAT64",
    "SIZE",
    "scalar_type",
    "read_exact",
    "read_scalar",
    "write_scalar",
    "Serializable",
    "Scalar",
    "String",
    "Bytes",
    "Sequence",
    "Pair",
    "Map",
    "serialize",
    "deserialize",
    "codec_for",
    "register_shape",
]
