"""Fixed-width scalar encoding.

Scalars are written in host byte order with standard sizes and no alignment
(``struct`` prefix ``=``). Every read goes through :func:`read_exact`, which
is the single place truncation is detected.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, List, Sequence

from ..errors import encode_error, truncated

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
    "write_scalar",
    "read_scalar",
    "pack_block",
    "unpack_block",
]

_BYTE_ORDER = "="
# Upper bound for a single stream.read() call.
READ_CHUNK_SIZE = 1 << 20


@dataclass(frozen=True, slots=True)
class ScalarType:
    name: str
    code: str
    size: int
    is_float: bool = False

    @property
    def format(self) -> str:
        return _BYTE_ORDER + self.code

    def block_format(self, count: int) -> str:
        return f"{_BYTE_ORDER}{count}{self.code}"


INT8 = ScalarType("i8", "b", 1)
UINT8 = ScalarType("u8", "B", 1)
INT16 = ScalarType("i16", "h", 2)
UINT16 = ScalarType("u16", "H", 2)
INT32 = ScalarType("i32", "i", 4)
UINT32 = ScalarType("u32", "I", 4)
INT64 = ScalarType("i64", "q", 8)
UINT64 = ScalarType("u64", "Q", 8)
FLOAT32 = ScalarType("f32", "f", 4, is_float=True)
FLOAT64 = ScalarType("f64", "d", 8, is_float=True)

# Length and count prefixes.
SIZE = UINT64

_BY_NAME: Dict[str, ScalarType] = {
    t.name: t
    for t in (
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
    )
}
_ALIASES = {
    "int8": "i8",
    "uint8": "u8",
    "int16": "i16",
    "uint16": "u16",
    "int32": "i32",
    "uint32": "u32",
    "int64": "i64",
    "uint64": "u64",
    "size": "u64",
    "float32": "f32",
    "float64": "f64",
    "double": "f64",
}


def scalar_type(name: str) -> ScalarType:
    key = name.strip().lower()
    key = _ALIASES.get(key, key)
    try:
        return _BY_NAME[key]
    except KeyError:
        raise ValueError(f"Unknown scalar type: {name!r}") from None


def read_exact(stream: BinaryIO, size: int, label: str) -> bytes:
    """Read exactly ``size`` bytes or raise ``TruncatedInputError``.

    Large reads are split into chunks so a corrupt length field fails on the
    first short chunk instead of requesting one huge buffer up front.
    """
    if size == 0:
        return b""
    parts: List[bytes] = []
    remaining = size
    while remaining:
        chunk = stream.read(min(remaining, READ_CHUNK_SIZE))
        if not chunk:
            raise truncated(label, size, size - remaining)
        parts.append(chunk)
        remaining -= len(chunk)
    return parts[0] if len(parts) == 1 else b"".join(parts)


def write_scalar(stype: ScalarType, value: Any, stream: BinaryIO) -> None:
    try:
        stream.write(struct.pack(stype.format, value))
    except (struct.error, OverflowError, TypeError) as e:
        raise encode_error(
            f"Value {value!r} does not fit {stype.name}",
            {"type": stype.name},
        ) from e


def read_scalar(stype: ScalarType, stream: BinaryIO) -> Any:
    raw = read_exact(stream, stype.size, stype.name)
    return struct.unpack(stype.format, raw)[0]


def pack_block(stype: ScalarType, values: Sequence[Any]) -> bytes:
    """Pack a whole buffer of scalars as one contiguous block."""
    try:
        return struct.pack(stype.block_format(len(values)), *values)
    except (struct.error, OverflowError, TypeError) as e:
        raise encode_error(
            f"Buffer of {len(values)} values does not fit {stype.name}",
            {"type": stype.name, "count": len(values)},
        ) from e


def unpack_block(stype: ScalarType, raw: bytes, count: int) -> List[Any]:
    return list(struct.unpack(stype.block_format(count), raw))
