"""Mesh container format.

Stream layout (host byte order)::

    String(MAGIC)                       leading guard
    Sequence<Pair<String, Property>>    properties, in order
    String(MAGIC)                       trailing guard

    Property := Sequence<float> (V) || Sequence<index> (F)

The float and index widths are not recorded in the stream; reader and writer
must agree on them (see :class:`MeshCodec`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, BinaryIO, Callable, Iterator, List, Optional, Tuple

from .codec.containers import (
    Bytes,
    Scalar,
    Sequence,
    Serializable,
    codec_for,
    register_shape,
)
from .codec.primitives import (
    FLOAT64,
    INT32,
    SIZE,
    ScalarType,
    read_exact,
    read_scalar,
)
from .errors import corrupt, encode_error
from .logging import get_logger

__all__ = [
    "MAGIC",
    "Property",
    "Mesh",
    "PropertyCodec",
    "MeshCodec",
    "DecodeState",
    "MeshReader",
]

MAGIC = b"BINARY_MESH"


@dataclass(slots=True)
class Property:
    """Two flat buffers: ``V`` (float payload) and ``F`` (index payload).

    Stride and arity are the caller's business; nothing relates ``len(V)``
    to ``len(F)``.
    """

    V: List[float] = field(default_factory=list)
    F: List[int] = field(default_factory=list)


@dataclass(slots=True)
class Mesh:
    """Ordered list of named properties. Names may repeat."""

    properties: List[Tuple[str, Property]] = field(default_factory=list)

    def add(self, name: str, prop: Property) -> Property:
        self.properties.append((name, prop))
        return prop

    def get(self, name: str) -> Optional[Property]:
        for n, prop in self.properties:
            if n == name:
                return prop
        return None

    def names(self) -> List[str]:
        return [n for n, _ in self.properties]

    def __len__(self) -> int:
        return len(self.properties)

    def __iter__(self) -> Iterator[Tuple[str, Property]]:
        return iter(self.properties)


class PropertyCodec(Serializable):
    def __init__(
        self, float_type: ScalarType = FLOAT64, index_type: ScalarType = INT32
    ):
        if not float_type.is_float:
            raise ValueError(f"V needs a float type, got {float_type.name}")
        if index_type.is_float:
            raise ValueError(f"F needs an integer type, got {index_type.name}")
        self.values = Sequence(Scalar(float_type))
        self.indices = Sequence(Scalar(index_type))

    def encode(self, value: Any, stream: BinaryIO) -> None:
        if not isinstance(value, Property):
            raise encode_error(f"Expected Property, got {type(value).__name__}")
        self.values.encode(value.V, stream)
        self.indices.encode(value.F, stream)

    def decode(self, stream: BinaryIO) -> Property:
        v = self.values.decode(stream)
        f = self.indices.decode(stream)
        return Property(V=v, F=f)

    def __repr__(self) -> str:
        return f"PropertyCodec({self.values.elem!r}, {self.indices.elem!r})"


class DecodeState(Enum):
    START = auto()
    LEADING_GUARD = auto()
    BODY = auto()
    TRAILING_GUARD = auto()
    DONE = auto()
    FAILED = auto()


_GUARD = Bytes()

PropertyCallback = Callable[[str, Property], None]


def _unpack_callback(
    on_property: Optional[PropertyCallback],
) -> Optional[Callable[[Any], None]]:
    if on_property is None:
        return None
    return lambda entry: on_property(*entry)


class MeshReader:
    """Single-use, fail-fast reader for one mesh.

    The first failure moves the reader to ``FAILED`` and re-raises; there is
    no way out of ``FAILED``. The stream position afterwards is undefined.
    ``on_property`` is called with each (name, property) pair as it is read.
    """

    def __init__(
        self,
        codec: "MeshCodec",
        stream: BinaryIO,
        on_property: Optional[PropertyCallback] = None,
    ):
        self.codec = codec
        self.stream = stream
        self.on_property = on_property
        self.state = DecodeState.START

    def _enter(self, state: DecodeState) -> None:
        get_logger().debug("mesh decode: %s -> %s", self.state.name, state.name)
        self.state = state

    def _read_guard(self, which: str) -> None:
        # The length is checked first so a damaged prefix never drives a read.
        length = read_scalar(SIZE, self.stream)
        if length != len(MAGIC):
            raise corrupt(
                f"File corrupted: bad {which} guard length",
                {"expected": len(MAGIC), "found": length},
            )
        raw = read_exact(self.stream, length, f"{which} guard")
        if raw != MAGIC:
            raise corrupt(
                f"File corrupted: bad {which} guard",
                {"expected": MAGIC.decode("ascii"), "found": raw.hex()},
            )

    def read(self) -> "Mesh":
        if self.state is not DecodeState.START:
            raise RuntimeError(f"MeshReader already used (state={self.state.name})")
        try:
            self._enter(DecodeState.LEADING_GUARD)
            self._read_guard("leading")
            self._enter(DecodeState.BODY)
            properties = self.codec.body.decode(
                self.stream, on_item=_unpack_callback(self.on_property)
            )
            self._enter(DecodeState.TRAILING_GUARD)
            self._read_guard("trailing")
        except Exception:
            self._enter(DecodeState.FAILED)
            raise
        self._enter(DecodeState.DONE)
        return Mesh(properties=properties)


class MeshCodec(Serializable):
    """Guarded mesh codec for one float/index width combination."""

    def __init__(
        self, float_type: ScalarType = FLOAT64, index_type: ScalarType = INT32
    ):
        self.float_type = float_type
        self.index_type = index_type
        self.body = codec_for(
            List[Tuple[str, Property]],
            float_type=float_type,
            int_type=index_type,
        )

    def encode(
        self,
        value: Any,
        stream: BinaryIO,
        on_property: Optional[PropertyCallback] = None,
    ) -> None:
        if not isinstance(value, Mesh):
            raise encode_error(f"Expected Mesh, got {type(value).__name__}")
        _GUARD.encode(MAGIC, stream)
        self.body.encode(
            value.properties, stream, on_item=_unpack_callback(on_property)
        )
        _GUARD.encode(MAGIC, stream)

    def decode(
        self, stream: BinaryIO, on_property: Optional[PropertyCallback] = None
    ) -> Mesh:
        return MeshReader(self, stream, on_property).read()

    def __repr__(self) -> str:
        return f"MeshCodec({self.float_type.name}, {self.index_type.name})"


register_shape(
    Property, lambda _a, r: PropertyCodec(r.float_type, r.int_type)
)
register_shape(Mesh, lambda _a, r: MeshCodec(r.float_type, r.int_type))
