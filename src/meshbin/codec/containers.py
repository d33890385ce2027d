"""Recursive, type-directed container encoding.

Every shape implements :class:`Serializable`. Containers are generic over any
other ``Serializable``, so shapes compose freely::

    codec = Sequence(Pair(String(), Map(String(), Scalar(INT32))))
    serialize(codec, value, stream)
    value = deserialize(codec, stream)

:func:`codec_for` derives the same codecs from type annotations such as
``list[tuple[str, dict[str, int]]]``.
"""

from __future__ import annotations

import collections.abc
import typing
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Callable, Dict, List, MutableMapping, Tuple

from ..errors import corrupt, encode_error
from ..logging import get_logger
from .primitives import (
    FLOAT64,
    INT64,
    SIZE,
    ScalarType,
    pack_block,
    read_exact,
    read_scalar,
    unpack_block,
    write_scalar,
)

__all__ = [
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


class Serializable(ABC):
    """Something that can write a value to a stream and read it back."""

    @abstractmethod
    def encode(self, value: Any, stream: BinaryIO) -> None:
        raise NotImplementedError

    @abstractmethod
    def decode(self, stream: BinaryIO) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def serialize(codec: Serializable, value: Any, stream: BinaryIO) -> None:
    codec.encode(value, stream)


def deserialize(codec: Serializable, stream: BinaryIO) -> Any:
    return codec.decode(stream)


class Scalar(Serializable):
    def __init__(self, stype: ScalarType):
        self.stype = stype

    def encode(self, value: Any, stream: BinaryIO) -> None:
        write_scalar(self.stype, value, stream)

    def decode(self, stream: BinaryIO) -> Any:
        return read_scalar(self.stype, stream)

    def __repr__(self) -> str:
        return f"Scalar({self.stype.name})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Scalar) and other.stype == self.stype

    def __hash__(self) -> int:
        return hash(self.stype)


def _write_blob(data: bytes, stream: BinaryIO) -> None:
    write_scalar(SIZE, len(data), stream)
    stream.write(data)


def _read_blob(stream: BinaryIO, label: str) -> bytes:
    length = read_scalar(SIZE, stream)
    return read_exact(stream, length, label)


class Bytes(Serializable):
    """Length-prefixed raw bytes."""

    def encode(self, value: Any, stream: BinaryIO) -> None:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise encode_error(f"Expected bytes, got {type(value).__name__}")
        _write_blob(bytes(value), stream)

    def decode(self, stream: BinaryIO) -> bytes:
        return _read_blob(stream, "bytes")


class String(Serializable):
    """Length-prefixed text. The length counts encoded bytes, not characters.

    The decoded length is authoritative: NUL bytes are ordinary content.
    With the default ``surrogateescape`` policy any byte string decodes, and
    bytes that are not valid in ``encoding`` are written back unchanged.
    ``errors="strict"`` rejects them with ``CorruptFileError`` instead.
    """

    def __init__(self, encoding: str = "utf-8", errors: str = "surrogateescape"):
        self.encoding = encoding
        self.errors = errors

    def encode(self, value: Any, stream: BinaryIO) -> None:
        if not isinstance(value, str):
            raise encode_error(f"Expected str, got {type(value).__name__}")
        try:
            data = value.encode(self.encoding, self.errors)
        except UnicodeEncodeError as e:
            raise encode_error(
                f"String cannot be encoded as {self.encoding}",
                {"position": e.start},
            ) from e
        _write_blob(data, stream)

    def decode(self, stream: BinaryIO) -> str:
        raw = _read_blob(stream, "string")
        try:
            return raw.decode(self.encoding, self.errors)
        except UnicodeDecodeError as e:
            raise corrupt(
                f"String is not valid {self.encoding}",
                {"length": len(raw), "position": e.start},
            ) from e


class Sequence(Serializable):
    """``count`` followed by the elements.

    Scalar elements take the bulk path: the whole buffer is packed as one
    block. Any other element type is encoded one element at a time. Both
    paths produce identical bytes; ``bulk=False`` forces the per-element
    path. ``on_item`` is called after each element on the per-element path.
    """

    def __init__(self, elem: Serializable, bulk: bool | None = None):
        self.elem = elem
        is_scalar = isinstance(elem, Scalar)
        if bulk and not is_scalar:
            raise ValueError(f"Bulk path requires a scalar element, got {elem!r}")
        self.bulk = is_scalar if bulk is None else bulk

    def encode(
        self,
        value: Any,
        stream: BinaryIO,
        on_item: Callable[[Any], None] | None = None,
    ) -> None:
        count = len(value)
        write_scalar(SIZE, count, stream)
        if self.bulk:
            stream.write(pack_block(self.elem.stype, value))  # type: ignore[attr-defined]
            return
        for item in value:
            self.elem.encode(item, stream)
            if on_item is not None:
                on_item(item)

    def decode(
        self,
        stream: BinaryIO,
        on_item: Callable[[Any], None] | None = None,
    ) -> List[Any]:
        count = read_scalar(SIZE, stream)
        logger = get_logger()
        if self.bulk:
            stype: ScalarType = self.elem.stype  # type: ignore[attr-defined]
            logger.debug("bulk read: %d x %s", count, stype.name)
            raw = read_exact(stream, count * stype.size, f"{stype.name}[{count}]")
            return unpack_block(stype, raw, count)
        logger.debug("element-wise read: %d x %r", count, self.elem)
        items: List[Any] = []
        for _ in range(count):
            item = self.elem.decode(stream)
            if on_item is not None:
                on_item(item)
            items.append(item)
        return items

    def __repr__(self) -> str:
        return f"Sequence({self.elem!r})"


class Pair(Serializable):
    """Two fields back to back, no prefix."""

    def __init__(self, first: Serializable, second: Serializable):
        self.first = first
        self.second = second

    def encode(self, value: Any, stream: BinaryIO) -> None:
        try:
            a, b = value
        except (TypeError, ValueError) as e:
            raise encode_error(f"Expected a pair, got {value!r}") from e
        self.first.encode(a, stream)
        self.second.encode(b, stream)

    def decode(self, stream: BinaryIO) -> Tuple[Any, Any]:
        a = self.first.decode(stream)
        b = self.second.decode(stream)
        return a, b

    def __repr__(self) -> str:
        return f"Pair({self.first!r}, {self.second!r})"


class Map(Serializable):
    """``count`` followed by key/value pairs.

    Entry order on the wire follows the mapping's iteration order and is not
    part of the format; compare decoded maps as mappings.
    """

    def __init__(self, key: Serializable, value: Serializable):
        self.entry = Pair(key, value)

    def encode(self, value: Any, stream: BinaryIO) -> None:
        write_scalar(SIZE, len(value), stream)
        for item in value.items():
            self.entry.encode(item, stream)

    def decode(self, stream: BinaryIO) -> Dict[Any, Any]:
        out: Dict[Any, Any] = {}
        self.decode_into(stream, out)
        return out

    def decode_into(
        self, stream: BinaryIO, target: MutableMapping[Any, Any]
    ) -> None:
        count = read_scalar(SIZE, stream)
        target.clear()
        for _ in range(count):
            k, v = self.entry.decode(stream)
            target[k] = v

    def __repr__(self) -> str:
        return f"Map({self.entry.first!r}, {self.entry.second!r})"


# --- type-directed construction -------------------------------------------


class _Resolver:
    def __init__(self, float_type: ScalarType, int_type: ScalarType):
        self.float_type = float_type
        self.int_type = int_type

    def __call__(self, hint: Any) -> Serializable:
        if isinstance(hint, Serializable):
            return hint
        if isinstance(hint, ScalarType):
            return Scalar(hint)
        origin = typing.get_origin(hint)
        key = origin if origin is not None else hint
        builder = _SHAPES.get(key)
        if builder is None:
            raise TypeError(f"No codec registered for {hint!r}")
        return builder(typing.get_args(hint), self)


ShapeBuilder = Callable[[Tuple[Any, ...], _Resolver], Serializable]
_SHAPES: Dict[Any, ShapeBuilder] = {}


def register_shape(key: Any, builder: ShapeBuilder) -> None:
    """Register how to build a codec for ``key``.

    ``key`` is a plain type (``str``) or a generic origin (``list``).
    ``builder`` receives the type arguments and a resolver for nested hints.
    """
    _SHAPES[key] = builder


def codec_for(
    hint: Any,
    *,
    float_type: ScalarType = FLOAT64,
    int_type: ScalarType = INT64,
) -> Serializable:
    """Build a codec from a type annotation.

    ``float`` and ``int`` map to ``float_type`` and ``int_type``.
    """
    return _Resolver(float_type, int_type)(hint)


def _one_arg(args: Tuple[Any, ...], shape: str) -> Any:
    if len(args) != 1:
        raise TypeError(f"{shape} needs exactly one type argument")
    return args[0]


def _sequence(args: Tuple[Any, ...], resolve: _Resolver) -> Serializable:
    return Sequence(resolve(_one_arg(args, "Sequence")))


def _tuple(args: Tuple[Any, ...], resolve: _Resolver) -> Serializable:
    if len(args) == 2 and args[1] is Ellipsis:
        return Sequence(resolve(args[0]))
    if len(args) != 2:
        raise TypeError(f"Only two-field tuples are supported, got {args!r}")
    return Pair(resolve(args[0]), resolve(args[1]))


def _mapping(args: Tuple[Any, ...], resolve: _Resolver) -> Serializable:
    if len(args) != 2:
        raise TypeError("Map needs key and value type arguments")
    return Map(resolve(args[0]), resolve(args[1]))


register_shape(float, lambda _a, r: Scalar(r.float_type))
register_shape(int, lambda _a, r: Scalar(r.int_type))
register_shape(str, lambda _a, _r: String())
register_shape(bytes, lambda _a, _r: Bytes())
register_shape(list, _sequence)
register_shape(collections.abc.Sequence, _sequence)
register_shape(tuple, _tuple)
register_shape(dict, _mapping)
register_shape(collections.abc.Mapping, _mapping)
