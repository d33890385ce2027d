import io
import math
import struct

import pytest

from meshbin.codec import FLOAT32, FLOAT64, INT32, INT64, codec_for, serialize
from meshbin.errors import CorruptFileError, EncodeError, TruncatedInputError
from meshbin.mesh import (
    MAGIC,
    DecodeState,
    Mesh,
    MeshCodec,
    MeshReader,
    Property,
    PropertyCodec,
)


def _dump(mesh: Mesh, codec: MeshCodec | None = None) -> bytes:
    buf = io.BytesIO()
    serialize(codec or MeshCodec(), mesh, buf)
    return buf.getvalue()


def _load(data: bytes, codec: MeshCodec | None = None) -> Mesh:
    return (codec or MeshCodec()).decode(io.BytesIO(data))


def _sample_mesh() -> Mesh:
    mesh = Mesh()
    mesh.add("position", Property(V=[0.0, 1.0, 2.0, 3.0, 4.0, 5.0], F=[0, 1, 2]))
    mesh.add("normal", Property(V=[0.0, 0.0, 1.0], F=[]))
    mesh.add("empty", Property())
    return mesh


def _guard() -> bytes:
    return struct.pack("=Q", len(MAGIC)) + MAGIC


def test_empty_mesh_round_trip():
    data = _dump(Mesh())
    assert data == _guard() + struct.pack("=Q", 0) + _guard()
    assert _load(data) == Mesh()


def test_round_trip_preserves_order_and_duplicates():
    mesh = _sample_mesh()
    mesh.add("position", Property(V=[9.0], F=[7]))
    decoded = _load(_dump(mesh))
    assert decoded == mesh
    assert decoded.names() == ["position", "normal", "empty", "position"]
    assert decoded.get("position").V == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]


def test_serialize_does_not_mutate_mesh():
    mesh = _sample_mesh()
    before = repr(mesh)
    _dump(mesh)
    assert repr(mesh) == before


def test_stream_layout():
    mesh = Mesh([("p", Property(V=[1.0, 2.0], F=[0, 1, 2]))])
    expected = (
        _guard()
        + struct.pack("=Q", 1)
        + struct.pack("=Q", 1)
        + b"p"
        + struct.pack("=Q2d", 2, 1.0, 2.0)
        + struct.pack("=Q3i", 3, 0, 1, 2)
        + _guard()
    )
    assert _dump(mesh) == expected


def test_f32_i64_layout_and_round_trip():
    codec = MeshCodec(FLOAT32, INT64)
    mesh = Mesh([("p", Property(V=[0.5, 0.25], F=[2**40]))])
    data = _dump(mesh, codec)
    assert struct.pack("=Q2f", 2, 0.5, 0.25) + struct.pack("=Qq", 1, 2**40) in data
    assert _load(data, codec) == mesh


def test_width_mismatch_does_not_decode_cleanly():
    mesh = Mesh([("p", Property(V=[1.0, 2.0, 3.0], F=[1]))])
    data = _dump(mesh, MeshCodec(FLOAT64, INT32))
    with pytest.raises((TruncatedInputError, CorruptFileError)):
        _load(data, MeshCodec(FLOAT32, INT64))


def test_embedded_nul_in_property_name():
    mesh = Mesh([("a\0b", Property(V=[1.0], F=[0]))])
    decoded = _load(_dump(mesh))
    name = decoded.names()[0]
    assert name == "a\0b"
    assert len(name) == 3


def test_non_utf8_property_name_round_trips():
    data = (
        _guard()
        + struct.pack("=Q", 1)
        + struct.pack("=Q", 2)
        + b"\xff\xfe"
        + struct.pack("=QQ", 0, 0)
        + _guard()
    )
    mesh = _load(data)
    assert len(mesh) == 1
    assert mesh.get(mesh.names()[0]) == Property()
    assert _dump(mesh) == data


def test_property_callbacks_follow_stream_order():
    mesh = _sample_mesh()
    codec = MeshCodec()
    written = []
    buf = io.BytesIO()
    codec.encode(mesh, buf, on_property=lambda name, _p: written.append(name))
    read = []
    buf.seek(0)
    codec.decode(buf, on_property=lambda name, p: read.append((name, p)))
    assert written == ["position", "normal", "empty"]
    assert read == mesh.properties


def _special_doubles(n: int):
    nan_payload = struct.unpack("=d", struct.pack("=Q", 0x7FF8000000000123))[0]
    specials = [
        math.nan,
        nan_payload,
        math.inf,
        -math.inf,
        5e-324,  # smallest denormal
        2.2250738585072009e-308,  # largest denormal
        -0.0,
        1.7976931348623157e308,
    ]
    values = [i * 0.001 - 3.0 for i in range(n - len(specials))]
    return values + specials


def test_float64_values_round_trip_bit_for_bit():
    values = _special_doubles(10_000)
    assert len(values) == 10_000
    mesh = Mesh([("v", Property(V=values, F=[]))])
    decoded = _load(_dump(mesh)).get("v").V
    fmt = f"={len(values)}d"
    assert struct.pack(fmt, *decoded) == struct.pack(fmt, *values)


def test_float32_values_round_trip_bit_for_bit():
    raw = struct.pack("=4f", math.nan, math.inf, -math.inf, 1e-45)
    raw += struct.pack("=9996f", *[i * 0.5 for i in range(9996)])
    values = list(struct.unpack("=10000f", raw))
    codec = MeshCodec(FLOAT32, INT32)
    mesh = Mesh([("v", Property(V=values, F=[]))])
    decoded = _load(_dump(mesh, codec), codec).get("v").V
    assert struct.pack("=10000f", *decoded) == raw


def test_truncation_at_every_prefix():
    data = _dump(_sample_mesh())
    for n in range(1, len(data)):
        with pytest.raises(TruncatedInputError):
            _load(data[:n])


@pytest.mark.parametrize("which", ["leading", "trailing"])
def test_single_byte_flip_in_guard_is_corrupt(which):
    data = _dump(_sample_mesh())
    size = len(_guard())
    start = 0 if which == "leading" else len(data) - size
    for i in range(start, start + size):
        damaged = bytearray(data)
        damaged[i] ^= 0x01
        with pytest.raises(CorruptFileError):
            _load(bytes(damaged))


def test_wrong_magic_stops_before_body():
    data = struct.pack("=Q", len(MAGIC)) + b"BINARY_MESX" + b"\xff" * 4
    stream = io.BytesIO(data)
    reader = MeshReader(MeshCodec(), stream)
    with pytest.raises(CorruptFileError):
        reader.read()
    assert reader.state is DecodeState.FAILED
    assert stream.tell() == len(_guard())


def test_reader_reaches_done_and_is_single_use():
    reader = MeshReader(MeshCodec(), io.BytesIO(_dump(_sample_mesh())))
    assert reader.state is DecodeState.START
    mesh = reader.read()
    assert reader.state is DecodeState.DONE
    assert len(mesh) == 3
    with pytest.raises(RuntimeError):
        reader.read()


def test_nested_failure_propagates_and_marks_failed():
    data = _dump(_sample_mesh())
    reader = MeshReader(MeshCodec(), io.BytesIO(data[: len(_guard()) + 12]))
    with pytest.raises(TruncatedInputError):
        reader.read()
    assert reader.state is DecodeState.FAILED


def test_out_of_range_index_fails_encode():
    mesh = Mesh([("p", Property(V=[], F=[2**40]))])
    with pytest.raises(EncodeError):
        _dump(mesh)


def test_property_codec_rejects_swapped_widths():
    with pytest.raises(ValueError):
        PropertyCodec(INT32, INT32)
    with pytest.raises(ValueError):
        PropertyCodec(FLOAT64, FLOAT64)


def test_codec_for_resolves_mesh_types():
    codec = codec_for(Mesh, float_type=FLOAT32, int_type=INT64)
    assert isinstance(codec, MeshCodec)
    assert codec.float_type is FLOAT32 and codec.index_type is INT64
    assert isinstance(codec_for(Property), PropertyCodec)
