"""High-level API for meshbin.

The codecs in :mod:`meshbin.mesh` work on caller-owned streams. The helpers
here add byte-string and file conveniences on top, with reporter tasks
around file I/O.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .codec.containers import deserialize, serialize
from .codec.primitives import scalar_type
from .errors import MeshBinError
from .logging import get_logger
from .mesh import Mesh, MeshCodec, Property
from .reporting import get_reporter, task

__all__ = [
    "FormatOptions",
    "dumps",
    "loads",
    "save_mesh",
    "load_mesh",
    "inspect_mesh",
    "validate_mesh",
]


@dataclass(frozen=True, slots=True)
class FormatOptions:
    # Neither width is stored in the file; both sides must agree.
    float_type: str = "f64"
    index_type: str = "i32"

    def codec(self) -> MeshCodec:
        return MeshCodec(scalar_type(self.float_type), scalar_type(self.index_type))


_DEFAULT = FormatOptions()


def _codec(options: Optional[FormatOptions]) -> MeshCodec:
    return (options or _DEFAULT).codec()


def _progress(task_id: str) -> Callable[[str, Property], None]:
    rep = get_reporter()

    def on_property(name: str, _prop: Property) -> None:
        rep.advance(task_id, current_item=name)

    return on_property


def dumps(mesh: Mesh, options: Optional[FormatOptions] = None) -> bytes:
    buf = io.BytesIO()
    serialize(_codec(options), mesh, buf)
    return buf.getvalue()


def loads(data: bytes, options: Optional[FormatOptions] = None) -> Mesh:
    buf = io.BytesIO(data)
    mesh = deserialize(_codec(options), buf)
    extra = len(data) - buf.tell()
    if extra:
        get_logger().warning("%d trailing bytes after mesh ignored", extra)
    return mesh


def save_mesh(
    mesh: Mesh, path: str | Path, options: Optional[FormatOptions] = None
) -> int:
    """Write ``mesh`` to ``path``; returns the number of bytes written."""
    p = Path(path)
    codec = _codec(options)
    on_property = _progress("mesh.write")
    with task("mesh.write", f"Write {p.name}", total=len(mesh)) as stats:
        with p.open("wb") as f:
            codec.encode(mesh, f, on_property=on_property)
            written = f.tell()
        stats["properties"] = len(mesh)
        stats["bytes"] = written
    return written


def load_mesh(path: str | Path, options: Optional[FormatOptions] = None) -> Mesh:
    p = Path(path)
    codec = _codec(options)
    on_property = _progress("mesh.read")
    with task("mesh.read", f"Read {p.name}") as stats:
        with p.open("rb") as f:
            mesh = codec.decode(f, on_property=on_property)
            stats["bytes"] = f.tell()
        stats["properties"] = len(mesh)
    return mesh


def inspect_mesh(
    path: str | Path, options: Optional[FormatOptions] = None
) -> Dict[str, Any]:
    opts = options or _DEFAULT
    p = Path(path)
    mesh = load_mesh(p, opts)
    return {
        "file_size": p.stat().st_size,
        "float_type": opts.float_type,
        "index_type": opts.index_type,
        "property_count": len(mesh),
        "properties": [
            {"name": name, "values": len(prop.V), "indices": len(prop.F)}
            for name, prop in mesh.properties
        ],
    }


def validate_mesh(
    path: str | Path, options: Optional[FormatOptions] = None
) -> List[str]:
    """Decode ``path`` and return a list of issues (empty when clean)."""
    issues: List[str] = []
    codec = _codec(options)
    with Path(path).open("rb") as f:
        try:
            deserialize(codec, f)
        except MeshBinError as e:
            issues.append(str(e))
            return issues
        trailing = len(f.read())
    if trailing:
        issues.append(f"{trailing} trailing bytes after trailing guard")
    return issues
