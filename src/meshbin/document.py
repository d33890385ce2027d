"""Mesh documents (JSON/YAML) for the ``pack``/``unpack`` commands.

Document shape::

    {"properties": [{"name": "position", "V": [...], "F": [...]}, ...]}
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List
import json

import yaml

from .errors import document_error
from .mesh import Mesh, Property

__all__ = ["load_document", "document_to_mesh", "mesh_to_document"]


def load_document(path: str | Path) -> Mesh:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in {".yaml", ".yml"}:
            data: Any = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise document_error(f"Cannot parse {p.name}: {e}") from e
    return document_to_mesh(data)


def _numbers(raw: Any, kind: type, where: str) -> List[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise document_error(f"{where} must be a list")
    out: List[Any] = []
    for i, v in enumerate(raw):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise document_error(f"{where}[{i}] is not a number: {v!r}")
        if kind is int and not isinstance(v, int):
            raise document_error(f"{where}[{i}] is not an integer: {v!r}")
        out.append(kind(v))
    return out


def document_to_mesh(data: Any) -> Mesh:
    if not isinstance(data, dict):
        raise document_error("Root of mesh document must be an object")
    entries = data.get("properties", [])
    if not isinstance(entries, list):
        raise document_error("'properties' must be a list")
    mesh = Mesh()
    for i, entry in enumerate(entries):
        where = f"properties[{i}]"
        if not isinstance(entry, dict):
            raise document_error(f"{where} must be an object")
        name = entry.get("name")
        if not isinstance(name, str):
            raise document_error(f"{where}.name must be a string")
        mesh.add(
            name,
            Property(
                V=_numbers(entry.get("V"), float, f"{where}.V"),
                F=_numbers(entry.get("F"), int, f"{where}.F"),
            ),
        )
    return mesh


def mesh_to_document(mesh: Mesh) -> Dict[str, Any]:
    return {
        "properties": [
            {"name": name, "V": list(prop.V), "F": list(prop.F)}
            for name, prop in mesh.properties
        ]
    }
