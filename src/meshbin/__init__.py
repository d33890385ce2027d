"""Binary serialization for mesh property buffers."""

from .codec import (
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
)
from .errors import (
    MeshBinError,
    TruncatedInputError,
    CorruptFileError,
    EncodeError,
    DocumentError,
)
from .mesh import MAGIC, Mesh, Property, MeshCodec, PropertyCodec
from .api import (
    FormatOptions,
    dumps,
    loads,
    save_mesh,
    load_mesh,
    inspect_mesh,
    validate_mesh,
)

__version__ = "0.1.0"

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
    "MeshBinError",
    "TruncatedInputError",
    "CorruptFileError",
    "EncodeError",
    "DocumentError",
    "MAGIC",
    "Mesh",
    "Property",
    "MeshCodec",
    "PropertyCodec",
    "FormatOptions",
    "dumps",
    "loads",
    "save_mesh",
    "load_mesh",
    "inspect_mesh",
    "validate_mesh",
]
