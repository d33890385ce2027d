"""Error definitions for meshbin."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

E_TRUNCATED = "E_TRUNCATED"
E_CORRUPT = "E_CORRUPT"
E_ENCODE = "E_ENCODE"
E_DOCUMENT = "E_DOCUMENT"


@dataclass
class MeshBinError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" + (
            f" | ctx={self.context}" if self.context else ""
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


class TruncatedInputError(MeshBinError):
    pass


class CorruptFileError(MeshBinError):
    pass


class EncodeError(MeshBinError):
    pass


class DocumentError(MeshBinError):
    pass


def truncated(
    label: str, expected: int, received: int
) -> TruncatedInputError:
    return TruncatedInputError(
        code=E_TRUNCATED,
        message=f"Unexpected end of stream reading {label}",
        context={"expected": expected, "received": received},
    )


def corrupt(
    message: str, context: Optional[Dict[str, Any]] = None
) -> CorruptFileError:
    return CorruptFileError(code=E_CORRUPT, message=message, context=context)


def encode_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> EncodeError:
    return EncodeError(code=E_ENCODE, message=message, context=context)


def document_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> DocumentError:
    return DocumentError(code=E_DOCUMENT, message=message, context=context)


__all__ = [
    "MeshBinError",
    "TruncatedInputError",
    "CorruptFileError",
    "EncodeError",
    "DocumentError",
    "truncated",
    "corrupt",
    "encode_error",
    "document_error",
    "E_TRUNCATED",
    "E_CORRUPT",
    "E_ENCODE",
    "E_DOCUMENT",
]
