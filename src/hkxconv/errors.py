"""Error definitions for hkxconv.

Every failure a conversion can hit is an :class:`HkxError` carrying a stable
``code`` so callers (and the JSON reporter) can tell them apart without
parsing messages.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

E_DESTINATION_EXISTS = "E_DESTINATION_EXISTS"
E_SOURCE_MISSING = "E_SOURCE_MISSING"
E_MALFORMED = "E_MALFORMED"
E_TYPE_MISMATCH = "E_TYPE_MISMATCH"
E_UNKNOWN_EXTENSION = "E_UNKNOWN_EXTENSION"
E_CARDINALITY = "E_CARDINALITY"
E_UNRESOLVED_KIND = "E_UNRESOLVED_KIND"
E_OFFSET_CONVERGENCE = "E_OFFSET_CONVERGENCE"
E_TREE_FORMAT = "E_TREE_FORMAT"
E_PACKFILE = "E_PACKFILE"
E_ARGUMENT = "E_ARGUMENT"
E_FILE_ACCESS = "E_FILE_ACCESS"


@dataclass
class HkxError(Exception):
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


class DestinationExistsError(HkxError):
    pass


class SourceMissingError(HkxError):
    pass


class MalformedContainerError(HkxError):
    pass


class TypeMismatchError(HkxError):
    pass


class UnknownExtensionError(HkxError):
    pass


class CardinalityMismatchError(HkxError):
    pass


class UnresolvedKindError(HkxError):
    pass


class OffsetConvergenceError(HkxError):
    pass


class TreeFormatError(HkxError):
    pass


class PackfileError(HkxError):
    pass


class ArgumentError(HkxError):
    pass


class FileAccessError(HkxError):
    pass


def destination_exists(path: Any) -> DestinationExistsError:
    return DestinationExistsError(
        code=E_DESTINATION_EXISTS,
        message=f"File already exists: {path}",
        context={"path": str(path)},
    )


def file_access_error(path: Any, exc: OSError) -> FileAccessError:
    reason = exc.strerror or type(exc).__name__
    return FileAccessError(
        code=E_FILE_ACCESS,
        message=f"Cannot access {path}: {reason}",
        context={"path": str(path), "errno": exc.errno},
    )


def unknown_extension(extension: Any) -> UnknownExtensionError:
    return UnknownExtensionError(
        code=E_UNKNOWN_EXTENSION,
        message=f"Unsupported container extension: {extension!r}",
        context={"extension": extension},
    )


def packfile_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> PackfileError:
    return PackfileError(code=E_PACKFILE, message=message, context=context)


def tree_error(message: str, path: str = "") -> TreeFormatError:
    return TreeFormatError(
        code=E_TREE_FORMAT,
        message=f"{path}: {message}" if path else message,
        context={"path": path} if path else None,
    )


__all__ = [
    "HkxError",
    "DestinationExistsError",
    "SourceMissingError",
    "MalformedContainerError",
    "TypeMismatchError",
    "UnknownExtensionError",
    "CardinalityMismatchError",
    "UnresolvedKindError",
    "OffsetConvergenceError",
    "TreeFormatError",
    "PackfileError",
    "ArgumentError",
    "FileAccessError",
    "destination_exists",
    "unknown_extension",
    "file_access_error",
    "packfile_error",
    "tree_error",
    "E_DESTINATION_EXISTS",
    "E_SOURCE_MISSING",
    "E_MALFORMED",
    "E_TYPE_MISMATCH",
    "E_UNKNOWN_EXTENSION",
    "E_CARDINALITY",
    "E_UNRESOLVED_KIND",
    "E_OFFSET_CONVERGENCE",
    "E_TREE_FORMAT",
    "E_PACKFILE",
    "E_ARGUMENT",
    "E_FILE_ACCESS",
]
