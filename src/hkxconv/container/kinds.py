"""File kinds of Breath of the Wild Havok containers.

Each simple kind stores one ``hkRootLevelContainer`` whose first named
variant identifies the content; the compound kind (``hksc``) stores a
``StaticCompoundInfo`` stream followed by a container stream.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

from ..errors import unknown_extension
from ..packfile.objects import HkObject, RootLevelContainer

__all__ = [
    "FileKind",
    "SIMPLE_KINDS",
    "COMPOUND_ROOT_COUNT",
    "classify",
    "guess_extension",
    "kind_to_offset",
    "extension_to_kind",
    "kind_to_extension",
]

COMPOUND_ROOT_COUNT = 2


class FileKind(Enum):
    # (extension, root class name of the first named variant, section offset)
    CLOTH_CONTAINER = ("hkcl", "hclClothContainer", 0)
    RIGID_BODY_ANIMATION = ("hkrg", "hkaAnimationContainer", 0)
    PHYSICS_RIGID_BODY = ("hkrb", "hkpPhysicsData", 0)
    TRANSFORMED_RIGID_BODY = ("hktmrb", "hkpRigidBody", 16)
    NAV_MESH = ("hknm2", "hkaiNavMesh", 16)
    COMPOUND = ("hksc", None, None)

    def __init__(
        self,
        extension: str,
        class_name: Optional[str],
        section_offset: Optional[int],
    ):
        self.extension = extension
        self.class_name = class_name
        self.section_offset = section_offset

    @property
    def is_compound(self) -> bool:
        return self is FileKind.COMPOUND

    @property
    def root_count(self) -> int:
        return COMPOUND_ROOT_COUNT if self.is_compound else 1


SIMPLE_KINDS = tuple(k for k in FileKind if not k.is_compound)

_KIND_BY_CLASS_NAME = {k.class_name: k for k in SIMPLE_KINDS}
_KIND_BY_EXTENSION = {k.extension: k for k in FileKind}


def classify(roots: Sequence[HkObject]) -> Optional[FileKind]:
    """Return the file kind for ``roots`` or ``None`` when undecidable.

    Two roots always mean a compound file. A single root is classified by the
    class name of its first named variant. Never raises.
    """
    count = len(roots)
    if count == COMPOUND_ROOT_COUNT:
        return FileKind.COMPOUND
    if count != 1:
        return None
    root = roots[0]
    if not isinstance(root, RootLevelContainer):
        return None
    class_name = root.first_class_name()
    if not isinstance(class_name, str):
        return None
    return _KIND_BY_CLASS_NAME.get(class_name)


def guess_extension(roots: Sequence[HkObject]) -> Optional[str]:
    kind = classify(roots)
    return kind.extension if kind is not None else None


def extension_to_kind(extension: str) -> FileKind:
    normalized = extension.lower().lstrip(".")
    kind = _KIND_BY_EXTENSION.get(normalized)
    if kind is None:
        raise unknown_extension(extension)
    return kind


def kind_to_extension(kind: FileKind) -> str:
    return kind.extension


def kind_to_offset(kind: FileKind) -> int:
    """Section offset used when writing a simple kind.

    The compound kind has no single offset; its two streams are written by
    :func:`hkxconv.container.codec.encode_container`.
    """
    if kind.section_offset is None:
        raise unknown_extension(kind.extension)
    return kind.section_offset
