"""Member and class declarations for the packfile object model.

A class is an ordered list of typed members. Layout (member offsets, size,
alignment) depends only on the class and the target pointer width, so it is
computed once per ``(class, pointer_size)`` pair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from functools import lru_cache
from typing import Dict, Optional, Tuple

__all__ = [
    "MemberKind",
    "Member",
    "HkEnum",
    "HkClass",
    "ClassLayout",
    "SCALAR_FORMATS",
    "align_up",
    "member_size_align",
    "class_layout",
]


class MemberKind(Enum):
    BOOL = auto()
    U8 = auto()
    S8 = auto()
    U16 = auto()
    S16 = auto()
    U32 = auto()
    S32 = auto()
    U64 = auto()
    S64 = auto()
    REAL = auto()
    STRING = auto()
    POINTER = auto()
    ARRAY = auto()
    STRUCT = auto()
    ENUM = auto()


# struct format character per fixed-width kind (endianness prefix added later)
SCALAR_FORMATS: Dict[MemberKind, str] = {
    MemberKind.BOOL: "B",
    MemberKind.U8: "B",
    MemberKind.S8: "b",
    MemberKind.U16: "H",
    MemberKind.S16: "h",
    MemberKind.U32: "I",
    MemberKind.S32: "i",
    MemberKind.U64: "Q",
    MemberKind.S64: "q",
    MemberKind.REAL: "f",
}

_SCALAR_SIZES = {
    "B": 1, "b": 1, "H": 2, "h": 2, "I": 4, "i": 4, "Q": 8, "q": 8, "f": 4
}


def align_up(value: int, alignment: int) -> int:
    if alignment <= 1:
        return value
    return (value + alignment - 1) // alignment * alignment


@dataclass(frozen=True, slots=True)
class Member:
    """One declared member.

    ``target`` names the pointed-to / embedded class for POINTER and STRUCT
    (``None`` on a POINTER means any registered class) and the enum for ENUM.
    ``element`` is the unnamed element declaration of an ARRAY. ``storage`` is
    the integer kind backing an ENUM.
    """

    name: str
    kind: MemberKind
    target: Optional[str] = None
    element: Optional["Member"] = None
    storage: MemberKind = MemberKind.U8


@dataclass(frozen=True, slots=True)
class HkEnum:
    name: str
    items: Tuple[Tuple[str, int], ...]

    def name_of(self, value: int) -> Optional[str]:
        for item_name, item_value in self.items:
            if item_value == value:
                return item_name
        return None

    def value_of(self, name: str) -> Optional[int]:
        for item_name, item_value in self.items:
            if item_name == name:
                return item_value
        return None


@dataclass(frozen=True, slots=True)
class HkClass:
    name: str
    signature: int
    members: Tuple[Member, ...]
    # Structs are embedded inline and never get their own virtual fixup.
    is_struct: bool = False
    alignment: int = 1
    member_map: Dict[str, Member] = field(
        init=False, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "member_map", {m.name: m for m in self.members}
        )


@dataclass(frozen=True, slots=True)
class ClassLayout:
    size: int
    alignment: int
    offsets: Tuple[int, ...]


def member_size_align(member: Member, pointer_size: int) -> Tuple[int, int]:
    from .classes import get_class, get_enum  # registry imports schema

    kind = member.kind
    if kind in SCALAR_FORMATS:
        size = _SCALAR_SIZES[SCALAR_FORMATS[kind]]
        return size, size
    if kind in (MemberKind.STRING, MemberKind.POINTER):
        return pointer_size, pointer_size
    if kind is MemberKind.ARRAY:
        # data pointer + u32 size + u32 capacityAndFlags
        return pointer_size + 8, pointer_size
    if kind is MemberKind.ENUM:
        get_enum(member.target or "")
        size = _SCALAR_SIZES[SCALAR_FORMATS[member.storage]]
        return size, size
    if kind is MemberKind.STRUCT:
        layout = class_layout(get_class(member.target or ""), pointer_size)
        return layout.size, layout.alignment
    raise ValueError(f"Unhandled member kind {kind}")  # pragma: no cover


@lru_cache(maxsize=None)
def class_layout(cls: HkClass, pointer_size: int) -> ClassLayout:
    offset = 0
    max_align = max(1, cls.alignment)
    offsets = []
    for member in cls.members:
        size, align = member_size_align(member, pointer_size)
        offset = align_up(offset, align)
        offsets.append(offset)
        offset += size
        max_align = max(max_align, align)
    return ClassLayout(
        size=align_up(offset, max_align),
        alignment=max_align,
        offsets=tuple(offsets),
    )
