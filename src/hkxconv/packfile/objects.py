"""In-memory object graph.

Every node is an :class:`HkObject`: a registered class name plus member values
keyed by their declared (``m_``-prefixed) names. The two classes that can sit
at the top of a packfile stream are modelled as dedicated subclasses so the
container layer can check positions with ``isinstance``:

- :class:`RootLevelContainer` (``hkRootLevelContainer``)
- :class:`StaticCompoundInfo` (``StaticCompoundInfo``)

Member values by kind: ints for integer kinds and enums, ``float`` for REAL,
``bool`` for BOOL, ``str | None`` for STRING, ``HkObject | None`` for POINTER,
``list`` for ARRAY and an embedded ``HkObject`` for STRUCT.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from .classes import get_class
from .schema import HkClass, Member, MemberKind

__all__ = [
    "HkObject",
    "RootLevelContainer",
    "StaticCompoundInfo",
    "ROOT_VARIANTS",
    "make_object",
    "default_value",
]


def default_value(member: Member) -> Any:
    kind = member.kind
    if kind is MemberKind.BOOL:
        return False
    if kind is MemberKind.REAL:
        return 0.0
    if kind in (MemberKind.STRING, MemberKind.POINTER):
        return None
    if kind is MemberKind.ARRAY:
        return []
    if kind is MemberKind.STRUCT:
        return make_object(member.target or "")
    return 0


class HkObject:
    __slots__ = ("class_name", "members")

    def __init__(
        self, class_name: str, members: Optional[Mapping[str, Any]] = None
    ):
        self.class_name = class_name
        self.members: Dict[str, Any] = {}
        cls = get_class(class_name)
        given = dict(members or {})
        for member in cls.members:
            if member.name in given:
                self.members[member.name] = given.pop(member.name)
            else:
                self.members[member.name] = default_value(member)
        if given:
            raise KeyError(
                f"{class_name} has no member(s) {', '.join(sorted(given))}"
            )

    @property
    def hk_class(self) -> HkClass:
        return get_class(self.class_name)

    @property
    def signature(self) -> int:
        return self.hk_class.signature

    def __getitem__(self, name: str) -> Any:
        return self.members[name]

    def __setitem__(self, name: str, value: Any) -> None:
        if name not in self.members:
            raise KeyError(f"{self.class_name} has no member {name}")
        self.members[name] = value

    def items(self) -> Iterator[Tuple[str, Any]]:
        """Yield ``(name, value)`` pairs, computed ``Signature`` first."""
        yield "Signature", self.signature
        yield from self.members.items()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HkObject):
            return NotImplemented
        return (
            self.class_name == other.class_name
            and self.members == other.members
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.class_name!r}, {self.members!r})"


class RootLevelContainer(HkObject):
    __slots__ = ()
    CLASS_NAME = "hkRootLevelContainer"

    def __init__(self, members: Optional[Mapping[str, Any]] = None):
        super().__init__(self.CLASS_NAME, members)

    @property
    def named_variants(self) -> list:
        return self.members["m_namedVariants"]

    def first_class_name(self) -> Optional[str]:
        variants = self.named_variants
        if not variants:
            return None
        return variants[0]["m_className"]


class StaticCompoundInfo(HkObject):
    __slots__ = ()
    CLASS_NAME = "StaticCompoundInfo"

    def __init__(self, members: Optional[Mapping[str, Any]] = None):
        super().__init__(self.CLASS_NAME, members)

    @property
    def offset(self) -> int:
        return self.members["m_Offset"]

    @offset.setter
    def offset(self, value: int) -> None:
        self.members["m_Offset"] = value


ROOT_VARIANTS = {
    RootLevelContainer.CLASS_NAME: RootLevelContainer,
    StaticCompoundInfo.CLASS_NAME: StaticCompoundInfo,
}


def make_object(
    class_name: str, members: Optional[Mapping[str, Any]] = None
) -> HkObject:
    variant = ROOT_VARIANTS.get(class_name)
    if variant is not None:
        return variant(members)
    return HkObject(class_name, members)
