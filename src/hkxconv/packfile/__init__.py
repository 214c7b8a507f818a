"""Havok packfile (hk_2014) reader/writer for a closed set of classes."""

from .classes import CLASSES, ENUMS, get_class, get_enum, is_registered
from .codec import PackfileCodec
from .header import HeaderConfig, PackfileHeader, parse_header
from .objects import (
    HkObject,
    RootLevelContainer,
    StaticCompoundInfo,
    ROOT_VARIANTS,
    make_object,
)
from .schema import HkClass, HkEnum, Member, MemberKind

__all__ = [
    "CLASSES",
    "ENUMS",
    "get_class",
    "get_enum",
    "is_registered",
    "PackfileCodec",
    "HeaderConfig",
    "PackfileHeader",
    "parse_header",
    "HkObject",
    "RootLevelContainer",
    "StaticCompoundInfo",
    "ROOT_VARIANTS",
    "make_object",
    "HkClass",
    "HkEnum",
    "Member",
    "MemberKind",
]
