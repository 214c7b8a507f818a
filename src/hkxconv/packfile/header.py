"""Packfile header and section header layout.

File layout produced by :mod:`.writer`::

    +--------------------------+  0
    | file header (64 bytes)   |
    | section_offset padding   |  0xFF filler, ``section_offset`` bytes
    +--------------------------+
    | 3 x section header (48)  |  __classnames__, __types__, __data__
    +--------------------------+
    | section payloads         |  each 16-byte aligned
    +--------------------------+

All multi-byte fields use the endianness of the target platform.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Dict, List

from ..errors import packfile_error

__all__ = [
    "HeaderConfig",
    "PackfileHeader",
    "SectionHeader",
    "MAGIC0",
    "MAGIC1",
    "HEADER_SIZE",
    "SECTION_HEADER_SIZE",
    "section_header_stride",
    "SECTION_TAGS",
    "CLASSNAMES_SECTION",
    "TYPES_SECTION",
    "DATA_SECTION",
    "pack_header",
    "parse_header",
    "pack_section_header",
    "parse_section_header",
]

MAGIC0 = 0x57E0E057
MAGIC1 = 0x10C0C010
FILE_VERSION = 11
CONTENTS_VERSION = "hk_2014.2.0-r1"
MAX_PREDICATE = 21
HEADER_SIZE = 64
SECTION_HEADER_SIZE = 48
# version 11 pads every section header with 0xFF up to 64 bytes
_SECTION_HEADER_PADDING = 16
_PADDED_SECTIONS_VERSION = 11
SECTION_TAGS = ("__classnames__", "__types__", "__data__")
CLASSNAMES_SECTION = 0
TYPES_SECTION = 1
DATA_SECTION = 2

# magic0 magic1 userTag fileVersion layoutRules[4] numSections
# contentsSectionIndex contentsSectionOffset contentsClassNameSectionIndex
# contentsClassNameSectionOffset contentsVersion[16] flags maxPredicate
# sectionOffset
_HEADER_FMT = "IIii4Biiiii16sihh"
_SECTION_FMT = "19sB7I"


@dataclass(slots=True)
class HeaderConfig:
    """Per-platform packfile settings handed to the codec on write.

    ``section_offset`` is the only field mutated between writes; the
    container layer sets it per file kind.
    """

    pointer_size: int
    little_endian: bool
    reuse_padding: bool = False
    empty_base_class: bool = True
    file_version: int = FILE_VERSION
    contents_version: str = CONTENTS_VERSION
    user_tag: int = 0
    flags: int = 0
    max_predicate: int = MAX_PREDICATE
    section_offset: int = 0

    @property
    def endian(self) -> str:
        return "<" if self.little_endian else ">"

    @property
    def platform(self) -> str:
        if self.pointer_size == 4 and not self.little_endian:
            return "wiiu"
        if self.pointer_size == 8 and self.little_endian:
            return "nx"
        return "custom"

    @classmethod
    def wiiu(cls) -> "HeaderConfig":
        return cls(pointer_size=4, little_endian=False)

    @classmethod
    def nx(cls) -> "HeaderConfig":
        return cls(pointer_size=8, little_endian=True)

    @classmethod
    def for_platform(cls, nx: bool) -> "HeaderConfig":
        return cls.nx() if nx else cls.wiiu()


@dataclass(slots=True)
class PackfileHeader:
    config: HeaderConfig
    num_sections: int
    contents_section_index: int
    contents_section_offset: int
    contents_class_name_section_index: int
    contents_class_name_section_offset: int

    @property
    def size(self) -> int:
        """Header bytes including the section-offset filler."""
        return HEADER_SIZE + self.config.section_offset

    def to_dict(self) -> Dict[str, Any]:
        cfg = self.config
        return {
            "platform": cfg.platform,
            "pointer_size": cfg.pointer_size,
            "endian": "little" if cfg.little_endian else "big",
            "file_version": cfg.file_version,
            "contents_version": cfg.contents_version,
            "section_offset": cfg.section_offset,
            "num_sections": self.num_sections,
            "contents_section_index": self.contents_section_index,
            "contents_section_offset": self.contents_section_offset,
        }


@dataclass(slots=True)
class SectionHeader:
    tag: str
    absolute_data_start: int
    local_fixups_offset: int
    global_fixups_offset: int
    virtual_fixups_offset: int
    exports_offset: int
    imports_offset: int
    end_offset: int


def pack_header(
    config: HeaderConfig,
    *,
    num_sections: int,
    contents_section_index: int,
    contents_section_offset: int,
    contents_class_name_section_index: int,
    contents_class_name_section_offset: int,
) -> bytes:
    version = config.contents_version.encode("ascii")[:15] + b"\x00"
    version = version.ljust(16, b"\xff")
    out = struct.pack(
        config.endian + _HEADER_FMT,
        MAGIC0,
        MAGIC1,
        config.user_tag,
        config.file_version,
        config.pointer_size,
        1 if config.little_endian else 0,
        1 if config.reuse_padding else 0,
        1 if config.empty_base_class else 0,
        num_sections,
        contents_section_index,
        contents_section_offset,
        contents_class_name_section_index,
        contents_class_name_section_offset,
        version,
        config.flags,
        config.max_predicate,
        config.section_offset,
    )
    if len(out) != HEADER_SIZE:  # pragma: no cover
        raise packfile_error(f"Header size mismatch: {len(out)}")
    return out + b"\xff" * config.section_offset


def _detect_endian(raw: bytes) -> str:
    # Both magics read the same in either byte order; the layout rules byte
    # at offset 17 carries the endianness.
    magic0, magic1 = struct.unpack_from("<II", raw, 0)
    if magic0 != MAGIC0 or magic1 != MAGIC1:
        raise packfile_error("Packfile magic mismatch")
    if raw[17] not in (0, 1):
        raise packfile_error(f"Invalid layout rules endian flag {raw[17]}")
    return "<" if raw[17] else ">"


def parse_header(data: bytes, offset: int = 0) -> PackfileHeader:
    if offset + HEADER_SIZE > len(data):
        raise packfile_error(
            f"Out of range read for header: {offset}+{HEADER_SIZE}>{len(data)}"
        )
    raw = data[offset : offset + HEADER_SIZE]
    endian = _detect_endian(raw)
    (
        _magic0,
        _magic1,
        user_tag,
        file_version,
        pointer_size,
        little_endian,
        reuse_padding,
        empty_base_class,
        num_sections,
        contents_section_index,
        contents_section_offset,
        contents_class_name_section_index,
        contents_class_name_section_offset,
        version,
        flags,
        max_predicate,
        section_offset,
    ) = struct.unpack(endian + _HEADER_FMT, raw)
    if pointer_size not in (4, 8):
        raise packfile_error(f"Unsupported pointer size {pointer_size}")
    if section_offset < 0:
        raise packfile_error(f"Negative section offset {section_offset}")
    config = HeaderConfig(
        pointer_size=pointer_size,
        little_endian=bool(little_endian),
        reuse_padding=bool(reuse_padding),
        empty_base_class=bool(empty_base_class),
        file_version=file_version,
        contents_version=version.split(b"\x00", 1)[0].decode("ascii"),
        user_tag=user_tag,
        flags=flags,
        max_predicate=max_predicate,
        section_offset=section_offset,
    )
    return PackfileHeader(
        config=config,
        num_sections=num_sections,
        contents_section_index=contents_section_index,
        contents_section_offset=contents_section_offset,
        contents_class_name_section_index=contents_class_name_section_index,
        contents_class_name_section_offset=contents_class_name_section_offset,
    )


def section_header_stride(file_version: int) -> int:
    if file_version >= _PADDED_SECTIONS_VERSION:
        return SECTION_HEADER_SIZE + _SECTION_HEADER_PADDING
    return SECTION_HEADER_SIZE


def pack_section_header(
    config: HeaderConfig,
    tag: str,
    absolute_data_start: int,
    offsets: List[int],
) -> bytes:
    """Pack one section header, padding included.

    ``offsets`` holds the six offsets relative to ``absolute_data_start``
    (local, global, virtual, exports, imports, end).
    """
    packed = struct.pack(
        config.endian + _SECTION_FMT,
        tag.encode("ascii"),
        0xFF,
        absolute_data_start,
        *offsets,
    )
    padding = section_header_stride(config.file_version) - len(packed)
    return packed + b"\xff" * padding


def parse_section_header(data: bytes, offset: int, endian: str) -> SectionHeader:
    if offset + SECTION_HEADER_SIZE > len(data):
        raise packfile_error(
            f"Out of range read for section header at {offset}"
        )
    tag, _pad, *fields = struct.unpack_from(endian + _SECTION_FMT, data, offset)
    return SectionHeader(tag.rstrip(b"\x00").decode("ascii", "replace"), *fields)
