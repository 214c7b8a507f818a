"""Packfile deserializer.

Resolves the three fixup tables of the contents section up front, then
materialises objects lazily starting at the contents offset. Objects reached
through several pointers are read once and shared.

All positions are relative to the start of ``data``; bytes after the last
section (for example the second stream of a compound file) are ignored.
"""

from __future__ import annotations

import struct
from typing import Any, Dict, List, Tuple

from ..errors import packfile_error
from ..logging import get_logger
from .classes import get_class, get_enum
from .header import (
    HEADER_SIZE,
    PackfileHeader,
    SectionHeader,
    parse_header,
    parse_section_header,
    section_header_stride,
)
from .objects import HkObject, make_object
from .schema import (
    SCALAR_FORMATS,
    HkClass,
    Member,
    MemberKind,
    class_layout,
    member_size_align,
)

__all__ = ["read_packfile", "read_sections"]

_END_OF_TABLE = 0xFFFFFFFF


def read_sections(
    data: bytes, header: PackfileHeader
) -> List[SectionHeader]:
    start = HEADER_SIZE + header.config.section_offset
    stride = section_header_stride(header.config.file_version)
    return [
        parse_section_header(data, start + i * stride, header.config.endian)
        for i in range(header.num_sections)
    ]


def _check_span(data: bytes, start: int, end: int, label: str) -> None:
    if start < 0 or end < start or end > len(data):
        raise packfile_error(
            f"Out of range {label}: {start}..{end} (file size {len(data)})"
        )


def _read_cstring(data: bytes, offset: int) -> str:
    try:
        end = data.index(b"\x00", offset)
    except ValueError:
        raise packfile_error(f"Unterminated string at {offset}") from None
    return data[offset:end].decode("utf-8")


def _read_class_names(
    data: bytes, section: SectionHeader, endian: str
) -> Dict[int, str]:
    start = section.absolute_data_start
    end = start + section.local_fixups_offset
    _check_span(data, start, end, "__classnames__ section")
    names: Dict[int, str] = {}
    pos = start
    while pos + 5 <= end:
        if all(b == 0xFF for b in data[pos:end]):
            break
        _signature, tag = struct.unpack_from(endian + "IB", data, pos)
        if tag != 0x09:
            raise packfile_error(f"Bad class name tag {tag:#x} at {pos}")
        name = _read_cstring(data, pos + 5)
        names[pos + 5 - start] = name
        pos += 5 + len(name.encode("utf-8")) + 1
    return names


def _read_table(
    data: bytes,
    section: SectionHeader,
    begin: int,
    end: int,
    fmt: str,
) -> List[Tuple[int, ...]]:
    start = section.absolute_data_start
    _check_span(data, start + begin, start + end, "fixup table")
    size = struct.calcsize(fmt)
    rows = []
    pos = start + begin
    while pos + size <= start + end:
        row = struct.unpack_from(fmt, data, pos)
        if row[0] == _END_OF_TABLE:
            break
        rows.append(row)
        pos += size
    return rows


class _ObjectReader:
    def __init__(
        self,
        data: bytes,
        header: PackfileHeader,
        sections: List[SectionHeader],
    ):
        self.data = data
        self.config = header.config
        self.endian = header.config.endian
        self.section_index = header.contents_section_index
        if not 0 <= self.section_index < len(sections):
            raise packfile_error(
                f"Contents section index {self.section_index} out of range"
            )
        section = sections[self.section_index]
        self.base = section.absolute_data_start
        names_index = header.contents_class_name_section_index
        if not 0 <= names_index < len(sections):
            raise packfile_error(
                f"Class name section index {names_index} out of range"
            )
        self.names_index = names_index
        class_names = _read_class_names(data, sections[names_index], self.endian)
        self.local = dict(
            _read_table(
                data,
                section,
                section.local_fixups_offset,
                section.global_fixups_offset,
                self.endian + "II",
            )
        )
        self.global_ = {
            src: (sec, dst)
            for src, sec, dst in _read_table(
                data,
                section,
                section.global_fixups_offset,
                section.virtual_fixups_offset,
                self.endian + "III",
            )
        }
        self.virtual: Dict[int, str] = {}
        for src, sec, name_off in _read_table(
            data,
            section,
            section.virtual_fixups_offset,
            section.exports_offset,
            self.endian + "III",
        ):
            if sec != names_index or name_off not in class_names:
                raise packfile_error(
                    f"Virtual fixup at {src} names unknown class "
                    f"offset {name_off}"
                )
            self.virtual[src] = class_names[name_off]
        self.objects: Dict[int, HkObject] = {}

    def read_object(self, offset: int) -> HkObject:
        cached = self.objects.get(offset)
        if cached is not None:
            return cached
        class_name = self.virtual.get(offset)
        if class_name is None:
            raise packfile_error(f"No object at data offset {offset}")
        cls = get_class(class_name)
        obj = make_object(class_name)
        self.objects[offset] = obj
        self._read_members(obj, cls, offset)
        return obj

    def _read_members(self, obj: HkObject, cls: HkClass, base: int) -> None:
        layout = class_layout(cls, self.config.pointer_size)
        _check_span(
            self.data,
            self.base + base,
            self.base + base + layout.size,
            f"{cls.name} at {base}",
        )
        for member, offset in zip(cls.members, layout.offsets):
            obj.members[member.name] = self._read_value(member, base + offset)

    def _read_value(self, member: Member, pos: int) -> Any:
        kind = member.kind
        absolute = self.base + pos
        if kind in SCALAR_FORMATS:
            (value,) = struct.unpack_from(
                self.endian + SCALAR_FORMATS[kind], self.data, absolute
            )
            return bool(value) if kind is MemberKind.BOOL else value
        if kind is MemberKind.ENUM:
            get_enum(member.target or "")
            (value,) = struct.unpack_from(
                self.endian + SCALAR_FORMATS[member.storage],
                self.data,
                absolute,
            )
            return value
        if kind is MemberKind.STRING:
            dst = self.local.get(pos)
            if dst is None:
                return None
            return _read_cstring(self.data, self.base + dst)
        if kind is MemberKind.POINTER:
            fixup = self.global_.get(pos)
            if fixup is None:
                return None
            sec, dst = fixup
            if sec != self.section_index:
                raise packfile_error(
                    f"Pointer at {pos} leaves the contents section ({sec})"
                )
            return self.read_object(dst)
        if kind is MemberKind.ARRAY:
            count, _capacity = struct.unpack_from(
                self.endian + "II",
                self.data,
                absolute + self.config.pointer_size,
            )
            if count == 0:
                return []
            dst = self.local.get(pos)
            if dst is None:
                raise packfile_error(
                    f"Array at {pos} has {count} items but no data fixup"
                )
            element = member.element
            size, _align = member_size_align(element, self.config.pointer_size)
            _check_span(
                self.data,
                self.base + dst,
                self.base + dst + size * count,
                f"array at {pos}",
            )
            return [
                self._read_value(element, dst + i * size) for i in range(count)
            ]
        if kind is MemberKind.STRUCT:
            cls = get_class(member.target or "")
            obj = make_object(cls.name)
            self._read_members(obj, cls, pos)
            return obj
        raise packfile_error(f"Unhandled member kind {kind}")  # pragma: no cover


def read_packfile(data: bytes) -> Tuple[HkObject, PackfileHeader]:
    """Decode the root object of the packfile at the start of ``data``."""
    logger = get_logger()
    try:
        header = parse_header(data)
        sections = read_sections(data, header)
        reader = _ObjectReader(data, header, sections)
        root = reader.read_object(header.contents_section_offset)
    except (struct.error, UnicodeDecodeError, RecursionError) as exc:
        raise packfile_error(f"Corrupt packfile: {exc}") from exc
    logger.debug(
        "read packfile %s (%s, section_offset=%d, objects=%d)",
        root.class_name,
        header.config.platform,
        header.config.section_offset,
        len(reader.objects),
    )
    return root, header
