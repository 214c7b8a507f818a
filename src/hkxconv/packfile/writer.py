"""Packfile serializer.

Objects are emitted breadth-first from the root into the ``__data__``
section. Each object starts 16-byte aligned and is followed by its
out-of-line payloads (array contents, strings), themselves followed by the
payloads they own. Pointers are recorded as fixups rather than written
inline:

- local fixups: array/string slot -> payload offset (same section)
- global fixups: pointer slot -> (section, object offset)
- virtual fixups: object offset -> class name offset in ``__classnames__``

Output depends only on the object graph and the header config, so writing
the same graph twice yields identical bytes.
"""

from __future__ import annotations

import struct
from collections import deque
from typing import Any, Deque, Dict, List, Tuple

from ..errors import packfile_error
from ..logging import get_logger
from .classes import get_class, get_enum
from .header import (
    CLASSNAMES_SECTION,
    DATA_SECTION,
    HEADER_SIZE,
    SECTION_TAGS,
    TYPES_SECTION,
    HeaderConfig,
    pack_header,
    pack_section_header,
    section_header_stride,
)
from .objects import HkObject
from .schema import (
    SCALAR_FORMATS,
    HkClass,
    Member,
    MemberKind,
    align_up,
    class_layout,
    member_size_align,
)

__all__ = ["write_packfile"]

SECTION_ALIGNMENT = 16
_CLASS_NAME_TAG = 0x09
_FILL = b"\xff"


def _pad(buf: bytearray, alignment: int, fill: bytes = b"\x00") -> None:
    target = align_up(len(buf), alignment)
    if target > len(buf):
        buf.extend(fill * (target - len(buf)))


class _DataSection:
    def __init__(self, config: HeaderConfig):
        self.config = config
        self.endian = config.endian
        self.buf = bytearray()
        self.local_fixups: List[Tuple[int, int]] = []
        self.global_fixups: List[Tuple[int, HkObject]] = []
        self.virtual_fixups: List[Tuple[int, str]] = []
        self._queue: Deque[HkObject] = deque()
        self._queued: Dict[int, HkObject] = {}
        self._offsets: Dict[int, int] = {}

    # Objects ------------------------------------------------------------------
    def add_root(self, root: HkObject) -> None:
        self._enqueue(root)
        while self._queue:
            self._write_object(self._queue.popleft())

    def offset_of(self, obj: HkObject) -> int:
        return self._offsets[id(obj)]

    def _enqueue(self, obj: HkObject) -> None:
        if id(obj) in self._queued:
            return
        self._queued[id(obj)] = obj
        self._queue.append(obj)

    def _write_object(self, obj: HkObject) -> None:
        cls = get_class(obj.class_name)
        _pad(self.buf, SECTION_ALIGNMENT)
        start = len(self.buf)
        self._offsets[id(obj)] = start
        self.virtual_fixups.append((start, cls.name))
        layout = class_layout(cls, self.config.pointer_size)
        self.buf.extend(bytes(layout.size))
        deferred: List[Tuple[Any, ...]] = []
        self._write_members(obj, cls, start, deferred)
        self._flush(deferred)

    def _write_members(
        self, obj: HkObject, cls: HkClass, base: int, deferred: list
    ) -> None:
        if obj.class_name != cls.name:
            raise packfile_error(
                f"Expected embedded {cls.name}, got {obj.class_name}"
            )
        layout = class_layout(cls, self.config.pointer_size)
        for member, offset in zip(cls.members, layout.offsets):
            self._write_value(member, obj[member.name], base + offset, deferred)

    def _write_value(
        self, member: Member, value: Any, pos: int, deferred: list
    ) -> None:
        kind = member.kind
        if kind in SCALAR_FORMATS:
            fmt = self.endian + SCALAR_FORMATS[kind]
            if kind is MemberKind.BOOL:
                value = int(value)
            struct.pack_into(fmt, self.buf, pos, value)
        elif kind is MemberKind.ENUM:
            get_enum(member.target or "")
            fmt = self.endian + SCALAR_FORMATS[member.storage]
            struct.pack_into(fmt, self.buf, pos, value)
        elif kind is MemberKind.STRING:
            if value is not None:
                if "\x00" in value:
                    # strings are stored NUL-terminated
                    raise packfile_error(
                        f"{member.name} contains a NUL character",
                        {"member": member.name, "value": value},
                    )
                deferred.append(("string", pos, value))
        elif kind is MemberKind.POINTER:
            if value is not None:
                self.global_fixups.append((pos, value))
                self._enqueue(value)
        elif kind is MemberKind.ARRAY:
            count = len(value)
            struct.pack_into(
                self.endian + "II",
                self.buf,
                pos + self.config.pointer_size,
                count,
                count | 0x80000000,
            )
            if count:
                deferred.append(("array", pos, member.element, value))
        elif kind is MemberKind.STRUCT:
            self._write_members(
                value, get_class(member.target or ""), pos, deferred
            )
        else:  # pragma: no cover
            raise packfile_error(f"Unhandled member kind {kind}")

    def _flush(self, deferred: list) -> None:
        # Payloads may queue further payloads; drain in FIFO order.
        index = 0
        while index < len(deferred):
            item = deferred[index]
            index += 1
            if item[0] == "string":
                _, slot, text = item
                self.local_fixups.append((slot, len(self.buf)))
                self.buf.extend(text.encode("utf-8") + b"\x00")
                continue
            _, slot, element, values = item
            _pad(self.buf, SECTION_ALIGNMENT)
            start = len(self.buf)
            self.local_fixups.append((slot, start))
            size, _align = member_size_align(element, self.config.pointer_size)
            self.buf.extend(bytes(size * len(values)))
            for i, value in enumerate(values):
                self._write_value(element, value, start + i * size, deferred)
        _pad(self.buf, SECTION_ALIGNMENT)

    # Fixup tables ---------------------------------------------------------------
    def finish(self, class_name_offsets: Dict[str, int]) -> List[int]:
        """Append fixup tables; return the six relative section offsets."""
        _pad(self.buf, SECTION_ALIGNMENT)
        local_off = len(self.buf)
        for src, dst in self.local_fixups:
            self.buf.extend(struct.pack(self.endian + "II", src, dst))
        _pad(self.buf, SECTION_ALIGNMENT, _FILL)
        global_off = len(self.buf)
        for src, target in self.global_fixups:
            self.buf.extend(
                struct.pack(
                    self.endian + "III",
                    src,
                    DATA_SECTION,
                    self.offset_of(target),
                )
            )
        _pad(self.buf, SECTION_ALIGNMENT, _FILL)
        virtual_off = len(self.buf)
        for src, name in self.virtual_fixups:
            self.buf.extend(
                struct.pack(
                    self.endian + "III",
                    src,
                    CLASSNAMES_SECTION,
                    class_name_offsets[name],
                )
            )
        _pad(self.buf, SECTION_ALIGNMENT, _FILL)
        end = len(self.buf)
        return [local_off, global_off, virtual_off, end, end, end]


def _pack_class_names(
    names: List[str], config: HeaderConfig
) -> Tuple[bytes, Dict[str, int]]:
    buf = bytearray()
    offsets: Dict[str, int] = {}
    for name in names:
        if name in offsets:
            continue
        buf.extend(
            struct.pack(
                config.endian + "IB", get_class(name).signature, _CLASS_NAME_TAG
            )
        )
        offsets[name] = len(buf)
        buf.extend(name.encode("ascii") + b"\x00")
    _pad(buf, SECTION_ALIGNMENT, _FILL)
    return bytes(buf), offsets


def write_packfile(root: HkObject, config: HeaderConfig) -> bytes:
    """Serialize ``root`` into a complete packfile for ``config``."""
    logger = get_logger()
    if get_class(root.class_name).is_struct:
        raise packfile_error(
            f"Struct class {root.class_name} cannot be a packfile root"
        )
    data = _DataSection(config)
    try:
        data.add_root(root)
    except (struct.error, TypeError) as exc:
        raise packfile_error(
            f"Value out of range while writing {root.class_name}: {exc}"
        ) from exc
    names = [name for _, name in data.virtual_fixups]
    class_names, name_offsets = _pack_class_names(names, config)
    data_offsets = data.finish(name_offsets)

    header_size = HEADER_SIZE + config.section_offset
    stride = section_header_stride(config.file_version)
    sections_start = header_size + len(SECTION_TAGS) * stride
    classnames_start = align_up(sections_start, SECTION_ALIGNMENT)
    types_start = classnames_start + len(class_names)
    data_start = types_start

    out = bytearray(
        pack_header(
            config,
            num_sections=len(SECTION_TAGS),
            contents_section_index=DATA_SECTION,
            contents_section_offset=0,
            contents_class_name_section_index=CLASSNAMES_SECTION,
            contents_class_name_section_offset=name_offsets[root.class_name],
        )
    )
    out += pack_section_header(
        config,
        SECTION_TAGS[CLASSNAMES_SECTION],
        classnames_start,
        [len(class_names)] * 6,
    )
    out += pack_section_header(
        config, SECTION_TAGS[TYPES_SECTION], types_start, [0] * 6
    )
    out += pack_section_header(
        config, SECTION_TAGS[DATA_SECTION], data_start, data_offsets
    )
    _pad(out, SECTION_ALIGNMENT, _FILL)
    if len(out) != classnames_start:  # pragma: no cover
        raise packfile_error(
            f"Writer position {len(out)} differs from planned {classnames_start}"
        )
    out += class_names
    out += data.buf
    logger.debug(
        "packfile %s: %d bytes (%s, section_offset=%d, objects=%d)",
        root.class_name,
        len(out),
        config.platform,
        config.section_offset,
        len(data.virtual_fixups),
    )
    return bytes(out)
