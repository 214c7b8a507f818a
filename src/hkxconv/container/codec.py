"""Container-level read/write on top of a packfile codec.

A simple container is one packfile. A compound (``hksc``) container is two
packfiles written back to back::

    +-------------------------------+  0
    | StaticCompoundInfo packfile   |  section_offset 0
    |   m_Offset = len(this stream) |
    +-------------------------------+  m_Offset
    | hkRootLevelContainer packfile |  section_offset 16
    +-------------------------------+

``m_Offset`` is part of the first stream, so its value is only known after
that stream has been serialized once. The writer therefore encodes the
descriptor twice: a measuring pass, then a final pass with the measured
length patched in. The field is fixed width, so both passes must produce the
same length.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Type

from ..errors import (
    E_CARDINALITY,
    E_MALFORMED,
    E_OFFSET_CONVERGENCE,
    E_TYPE_MISMATCH,
    CardinalityMismatchError,
    HkxError,
    MalformedContainerError,
    OffsetConvergenceError,
    TypeMismatchError,
)
from ..logging import get_logger
from ..packfile.codec import PackfileCodec
from ..packfile.header import HeaderConfig
from ..packfile.objects import HkObject, RootLevelContainer, StaticCompoundInfo
from .kinds import extension_to_kind, kind_to_offset

__all__ = [
    "Codec",
    "DESCRIPTOR_SECTION_OFFSET",
    "CONTAINER_SECTION_OFFSET",
    "decode_container",
    "encode_container",
    "stream_offsets",
]

DESCRIPTOR_SECTION_OFFSET = 0
CONTAINER_SECTION_OFFSET = 16


class Codec(Protocol):
    def decode(self, data: bytes) -> HkObject: ...

    def encode(self, root: HkObject, header: HeaderConfig) -> bytes: ...


def _decode_root(
    codec: Codec,
    data: bytes,
    expected: Type[HkObject],
    position: str,
) -> HkObject:
    try:
        root = codec.decode(data)
    except HkxError as exc:
        raise MalformedContainerError(
            code=E_MALFORMED,
            message=f"Cannot decode {position}: {exc.message}",
            context={"position": position, "cause": exc.code},
        ) from exc
    _expect_variant(root, expected, position)
    return root


def _encode_root(
    codec: Codec, root: HkObject, header: HeaderConfig, position: str
) -> bytes:
    try:
        return codec.encode(root, header)
    except HkxError as exc:
        raise MalformedContainerError(
            code=E_MALFORMED,
            message=f"Cannot encode {position}: {exc.message}",
            context={"position": position, "cause": exc.code},
        ) from exc


def _expect_variant(
    root: HkObject, expected: Type[HkObject], position: str
) -> None:
    if not isinstance(root, expected):
        found = getattr(root, "class_name", type(root).__name__)
        raise TypeMismatchError(
            code=E_TYPE_MISMATCH,
            message=(
                f"Expected {expected.__name__} as {position}, "
                f"got {found}"
            ),
            context={"position": position, "class": found},
        )


def decode_container(
    data: bytes, extension: str, codec: Optional[Codec] = None
) -> List[HkObject]:
    """Split ``data`` into its root objects according to ``extension``."""
    codec = codec or PackfileCodec()
    kind = extension_to_kind(extension)
    if kind.is_compound:
        descriptor = _decode_root(
            codec, data, StaticCompoundInfo, "compound descriptor"
        )
        offset = descriptor.offset  # type: ignore[attr-defined]
        get_logger().debug(
            "compound container stream at %d of %d bytes", offset, len(data)
        )
        if not 0 < offset < len(data):
            raise MalformedContainerError(
                code=E_MALFORMED,
                message=(
                    f"Compound descriptor offset {offset} is outside "
                    f"the {len(data)}-byte file"
                ),
                context={
                    "position": "compound container",
                    "offset": offset,
                    "size": len(data),
                },
            )
        container = _decode_root(
            codec, data[offset:], RootLevelContainer, "compound container"
        )
        return [descriptor, container]
    return [_decode_root(codec, data, RootLevelContainer, "root container")]


def encode_container(
    roots: Sequence[HkObject],
    extension: str,
    header: HeaderConfig,
    codec: Optional[Codec] = None,
) -> bytes:
    """Serialize ``roots`` into one container buffer.

    Mutates ``header.section_offset`` and, for compound files, the
    descriptor's ``m_Offset``.
    """
    codec = codec or PackfileCodec()
    kind = extension_to_kind(extension)
    if len(roots) != kind.root_count:
        raise CardinalityMismatchError(
            code=E_CARDINALITY,
            message=(
                f"{kind.extension} needs {kind.root_count} root(s), "
                f"got {len(roots)}"
            ),
            context={"extension": kind.extension, "roots": len(roots)},
        )
    if kind.is_compound:
        return _encode_compound(roots, header, codec)
    _expect_variant(roots[0], RootLevelContainer, "root container")
    header.section_offset = kind_to_offset(kind)
    return _encode_root(codec, roots[0], header, "root container")


def _encode_compound(
    roots: Sequence[HkObject], header: HeaderConfig, codec: Codec
) -> bytes:
    descriptor, container = roots
    _expect_variant(descriptor, StaticCompoundInfo, "compound descriptor")
    _expect_variant(container, RootLevelContainer, "compound container")

    header.section_offset = DESCRIPTOR_SECTION_OFFSET
    probe = _encode_root(codec, descriptor, header, "compound descriptor")
    descriptor.offset = len(probe)  # type: ignore[attr-defined]
    first = _encode_root(codec, descriptor, header, "compound descriptor")
    if len(first) != len(probe):
        raise OffsetConvergenceError(
            code=E_OFFSET_CONVERGENCE,
            message=(
                "Descriptor length changed after patching m_Offset: "
                f"{len(probe)} -> {len(first)}"
            ),
            context={"probe": len(probe), "final": len(first)},
        )

    header.section_offset = CONTAINER_SECTION_OFFSET
    second = _encode_root(codec, container, header, "compound container")
    get_logger().debug(
        "compound container: descriptor=%d container=%d bytes",
        len(first),
        len(second),
    )
    return first + second


def stream_offsets(roots: Sequence[HkObject]) -> List[int]:
    """Start offset of each stream in a container holding ``roots``."""
    if len(roots) == 2 and isinstance(roots[0], StaticCompoundInfo):
        return [0, roots[0].offset]
    return [0]
