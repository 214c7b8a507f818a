"""Container layer: file kinds and the one/two stream container codec."""

from .codec import (
    CONTAINER_SECTION_OFFSET,
    DESCRIPTOR_SECTION_OFFSET,
    Codec,
    decode_container,
    encode_container,
    stream_offsets,
)
from .kinds import (
    SIMPLE_KINDS,
    FileKind,
    classify,
    extension_to_kind,
    guess_extension,
    kind_to_extension,
    kind_to_offset,
)

__all__ = [
    "CONTAINER_SECTION_OFFSET",
    "DESCRIPTOR_SECTION_OFFSET",
    "Codec",
    "decode_container",
    "encode_container",
    "stream_offsets",
    "SIMPLE_KINDS",
    "FileKind",
    "classify",
    "extension_to_kind",
    "guess_extension",
    "kind_to_extension",
    "kind_to_offset",
]
