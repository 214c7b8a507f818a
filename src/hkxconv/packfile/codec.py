"""Packfile codec: the byte-level collaborator of the container layer."""

from __future__ import annotations

from .header import HeaderConfig, PackfileHeader, parse_header
from .objects import HkObject
from .reader import read_packfile
from .writer import write_packfile

__all__ = ["PackfileCodec"]


class PackfileCodec:
    """Decode a packfile into its root object and encode it back.

    Stateless; ``encode`` is deterministic for a given root and header.
    """

    def decode(self, data: bytes) -> HkObject:
        root, _header = read_packfile(data)
        return root

    def encode(self, root: HkObject, header: HeaderConfig) -> bytes:
        return write_packfile(root, header)

    def read_header(self, data: bytes) -> PackfileHeader:
        return parse_header(data)
