"""High-level conversion API for hkxconv.

``binary_to_text`` / ``text_to_binary`` are the in-memory pipeline;
``convert_to_text`` / ``convert_to_binary`` add destination resolution and the
no-overwrite file write used by the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from .container import (
    FileKind,
    classify,
    decode_container,
    encode_container,
    extension_to_kind,
    stream_offsets,
)
from .errors import E_UNRESOLVED_KIND, UnresolvedKindError, tree_error
from .logging import get_logger
from .packfile import HeaderConfig, HkObject, RootLevelContainer
from .reporting import get_reporter, task
from .tree import TreeCodec, text_format_for
from .utils import (
    change_extension,
    check_destination_free,
    extension_of,
    safe_read_file,
    write_new_file,
)

__all__ = [
    "ToTextOptions",
    "ToBinaryOptions",
    "ConvertResult",
    "split_container",
    "read_container",
    "binary_to_text",
    "load_roots",
    "resolve_kind",
    "encode_roots",
    "text_to_binary",
    "convert_to_text",
    "convert_to_binary",
]

TEXT_EXTENSION = "json"


@dataclass(slots=True)
class ToTextOptions:
    source: Path
    destination: Path | None = None
    pretty: bool = False


@dataclass(slots=True)
class ToBinaryOptions:
    source: Path
    destination: Path | None = None
    # Platform B preset (8-byte pointers, little-endian) instead of WiiU.
    nx: bool = False


@dataclass(slots=True)
class ConvertResult:
    output_file: Path
    bytes_written: int
    kind: FileKind


def _stream_label(root: HkObject, start: int) -> str:
    return f"{root.class_name}@{start}"


def split_container(data: bytes, path: str | Path) -> List[HkObject]:
    """Split ``data``, the bytes of the file at ``path``, into root objects.

    The extension of ``path`` selects the container kind.
    """
    path = Path(path)
    extension = extension_of(path)
    kind = extension_to_kind(extension)
    with task(
        "decode",
        f"Decode {path.name}",
        total=kind.root_count,
        kind=kind.extension,
        bytes=len(data),
    ) as rep:
        roots = decode_container(data, extension)
        for root, start in zip(roots, stream_offsets(roots)):
            rep.advance("decode", current_item=_stream_label(root, start))
    get_logger().debug(
        "decoded %s: %d root(s) from %d bytes", path.name, len(roots), len(data)
    )
    return roots


def read_container(path: str | Path) -> List[HkObject]:
    """Read a binary container and split it into its root objects."""
    path = Path(path)
    extension_to_kind(extension_of(path))  # fail before reading
    return split_container(safe_read_file(path), path)


def binary_to_text(
    path: str | Path, pretty: bool = False, *, fmt: str = "json"
) -> str:
    roots = read_container(path)
    return TreeCodec().dumps(roots, pretty=pretty, fmt=fmt)


def load_roots(path: str | Path) -> List[HkObject]:
    """Parse a JSON (or YAML, by suffix) document into root objects."""
    path = Path(path)
    raw = safe_read_file(path)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise tree_error(f"{path.name} is not UTF-8 text: {exc}") from exc
    return TreeCodec().loads(text, fmt=text_format_for(path))


def resolve_kind(roots: Sequence[HkObject]) -> FileKind:
    kind = classify(roots)
    if kind is None:
        first = None
        if len(roots) == 1 and isinstance(roots[0], RootLevelContainer):
            first = roots[0].first_class_name()
        raise UnresolvedKindError(
            code=E_UNRESOLVED_KIND,
            message=(
                "Cannot determine container kind "
                f"(roots={len(roots)} first_class={first})"
            ),
            context={"roots": len(roots), "class_name": first},
        )
    return kind


def encode_roots(
    roots: Sequence[HkObject], kind: FileKind, nx: bool = False
) -> bytes:
    header = HeaderConfig.for_platform(nx)
    with task(
        "encode",
        f"Encode {kind.extension} ({header.platform})",
        total=kind.root_count,
        kind=kind.extension,
        streams=kind.root_count,
    ) as rep:
        data = encode_container(roots, kind.extension, header)
        for root, start in zip(roots, stream_offsets(roots)):
            rep.advance(
                "encode",
                current_item=_stream_label(root, start),
                bytes=len(data),
            )
    return data


def text_to_binary(
    path: str | Path, nx: bool = False
) -> Tuple[bytes, FileKind]:
    roots = load_roots(path)
    kind = resolve_kind(roots)
    return encode_roots(roots, kind, nx), kind


def convert_to_text(options: ToTextOptions) -> ConvertResult:
    source = Path(options.source)
    kind = extension_to_kind(extension_of(source))
    destination = (
        Path(options.destination)
        if options.destination is not None
        else change_extension(source, TEXT_EXTENSION)
    )
    check_destination_free(destination)
    text = binary_to_text(
        source, options.pretty, fmt=text_format_for(destination)
    )
    written = write_new_file(destination, text)
    get_reporter().status(
        f"Convert summary: kind={kind.extension} output={destination.name} "
        f"bytes={written}"
    )
    return ConvertResult(destination, written, kind)


def convert_to_binary(options: ToBinaryOptions) -> ConvertResult:
    source = Path(options.source)
    if options.destination is not None:
        check_destination_free(Path(options.destination))
    roots = load_roots(source)
    kind = resolve_kind(roots)
    destination = (
        Path(options.destination)
        if options.destination is not None
        else change_extension(source, kind.extension)
    )
    check_destination_free(destination)
    data = encode_roots(roots, kind, options.nx)
    written = write_new_file(destination, data)
    get_reporter().status(
        f"Convert summary: kind={kind.extension} output={destination.name} "
        f"bytes={written} platform={'nx' if options.nx else 'wiiu'}"
    )
    return ConvertResult(destination, written, kind)
