"""Binary container inspection.

Public functions:
- inspect_container(path) -> dict
- describe_stream(root, header, start) -> dict
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List

from .api import split_container
from .container import extension_to_kind, stream_offsets
from .packfile import (
    HkObject,
    PackfileCodec,
    PackfileHeader,
    RootLevelContainer,
    StaticCompoundInfo,
)
from .utils import extension_of, safe_read_file

__all__ = ["NamedVariant", "describe_stream", "inspect_container"]


@dataclass(slots=True)
class NamedVariant:
    name: str | None
    class_name: str | None


def describe_stream(
    root: HkObject, header: PackfileHeader, start: int
) -> Dict[str, Any]:
    info: Dict[str, Any] = {
        "offset": start,
        "root_class": root.class_name,
        "header": header.to_dict(),
    }
    if isinstance(root, RootLevelContainer):
        info["named_variants"] = [
            asdict(NamedVariant(v["m_name"], v["m_className"]))
            for v in root.named_variants
        ]
    elif isinstance(root, StaticCompoundInfo):
        info["descriptor"] = {
            "offset": root.offset,
            "actors": len(root["m_ActorInfo"]),
            "shapes": len(root["m_ShapeInfo"]),
        }
    return info


def inspect_container(path: str | Path) -> Dict[str, Any]:
    path = Path(path)
    extension_to_kind(extension_of(path))
    data = safe_read_file(path)
    roots = split_container(data, path)
    codec = PackfileCodec()
    streams: List[Dict[str, Any]] = []
    for root, start in zip(roots, stream_offsets(roots)):
        header = codec.read_header(data[start:])
        streams.append(describe_stream(root, header, start))
    return {
        "file": path.name,
        "extension": extension_of(path).lower(),
        "file_size": len(data),
        "streams": streams,
    }
