"""Path utilities (extension handling)."""

from __future__ import annotations
from pathlib import Path
from typing import Tuple

__all__ = ["change_extension", "extension_of"]


def _split_name(name: str) -> Tuple[str, str]:
    # ".hkrb" is all extension, matching extension_of
    stem, dot, ext = name.rpartition(".")
    return (stem, ext) if dot else (name, "")


def extension_of(path: Path) -> str:
    """Final suffix of ``path`` without the dot; empty when there is none."""
    return _split_name(path.name)[1]


def change_extension(path: Path, extension: str) -> Path:
    stem, _ = _split_name(path.name)
    return path.with_name(f"{stem}.{extension.lstrip('.')}")
