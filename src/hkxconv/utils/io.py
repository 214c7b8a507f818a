"""IO helpers: whole-file reads and no-overwrite writes.

Operating-system failures surface as ``FileAccessError`` so the CLI can
report them like any other conversion error.
"""

from __future__ import annotations
from pathlib import Path

from ..errors import (
    E_SOURCE_MISSING,
    SourceMissingError,
    destination_exists,
    file_access_error,
)

__all__ = ["safe_read_file", "check_destination_free", "write_new_file"]

MAX_INPUT_SIZE = 512 * 1024 * 1024


def safe_read_file(path: Path, max_size: int = MAX_INPUT_SIZE) -> bytes:
    if not path.is_file():
        raise SourceMissingError(
            code=E_SOURCE_MISSING,
            message=f"File not found: {path}",
            context={"path": str(path)},
        )
    try:
        size = path.stat().st_size
        if size > max_size:
            raise SourceMissingError(
                code=E_SOURCE_MISSING,
                message=f"File too large: {size}>{max_size}",
                context={"path": str(path), "size": size},
            )
        return path.read_bytes()
    except OSError as exc:
        raise file_access_error(path, exc) from exc


def check_destination_free(path: Path) -> None:
    if path.exists():
        raise destination_exists(path)


def write_new_file(path: Path, data: bytes | str) -> int:
    """Create ``path`` and write ``data``; never replaces an existing file.

    Text is written as UTF-8. Returns the number of bytes written. A write
    that fails after creation removes the partial file.
    """
    payload = data.encode("utf-8") if isinstance(data, str) else data
    try:
        fh = open(path, "xb")
    except FileExistsError as exc:
        raise destination_exists(path) from exc
    except OSError as exc:
        raise file_access_error(path, exc) from exc
    try:
        with fh:
            fh.write(payload)
    except OSError as exc:
        path.unlink(missing_ok=True)
        raise file_access_error(path, exc) from exc
    return len(payload)
