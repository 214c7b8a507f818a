from .io import check_destination_free, safe_read_file, write_new_file
from .paths import change_extension, extension_of

__all__ = [
    "check_destination_free",
    "safe_read_file",
    "write_new_file",
    "change_extension",
    "extension_of",
]
