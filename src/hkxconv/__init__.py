"""hkxconv: Breath of the Wild Havok packfile <-> JSON converter."""

from .api import (
    ConvertResult,
    ToBinaryOptions,
    ToTextOptions,
    binary_to_text,
    convert_to_binary,
    convert_to_text,
    text_to_binary,
)
from .errors import HkxError

__version__ = "0.1.0"

__all__ = [
    "ConvertResult",
    "ToBinaryOptions",
    "ToTextOptions",
    "binary_to_text",
    "convert_to_binary",
    "convert_to_text",
    "text_to_binary",
    "HkxError",
    "__version__",
]
