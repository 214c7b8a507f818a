"""Text representation of packfile object graphs."""

from .codec import TreeCodec, text_format_for
from .conventions import DEFAULT_CONVENTIONS, TreeConventions

__all__ = [
    "TreeCodec",
    "text_format_for",
    "DEFAULT_CONVENTIONS",
    "TreeConventions",
]
