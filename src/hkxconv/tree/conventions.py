"""Naming rules applied at the object graph / text boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet

__all__ = ["TreeConventions", "DEFAULT_CONVENTIONS"]


@dataclass(frozen=True, slots=True)
class TreeConventions:
    """How member names and object types appear in text.

    ``prefix`` is stripped from member names on output and restored on input.
    Names in ``suppressed`` are computed values: never emitted and ignored
    when present in input. ``type_key`` carries the class name of every
    pointed-to object. An object reached through more than one pointer is
    written in full once, tagged with ``id_key``; every later pointer to it
    is written as ``{ref_key: id}``.
    """

    prefix: str = "m_"
    suppressed: FrozenSet[str] = field(
        default_factory=lambda: frozenset({"Signature"})
    )
    type_key: str = "$type"
    id_key: str = "$id"
    ref_key: str = "$ref"

    def to_text_name(self, name: str) -> str:
        if self.prefix and name.startswith(self.prefix):
            return name[len(self.prefix) :]
        return name


DEFAULT_CONVENTIONS = TreeConventions()
