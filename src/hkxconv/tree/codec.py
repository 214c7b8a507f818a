"""Object graph <-> structured text (JSON or YAML).

Text layout: a top-level array with one element per root. Every object
reached through a pointer (roots included) carries its class name under the
conventions' ``type_key``; embedded structs do not, their class is implied by
the declaring member. Enum members are written by name.

Object identity survives the text form. Within one root, an object reached
through several pointers is written in full at its first occurrence (in
member order) with an ``id_key`` number, and as ``{ref_key: n}`` everywhere
after, reference cycles included. Reading resolves those back to one shared
:class:`HkObject`, so the writer emits it once.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set

import yaml

from ..errors import tree_error
from ..packfile.classes import get_class, get_enum, is_registered
from ..packfile.objects import HkObject, make_object
from ..packfile.schema import SCALAR_FORMATS, Member, MemberKind
from .conventions import DEFAULT_CONVENTIONS, TreeConventions

__all__ = ["TreeCodec", "text_format_for"]

_YAML_SUFFIXES = {".yaml", ".yml"}


_INT_RANGES = {}
for _fmt in ("B", "b", "H", "h", "I", "i", "Q", "q"):
    _bits = {"B": 8, "H": 16, "I": 32, "Q": 64}[_fmt.upper()]
    _INT_RANGES[_fmt] = (
        (-(1 << (_bits - 1)), (1 << (_bits - 1)) - 1)
        if _fmt.islower()
        else (0, (1 << _bits) - 1)
    )


def text_format_for(path: str | Path) -> str:
    return "yaml" if Path(path).suffix.lower() in _YAML_SUFFIXES else "json"


def _check_int(raw: Any, fmt: str, path: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise tree_error(f"expected integer, got {raw!r}", path)
    low, high = _INT_RANGES[fmt]
    if not low <= raw <= high:
        raise tree_error(f"{raw} outside [{low}, {high}]", path)
    return raw


def _valid_ident(value: Any) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def _pointed_to(member: Member, value: Any) -> Iterator[HkObject]:
    kind = member.kind
    if kind is MemberKind.POINTER:
        if value is not None:
            yield value
    elif kind is MemberKind.STRUCT:
        yield from _pointers_of(value)
    elif kind is MemberKind.ARRAY:
        for item in value:
            yield from _pointed_to(member.element, item)


def _pointers_of(obj: HkObject) -> Iterator[HkObject]:
    member_map = obj.hk_class.member_map
    for name, value in obj.items():
        member = member_map.get(name)
        if member is not None:
            yield from _pointed_to(member, value)


def _shared_objects(root: HkObject) -> Set[int]:
    """Ids of the objects under ``root`` reached by more than one pointer.

    The root counts as referenced once, so a cycle back to it marks it too.
    """
    counts = {id(root): 1}
    pending = [root]
    while pending:
        for target in _pointers_of(pending.pop()):
            key = id(target)
            counts[key] = counts.get(key, 0) + 1
            if counts[key] == 1:
                pending.append(target)
    return {key for key, n in counts.items() if n > 1}


class _Identities:
    __slots__ = ("shared", "assigned")

    def __init__(self, shared: Set[int]):
        self.shared = shared
        self.assigned: Dict[int, int] = {}


class TreeCodec:
    def __init__(self, conventions: Optional[TreeConventions] = None):
        self.conventions = conventions or DEFAULT_CONVENTIONS
        self._text_names: Dict[str, Dict[str, Member]] = {}

    # Graph -> tree
    def to_tree(self, roots: Sequence[HkObject]) -> List[Dict[str, Any]]:
        trees = []
        for root in roots:
            ids = _Identities(_shared_objects(root))
            trees.append(self._object_to_tree(root, True, ids))
        return trees

    def _object_to_tree(
        self, obj: HkObject, tagged: bool, ids: _Identities
    ) -> Dict[str, Any]:
        conv = self.conventions
        out: Dict[str, Any] = {}
        if tagged:
            key = id(obj)
            if key in ids.assigned:
                return {conv.ref_key: ids.assigned[key]}
            out[conv.type_key] = obj.class_name
            if key in ids.shared:
                ids.assigned[key] = len(ids.assigned) + 1
                out[conv.id_key] = ids.assigned[key]
        cls = obj.hk_class
        for name, value in obj.items():
            if name in conv.suppressed:
                continue
            member = cls.member_map.get(name)
            out[conv.to_text_name(name)] = (
                value
                if member is None
                else self._value_to_tree(member, value, ids)
            )
        return out

    def _value_to_tree(
        self, member: Member, value: Any, ids: _Identities
    ) -> Any:
        kind = member.kind
        if kind is MemberKind.REAL:
            return float(value)
        if kind is MemberKind.BOOL:
            return bool(value)
        if kind is MemberKind.ENUM:
            name = get_enum(member.target or "").name_of(value)
            return name if name is not None else value
        if kind is MemberKind.POINTER:
            if value is None:
                return None
            return self._object_to_tree(value, True, ids)
        if kind is MemberKind.STRUCT:
            return self._object_to_tree(value, False, ids)
        if kind is MemberKind.ARRAY:
            return [
                self._value_to_tree(member.element, item, ids)
                for item in value
            ]
        return value

    # Tree -> graph
    def from_tree(self, tree: Any) -> List[HkObject]:
        if not isinstance(tree, list):
            raise tree_error("top level must be an array of root objects")
        return [
            self._object_from_tree(item, None, f"[{i}]", {})
            for i, item in enumerate(tree)
        ]

    def _members_by_text_name(self, class_name: str) -> Dict[str, Member]:
        cached = self._text_names.get(class_name)
        if cached is None:
            cached = {
                self.conventions.to_text_name(m.name): m
                for m in get_class(class_name).members
            }
            self._text_names[class_name] = cached
        return cached

    def _resolve_ref(
        self, raw: Dict[str, Any], refs: Dict[Any, HkObject], path: str
    ) -> HkObject:
        ref_key = self.conventions.ref_key
        if len(raw) != 1:
            raise tree_error(f"{ref_key} cannot carry other fields", path)
        ident = raw[ref_key]
        target = refs.get(ident) if _valid_ident(ident) else None
        if target is None:
            # ids are assigned at first occurrence, so forward refs are unknown
            raise tree_error(f"unknown {ref_key} {ident!r}", path)
        return target

    def _object_from_tree(
        self,
        raw: Any,
        declared: Optional[str],
        path: str,
        refs: Dict[Any, HkObject],
        *,
        embedded: bool = False,
    ) -> HkObject:
        conv = self.conventions
        if not isinstance(raw, dict):
            raise tree_error(f"expected object, got {type(raw).__name__}", path)
        if not embedded and conv.ref_key in raw:
            return self._resolve_ref(raw, refs, path)
        class_name = raw.get(conv.type_key, declared)
        if not isinstance(class_name, str):
            raise tree_error(f"missing {conv.type_key}", path)
        if not is_registered(class_name):
            raise tree_error(f"unknown class {class_name!r}", path)
        if embedded and class_name != declared:
            raise tree_error(
                f"embedded {declared} cannot hold {class_name}", path
            )
        obj = make_object(class_name)
        skipped = {conv.type_key} if embedded else {conv.type_key, conv.id_key}
        if not embedded and conv.id_key in raw:
            ident = raw[conv.id_key]
            if not _valid_ident(ident):
                raise tree_error(
                    f"{conv.id_key} must be an integer or a string", path
                )
            if ident in refs:
                raise tree_error(f"duplicate {conv.id_key} {ident!r}", path)
            refs[ident] = obj
        by_text = self._members_by_text_name(class_name)
        for key, value in raw.items():
            if key in skipped or key in conv.suppressed:
                continue
            member = by_text.get(key)
            if member is None:
                raise tree_error(f"{class_name} has no field {key!r}", path)
            obj[member.name] = self._value_from_tree(
                member, value, f"{path}.{key}", refs
            )
        return obj

    def _value_from_tree(
        self, member: Member, raw: Any, path: str, refs: Dict[Any, HkObject]
    ) -> Any:
        kind = member.kind
        if kind is MemberKind.BOOL:
            if not isinstance(raw, bool):
                raise tree_error(f"expected boolean, got {raw!r}", path)
            return raw
        if kind is MemberKind.REAL:
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise tree_error(f"expected number, got {raw!r}", path)
            return float(raw)
        if kind in SCALAR_FORMATS:
            return _check_int(raw, SCALAR_FORMATS[kind], path)
        if kind is MemberKind.ENUM:
            enum = get_enum(member.target or "")
            if isinstance(raw, str):
                value = enum.value_of(raw)
                if value is None:
                    raise tree_error(f"{raw!r} is not a {enum.name}", path)
                return value
            return _check_int(raw, SCALAR_FORMATS[member.storage], path)
        if kind is MemberKind.STRING:
            if raw is not None and not isinstance(raw, str):
                raise tree_error(f"expected string, got {raw!r}", path)
            if raw is not None and "\x00" in raw:
                raise tree_error("string contains a NUL character", path)
            return raw
        if kind is MemberKind.POINTER:
            if raw is None:
                return None
            return self._object_from_tree(raw, member.target, path, refs)
        if kind is MemberKind.STRUCT:
            return self._object_from_tree(
                raw, member.target, path, refs, embedded=True
            )
        if kind is MemberKind.ARRAY:
            if not isinstance(raw, list):
                raise tree_error(f"expected array, got {raw!r}", path)
            return [
                self._value_from_tree(
                    member.element, item, f"{path}[{i}]", refs
                )
                for i, item in enumerate(raw)
            ]
        raise tree_error(f"unhandled member kind {kind}", path)

    # Text
    def dumps(
        self,
        roots: Sequence[HkObject],
        *,
        pretty: bool = False,
        fmt: str = "json",
    ) -> str:
        tree = self.to_tree(roots)
        if fmt == "yaml":
            return yaml.safe_dump(
                tree,
                sort_keys=False,
                allow_unicode=True,
                default_flow_style=not pretty,
            )
        if pretty:
            return json.dumps(tree, indent=2, ensure_ascii=False)
        return json.dumps(tree, separators=(",", ":"), ensure_ascii=False)

    def loads(self, text: str, *, fmt: str = "json") -> List[HkObject]:
        try:
            tree = yaml.safe_load(text) if fmt == "yaml" else json.loads(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise tree_error(f"cannot parse {fmt}: {exc}") from exc
        return self.from_tree(tree)
