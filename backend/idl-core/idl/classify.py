"""
Numeric / alias classification.

Pure queries over the type graph. Both the merge/decomposition passes and
any renderer go through these functions so that aliased types are treated
the same everywhere: an ALIAS is always resolved to its ultimate supertype
before its kind or name is inspected.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional, Set

import config
from idl.errors import IDLStructureError
from idl.kinds import Kind

if TYPE_CHECKING:
    from idl.graph import TypeGraph
    from idl.model import Model, Type

# sorted; keep it that way when adding spellings
NUMBER_TYPES = (
    "byte",
    "double",
    "float",
    "int",
    "long",
    "long long",
    "number",
    "octet",
    "short",
    "unsigned int",
    "unsigned long",
    "unsigned long long",
    "unsigned short",
)

_NUMBER_TYPE_SET = frozenset(NUMBER_TYPES)

NON_RENDERABLE_KINDS = (Kind.ALIAS, Kind.SEQUENCE)


# ---------------- Names ----------------

def strip_nullable(name: str) -> str:
    if name.endswith(config.NULLABLE_MARKER):
        return name[: -len(config.NULLABLE_MARKER)]
    return name


def strip_unrestricted(name: str) -> str:
    if name.startswith(config.UNRESTRICTED_PREFIX):
        return name[len(config.UNRESTRICTED_PREFIX):]
    return name


def base_name(name: str) -> str:
    """"unrestricted double?" -> "double" """
    return strip_unrestricted(strip_nullable(name))


def is_number_name(name: str) -> bool:
    return base_name(name) in _NUMBER_TYPE_SET


def is_nullable(t: Optional["Type"]) -> bool:
    return t is not None and t.name.endswith(config.NULLABLE_MARKER)


# ---------------- Alias resolution ----------------

def resolve_alias(graph: "TypeGraph", t: Optional["Type"]) -> Optional["Type"]:
    """
    Follow ALIAS -> supertype until a non-alias type is reached.
    An alias without a target resolves to itself. A cycle, or a chain longer
    than MAX_ALIAS_DEPTH, is a corrupt graph.
    """
    seen: Set[int] = set()
    while t is not None and t.kind == Kind.ALIAS:
        if t.index in seen or len(seen) >= config.MAX_ALIAS_DEPTH:
            raise IDLStructureError(f"Non-terminating alias chain at {t.name!r}")
        seen.add(t.index)
        target = graph.supertype(t)
        if target is None:
            return t
        t = target
    return t


def resolved_kind(graph: "TypeGraph", t: Optional["Type"]) -> Optional[Kind]:
    resolved = resolve_alias(graph, t)
    return resolved.kind if resolved is not None else None


# ---------------- Kind queries ----------------

def is_number(graph: "TypeGraph", t: Optional["Type"]) -> bool:
    resolved = resolve_alias(graph, t)
    if resolved is None:
        return False
    return is_number_name(resolved.name)


def is_union(graph: "TypeGraph", t: Optional["Type"]) -> bool:
    return resolved_kind(graph, t) == Kind.UNION


def is_enum(graph: "TypeGraph", t: Optional["Type"]) -> bool:
    return resolved_kind(graph, t) == Kind.ENUM


def is_array(graph: "TypeGraph", t: Optional["Type"]) -> bool:
    return resolved_kind(graph, t) == Kind.ARRAY


def is_promise(graph: "TypeGraph", t: Optional["Type"]) -> bool:
    """A PROMISE, or anything whose supertype chain reaches one."""
    seen: Set[int] = set()
    while t is not None and t.index not in seen:
        if t.kind == Kind.PROMISE:
            return True
        seen.add(t.index)
        t = graph.supertype(t)
    return False


def is_renderable(t: "Type") -> bool:
    """ALIAS and SEQUENCE types only exist to resolve other types."""
    return t.kind not in NON_RENDERABLE_KINDS


def renderable_types(model: "Model") -> List["Type"]:
    return [t for t in model.types() if is_renderable(t)]


# ---------------- Unions ----------------

def union_members(graph: "TypeGraph", union: "Type") -> List["Type"]:
    """
    Leaf member types of a union in declared order.
    Nested unions (directly or through aliases) are flattened; a member that
    appears twice is kept once. A nullable union ("U?") yields the members
    of U. A union reachable from itself is corrupt.
    """
    out: List["Type"] = []
    seen: Set[int] = set()

    def walk(u: "Type", path: Set[int]) -> None:
        if u.index in path:
            raise IDLStructureError(f"Union {u.name!r} contains itself")
        path = path | {u.index}
        members = graph.types(u)
        if not members:
            # "U?" carries no members of its own; they live on its base union
            base = resolve_alias(graph, graph.supertype(u))
            if base is not None and base.kind == Kind.UNION:
                walk(base, path)
                return
        for member in members:
            resolved = resolve_alias(graph, member)
            if resolved is not None and resolved.kind == Kind.UNION:
                walk(resolved, path)
                continue
            if member.index not in seen:
                seen.add(member.index)
                out.append(member)

    root = resolve_alias(graph, union)
    if root is None or root.kind != Kind.UNION:
        return []
    walk(root, set())
    return out


def union_parameters(graph: "TypeGraph", params: Iterable) -> list:
    """Parameters (in order) whose type is a union."""
    return [p for p in params if p.type is not None and is_union(graph, p.type)]
