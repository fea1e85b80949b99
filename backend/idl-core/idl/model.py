from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import config
from idl import classify
from idl.errors import FrozenModelError
from idl.graph import TypeGraph
from idl.kinds import Kind, Modifier, Special, modifier_names

logger = logging.getLogger(__name__)


# ---------------- Members ----------------

@dataclass(eq=False)
class Member:
    name: Optional[str]
    type: Optional["Type"] = None    # None reads as void
    modifiers: Modifier = Modifier.NONE

    def has_modifier(self, flag: Modifier) -> bool:
        return bool(self.modifiers & flag)

    @property
    def type_name(self) -> str:
        return self.type.name if self.type is not None else config.VOID_TYPE


@dataclass(eq=False)
class Parameter(Member):

    @property
    def variadic(self) -> bool:
        return self.has_modifier(Modifier.VARIADIC)

    @property
    def optional(self) -> bool:
        return self.has_modifier(Modifier.OPTIONAL)


@dataclass(eq=False)
class Property(Member):
    initial_value: Optional[str] = None   # constants only


def merge_parameter(model: "Model", p1: Optional[Parameter], p2: Optional[Parameter]) -> Parameter:
    """
    Merge two declarations of the same parameter position.
      - one side missing: keep the other side, marked OPTIONAL
      - unrelated names (neither contains the other): "name1_name2"
      - different Type objects: widen to "any"
    """
    if p1 is None or p2 is None:
        present = p1 if p1 is not None else p2
        return Parameter(present.name, present.type, present.modifiers | Modifier.OPTIONAL)

    n1, n2 = p1.name or "", p2.name or ""
    name = p1.name or p2.name
    if n1 and n2 and n1 not in n2 and n2 not in n1:
        name = f"{n1}_{n2}"

    t = p1.type
    if t is not p2.type:
        t = model.get_type(config.ANY_TYPE)
    return Parameter(name, t, p1.modifiers | p2.modifiers)


def merge_parameters(
    model: "Model",
    left: List[Parameter],
    right: List[Parameter],
) -> List[Parameter]:
    merged: List[Parameter] = []
    for i in range(max(len(left), len(right))):
        p1 = left[i] if i < len(left) else None
        p2 = right[i] if i < len(right) else None
        merged.append(merge_parameter(model, p1, p2))
    return merged


@dataclass(eq=False)
class Operation(Member):
    """
    An operation and its overload table.

    The operation a Type stores under a name is the primary variant; every
    other signature-distinct variant lives in `overloads`, keyed by its
    signature. The primary's own signature is never a key of the table.
    """
    parameters: List[Parameter] = field(default_factory=list)
    special: Special = Special.NONE
    body: Optional[str] = None            # synthetic operations only
    overloads: Dict[str, "Operation"] = field(default_factory=dict, repr=False)

    def add_parameter(self, param: Parameter) -> Parameter:
        self.parameters.append(param)
        return param

    def signature(self) -> str:
        if self.name == config.MAIN_OPERATION:
            return config.MAIN_OPERATION
        return f"{self.name}({','.join(p.type_name for p in self.parameters)})"

    def __str__(self) -> str:
        if self.name == config.MAIN_OPERATION:
            return config.MAIN_OPERATION
        if len(self.parameters) == 1:
            inner = self.parameters[0].type.name if self.parameters[0].type is not None else "?"
        elif len(self.parameters) > 1:
            inner = "…"
        else:
            inner = ""
        return f"{self.name}({inner})"

    def variants(self) -> List["Operation"]:
        return [self, *self.overloads.values()]

    def find_variant(self, sig: str) -> Optional["Operation"]:
        if self.signature() == sig:
            return self
        return self.overloads.get(sig)

    def detached(self) -> "Operation":
        """Copy of this variant without its overload table."""
        return Operation(
            self.name,
            self.type,
            self.modifiers,
            parameters=list(self.parameters),
            special=self.special,
            body=self.body,
        )

    # ---------------- Merging ----------------

    def merge(self, model: "Model", other: "Operation") -> None:
        """Fold every variant of `other` into this operation's table."""
        for variant in other.variants():
            self._merge_variant(model, variant.detached())

    def _merge_variant(self, model: "Model", other: "Operation") -> None:
        sig = other.signature()
        existing = self.find_variant(sig)
        if existing is None:
            self.overloads[sig] = other
            return

        # a getter's key parameter is never rewritten by cross-source merging
        if self.special == Special.GETTER:
            return

        existing.parameters = merge_parameters(model, existing.parameters, other.parameters)
        if existing.signature() != sig:
            self._rekey(model, existing, sig)

    def _rekey(self, model: "Model", variant: "Operation", old_sig: str) -> None:
        if variant is self:
            clash = self.overloads.pop(self.signature(), None)
            if clash is not None:
                self._merge_variant(model, clash)
            return
        del self.overloads[old_sig]
        self._merge_variant(model, variant)


# ---------------- Types ----------------

@dataclass(eq=False)
class Type:
    name: str
    kind: Kind
    library: Optional[str] = None
    index: int = -1
    implicit: bool = False                # only ever referenced, never declared
    properties: List[Property] = field(default_factory=list)
    operations: Dict[str, Operation] = field(default_factory=dict)
    constructors: List[Operation] = field(default_factory=list)
    enum_literals: List[str] = field(default_factory=list)

    def __repr__(self) -> str:
        kind = getattr(self.kind, "name", self.kind)
        return f"Type(name={self.name!r}, kind={kind}, index={self.index})"

    def add_property(self, prop: Property) -> Property:
        self.properties.append(prop)
        return prop

    def add_operation(self, model: "Model", op: Operation) -> Operation:
        """
        Register `op` under its name, or fold it into the operation already
        registered there. Returns the primary operation for that name.
        """
        existing = self.operations.get(op.name)
        if existing is None:
            self.operations[op.name] = op
            return op
        if existing is not op:
            existing.merge(model, op)
        return existing

    def remove_operation(self, variant: Operation) -> None:
        """
        Drop one variant. Removing a primary promotes its first overload so
        the remaining variants stay reachable.
        """
        primary = self.operations.get(variant.name)
        if primary is None:
            return
        if variant is not primary:
            for sig, op in list(primary.overloads.items()):
                if op is variant:
                    del primary.overloads[sig]
            return

        rest = [v for op in primary.overloads.values() for v in op.variants()]
        primary.overloads = {}
        if not rest:
            del self.operations[variant.name]
            return
        promoted = rest[0]
        promoted.overloads = {op.signature(): op for op in rest[1:]}
        self.operations[variant.name] = promoted

    def own_operations(self) -> List[Operation]:
        return list(self.operations.values())

    def all_operations(self) -> Iterator[Operation]:
        """Every variant of every operation, then every constructor variant."""
        for op in self.operations.values():
            yield from op.variants()
        for ctor in self.constructors:
            yield from ctor.variants()

    def add_constructor(self, ctor: Operation) -> Operation:
        ctor.modifiers |= Modifier.CONSTRUCTOR
        self.constructors.append(ctor)
        return ctor

    def add_enum_literal(self, literal: str) -> bool:
        if literal in self.enum_literals:
            return False
        self.enum_literals.append(literal)
        return True


# ---------------- Libraries ----------------

@dataclass(eq=False)
class Library:
    """Types one source contributed, before merge."""
    name: str
    urls: List[str] = field(default_factory=list)
    tutorials: List[Tuple[str, str]] = field(default_factory=list)
    types: List[Type] = field(default_factory=list, repr=False)

    def add_type(self, t: Type) -> Type:
        self.types.append(t)
        return t

    def add_tutorial(self, title: str, url: str) -> "Library":
        self.tutorials.append((title, url))
        return self


# ---------------- Model ----------------

class Model:
    """
    Context object threaded through scan -> merge -> decompose.

    Owns the Libraries (in registration order), the type arena, the
    canonical name -> Type registry and the accumulated warnings.
    """

    def __init__(self) -> None:
        self.graph = TypeGraph()
        self.libraries: List[Library] = []
        self._registry: Dict[str, Type] = {}
        self._warnings: List[Dict[str, str]] = []
        self.frozen = False

    # ---------------- Mutation guard ----------------

    def check_mutable(self) -> None:
        if self.frozen:
            raise FrozenModelError("Model is frozen; no further structural changes")

    def freeze(self) -> None:
        self.frozen = True

    # ---------------- Libraries / declarations ----------------

    def add_library(
        self,
        name: str,
        urls: Optional[List[str]] = None,
        tutorials: Optional[List[Tuple[str, str]]] = None,
    ) -> Library:
        self.check_mutable()
        library = Library(name, list(urls or []), list(tutorials or []))
        self.libraries.append(library)
        return library

    def declare(
        self,
        library: Optional[Library],
        name: str,
        kind: Kind,
        supertype: Optional[Type] = None,
    ) -> Type:
        """Create a new (not yet canonical) Type in the arena."""
        self.check_mutable()
        t = Type(name, kind, library=library.name if library is not None else None)
        self.graph.add_type(t)
        if library is not None:
            library.add_type(t)
        if supertype is not None:
            self.graph.set_supertype(t, supertype)
        return t

    # ---------------- Registry ----------------

    def register(self, t: Type) -> Type:
        self.check_mutable()
        current = self._registry.get(t.name)
        if current is not None and current is not t:
            raise ValueError(f"Type {t.name!r} is already registered")
        self._registry[t.name] = t
        return t

    def canonical(self, name: str) -> Optional[Type]:
        return self._registry.get(name)

    def get_type(self, name: str) -> Optional[Type]:
        """
        Canonical type for `name`. Primitive names ("any", "void", numeric
        spellings, ...) are synthesized and registered on first request;
        any other unknown name returns None.
        """
        t = self._registry.get(name)
        if t is not None:
            return t
        base = classify.base_name(name)
        if base not in config.PRIMITIVE_TYPES and not classify.is_number_name(base):
            return None
        t = Type(name, Kind.INTERFACE)
        self.graph.add_type(t)
        self._registry[name] = t
        logger.debug("Synthesized primitive type %s", name)
        return t

    def types(self) -> List[Type]:
        return list(self._registry.values())

    def __contains__(self, name: str) -> bool:
        return name in self._registry

    def __len__(self) -> int:
        return len(self._registry)

    # ---------------- Warnings ----------------

    def warn(self, kind: str, detail: str) -> None:
        logger.warning("%s: %s", kind, detail)
        self._warnings.append({"kind": kind, "detail": detail})

    @property
    def warnings(self) -> List[Dict[str, str]]:
        return list(self._warnings)

    # ---------------- Debug view ----------------

    def to_debug_json(self) -> Dict[str, Any]:
        """
        Canonical, renderable view of the graph for API responses.
        Same {nodes, edges} shape as the raw arena dump, but ALIAS/SEQUENCE
        types are skipped and edge targets are mapped to their canonical type.
        """
        nodes = []
        edges = []
        for t in classify.renderable_types(self):
            nodes.append({
                "id": t.index,
                "kind": "Type",
                "attrs": self._type_attrs(t),
            })
            for _, dst, etype in self.graph.edges(t):
                target = self.canonical(dst.name) or dst
                edges.append({"src": t.index, "dst": target.index, "type": etype})

        libraries = [
            {
                "name": lib.name,
                "urls": list(lib.urls),
                "tutorials": [{"title": title, "url": url} for title, url in lib.tutorials],
                "types": len(lib.types),
            }
            for lib in self.libraries
        ]
        return {"nodes": nodes, "edges": edges, "libraries": libraries}

    def _type_attrs(self, t: Type) -> Dict[str, Any]:
        g = self.graph
        supertype = g.supertype(t)
        return {
            "name": t.name,
            "kind": t.kind.value,
            "library": t.library,
            "nullable": classify.is_nullable(t),
            "numeric": classify.is_number(g, t),
            "supertype": supertype.name if supertype is not None else None,
            "types": [r.name for r in g.types(t)],
            "implemented_by": [r.name for r in g.implemented_by(t)],
            "literals": list(t.enum_literals),
            "properties": [
                {
                    "name": p.name,
                    "type": p.type_name,
                    "modifiers": modifier_names(p.modifiers),
                    "value": p.initial_value,
                }
                for p in t.properties
            ],
            "operations": [
                self._operation_attrs(v) for op in t.operations.values() for v in op.variants()
            ],
            "constructors": [
                self._operation_attrs(v) for ctor in t.constructors for v in ctor.variants()
            ],
        }

    def _operation_attrs(self, op: Operation) -> Dict[str, Any]:
        return {
            "name": op.name,
            "signature": op.signature(),
            "type": op.type_name,
            "special": op.special.value,
            "modifiers": modifier_names(op.modifiers),
            "params": [
                {
                    "name": p.name,
                    "type": p.type_name,
                    "numeric": classify.is_number(self.graph, p.type),
                    "optional": p.optional,
                    "variadic": p.variadic,
                }
                for p in op.parameters
            ],
        }
