from __future__ import annotations

import networkx as nx  # type: ignore
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

if TYPE_CHECKING:
    from idl.kinds import Kind
    from idl.model import Type

INHERITS = "INHERITS"
IMPLEMENTS = "IMPLEMENTS"
UNION_MEMBER = "UNION_MEMBER"
ELEMENT = "ELEMENT"
IMPLEMENTED_BY = "IMPLEMENTED_BY"

# edge labels that make up a type's "types" relation
REFERENCE_EDGES = (IMPLEMENTS, UNION_MEMBER, ELEMENT)


def reference_edge_type(kind: "Kind") -> str:
    """
    Label for an edge of the "types" relation, chosen by the owning kind:
      - UNION -> UNION_MEMBER
      - ARRAY / SEQUENCE -> ELEMENT
      - everything else -> IMPLEMENTS
    """
    name = getattr(kind, "name", str(kind))
    if name == "UNION":
        return UNION_MEMBER
    if name in ("ARRAY", "SEQUENCE"):
        return ELEMENT
    return IMPLEMENTS


class TypeGraph:
    """
    Index-addressed arena of Types.
    Nodes: integer index -> Type payload.
    Edges: INHERITS, IMPLEMENTS, UNION_MEMBER, ELEMENT, IMPLEMENTED_BY.

    Edges are keyed by their label, so each (src, dst, label) exists at most
    once and both directions are O(1) through networkx's succ/pred maps.
    Cycles (A implemented-by B implements A) are ordinary edges here.
    """

    def __init__(self) -> None:
        self.g = nx.MultiDiGraph()

    # ---------------- Nodes ----------------

    def add_type(self, t: "Type") -> int:
        index = self.g.number_of_nodes()
        t.index = index
        self.g.add_node(index, kind=getattr(t.kind, "name", None), payload=t)
        return index

    def node(self, index: int) -> "Type":
        return self.g.nodes[index]["payload"]

    def __len__(self) -> int:
        return self.g.number_of_nodes()

    def __iter__(self) -> Iterator["Type"]:
        for _, data in self.g.nodes(data=True):
            yield data["payload"]

    # ---------------- Edges ----------------

    def _add_edge(self, src: "Type", dst: "Type", etype: str) -> bool:
        if self.g.has_edge(src.index, dst.index, key=etype):
            return False
        self.g.add_edge(src.index, dst.index, key=etype, etype=etype)
        return True

    def _targets(self, src: "Type", etypes) -> List["Type"]:
        out: List["Type"] = []
        for _, dst, key in self.g.out_edges(src.index, keys=True):
            if key in etypes:
                out.append(self.node(dst))
        return out

    def set_supertype(self, t: "Type", supertype: Optional["Type"]) -> None:
        for _, dst, key in list(self.g.out_edges(t.index, keys=True)):
            if key == INHERITS:
                self.g.remove_edge(t.index, dst, key=INHERITS)
        if supertype is not None:
            self._add_edge(t, supertype, INHERITS)

    def set_kind(self, t: "Type", kind: "Kind") -> None:
        t.kind = kind
        self.g.nodes[t.index]["kind"] = kind.name

    def supertype(self, t: "Type") -> Optional["Type"]:
        supers = self._targets(t, (INHERITS,))
        return supers[0] if supers else None

    def add_type_ref(self, t: "Type", ref: "Type") -> bool:
        """Add `ref` to the "types" relation of `t` (set semantics)."""
        for key in REFERENCE_EDGES:
            if self.g.has_edge(t.index, ref.index, key=key):
                return False
        return self._add_edge(t, ref, reference_edge_type(t.kind))

    def types(self, t: "Type") -> List["Type"]:
        """Implemented interfaces / union members / element types, in insertion order."""
        return self._targets(t, REFERENCE_EDGES)

    def add_implemented_by(self, t: "Type", impl: "Type") -> bool:
        return self._add_edge(t, impl, IMPLEMENTED_BY)

    def implemented_by(self, t: "Type") -> List["Type"]:
        return self._targets(t, (IMPLEMENTED_BY,))

    def edges(self, t: "Type") -> Iterator[tuple]:
        """(src Type, dst Type, label) for every outgoing edge of `t`."""
        for _, dst, key in self.g.out_edges(t.index, keys=True):
            yield t, self.node(dst), key

    # ---------------- Debug view ----------------

    def to_debug_json(self) -> Dict[str, Any]:
        """
        Raw arena dump (every declaration, canonical or not).
        Model.to_debug_json() is the canonical-only view for consumers.
        """
        nodes = []
        for index, data in self.g.nodes(data=True):
            t = data["payload"]
            nodes.append({
                "id": index,
                "kind": data.get("kind"),
                "attrs": {"name": t.name, "library": t.library},
            })

        edges = []
        for src, dst, data in self.g.edges(data=True):
            edges.append({
                "src": src,
                "dst": dst,
                "type": data.get("etype"),
            })

        return {"nodes": nodes, "edges": edges}
