import logging
from typing import Any, Dict, List, Optional, Tuple

from idl import classify
from idl.kinds import Kind, Modifier, Special, modifiers_from_names
from idl.model import Library, Model, Operation, Parameter, Property, Type

logger = logging.getLogger(__name__)


class DictAdapter:
    """
    Declarative document -> Library builder.
    Stands in for a real scanner: the document already holds parsed
    declarations, one Library per document:

      {
        "name": "DOM",
        "urls": ["https://dom.spec.whatwg.org/"],
        "tutorials": [{"title": "...", "url": "..."}],
        "types": [
          {"name": "Node", "kind": "interface", "supertype": "EventTarget",
           "operations": [{"name": "append", "type": "void",
                           "parameters": [{"name": "node", "type": "(Element or string)"}]}]},
          ...
        ]
      }

    Type expressions:
      - T?            nullable (its own type, supertype T)
      - T[]           ARRAY, element type as supertype
      - sequence<T>   SEQUENCE, element type as member
      - Promise<T>    PROMISE, resolved type as supertype
      - (A or B)      UNION, members in declared order
    Names that resolve nowhere become implicit INTERFACE placeholders.
    """

    source_format = "json"

    KIND_ALIASES = {
        "typedef": Kind.ALIAS,
        "callback": Kind.CALLBACK_FUNCTION,
        "callback interface": Kind.CALLBACK_INTERFACE,
    }

    # ---------------- Helpers ----------------

    def _kind(self, raw: Any) -> Kind:
        text = str(raw or "interface").strip().lower()
        if text in self.KIND_ALIASES:
            return self.KIND_ALIASES[text]
        try:
            return Kind(text.replace(" ", "_"))
        except ValueError:
            raise ValueError(f"Unknown type kind: {raw!r}")

    def _modifiers(self, d: Dict[str, Any]) -> Modifier:
        mods = modifiers_from_names(self._list(d, "modifiers", str(d.get("name"))))
        flags = {
            "optional": Modifier.OPTIONAL,
            "variadic": Modifier.VARIADIC,
            "readonly": Modifier.READ_ONLY,
            "static": Modifier.STATIC,
            "const": Modifier.CONSTANT,
        }
        for key, flag in flags.items():
            if d.get(key):
                mods |= flag
        return mods

    def _special(self, raw: Any) -> Special:
        try:
            return Special(str(raw or "none").strip().lower())
        except ValueError:
            raise ValueError(f"Unknown special operation tag: {raw!r}")

    def _list(self, d: Dict[str, Any], key: str, where: str) -> List[Any]:
        value = d.get(key) or []
        if not isinstance(value, list):
            raise ValueError(f"{where}: '{key}' must be a list")
        return value

    def _objects(self, d: Dict[str, Any], key: str, where: str) -> List[Dict[str, Any]]:
        entries = self._list(d, key, where)
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"{where}: '{key}' entries must be objects, got {entry!r}")
        return entries

    def _split_union(self, expr: str) -> Optional[List[str]]:
        """
        "(A or (B or C))" -> ["A", "(B or C)"]; None if `expr` is not a union.
        Splits on top-level " or " only.
        """
        if not (expr.startswith("(") and expr.endswith(")")):
            return None
        inner = expr[1:-1]
        parts: List[str] = []
        depth = 0
        start = 0
        i = 0
        while i < len(inner):
            ch = inner[i]
            if ch in "(<":
                depth += 1
            elif ch in ")>":
                depth -= 1
            elif depth == 0 and inner.startswith(" or ", i):
                parts.append(inner[start:i].strip())
                i += len(" or ")
                start = i
                continue
            i += 1
        parts.append(inner[start:].strip())
        if len(parts) < 2 or not all(parts):
            return None
        return parts

    # ---------------- Type resolution ----------------

    def _lookup(self, model: Model, name: str) -> Optional[Type]:
        """A type another library already declared, or a canonical/primitive one."""
        for library in model.libraries:
            for t in library.types:
                if t.name == name and not t.implicit:
                    return t
        return model.get_type(name)

    def resolve(
        self,
        model: Model,
        library: Library,
        declared: Dict[str, Type],
        expr: Any,
    ) -> Optional[Type]:
        if expr is None:
            return None
        if not isinstance(expr, str):
            raise ValueError(f"Type expression must be a string, got {expr!r}")
        expr = " ".join(expr.split())
        if not expr:
            return None

        if expr in declared:
            return declared[expr]

        found = self._lookup(model, expr)
        if found is not None:
            declared[expr] = found
            return found

        members = self._split_union(expr)
        if members is not None:
            t = model.declare(library, expr, Kind.UNION)
            declared[expr] = t
            for m in members:
                member = self.resolve(model, library, declared, m)
                if member is not None:
                    model.graph.add_type_ref(t, member)
            return t

        if expr.endswith("?"):
            base = self.resolve(model, library, declared, classify.strip_nullable(expr))
            # a nullable union reaches its members through the supertype edge
            t = model.declare(library, expr, base.kind if base is not None else Kind.INTERFACE, base)
        elif expr.endswith("[]"):
            element = self.resolve(model, library, declared, expr[:-2])
            t = model.declare(library, expr, Kind.ARRAY, element)
        elif expr.startswith("sequence<") and expr.endswith(">"):
            t = model.declare(library, expr, Kind.SEQUENCE)
            element = self.resolve(model, library, declared, expr[len("sequence<"):-1])
            if element is not None:
                model.graph.add_type_ref(t, element)
        elif expr.startswith("Promise<") and expr.endswith(">"):
            resolved = self.resolve(model, library, declared, expr[len("Promise<"):-1])
            t = model.declare(library, expr, Kind.PROMISE, resolved)
        else:
            t = model.declare(library, expr, Kind.INTERFACE)
            t.implicit = True
            logger.debug("Implicit type %s in library %s", expr, library.name)

        declared[expr] = t
        return t

    # ---------------- Parsing entry points ----------------

    def build_library(self, model: Model, doc: Dict[str, Any]) -> Library:
        """
        Two passes: declare every type of the document first (so forward
        references resolve to the declaration), then attach members/edges.
        """
        if not isinstance(doc, dict):
            raise ValueError("Library document must be an object")
        name = doc.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Library document needs a non-empty 'name'")
        type_docs = self._list(doc, "types", name)

        tutorials: List[Tuple[str, str]] = []
        for tut in self._objects(doc, "tutorials", name):
            tutorials.append((str(tut.get("title", "")), str(tut.get("url", ""))))
        library = model.add_library(name, list(self._list(doc, "urls", name)), tutorials)

        declared: Dict[str, Type] = {}
        units: List[Tuple[Type, Dict[str, Any]]] = []

        # ---------- declarations ----------
        for td in type_docs:
            if not isinstance(td, dict):
                raise ValueError(f"{name}: type entries must be objects")
            t = model.declare(library, td.get("name"), self._kind(td.get("kind")))
            if isinstance(t.name, str) and t.name not in declared:
                declared[t.name] = t
            units.append((t, td))

        # ---------- members / relations ----------
        for t, td in units:
            self._process_type(model, library, declared, t, td)

        logger.info("Scanned library %s: %d types", name, len(library.types))
        return library

    def _process_type(
        self,
        model: Model,
        library: Library,
        declared: Dict[str, Type],
        t: Type,
        td: Dict[str, Any],
    ) -> None:
        g = model.graph
        where = f"{library.name}.{t.name}"

        def resolve(expr: Any) -> Optional[Type]:
            return self.resolve(model, library, declared, expr)

        if td.get("supertype"):
            g.set_supertype(t, resolve(td["supertype"]))

        for iface in self._list(td, "implements", where):
            target = resolve(iface)
            if target is not None and target is not t:
                g.add_type_ref(t, target)
                g.add_implemented_by(target, t)

        # union members / sequence element / anything else in the "types" relation
        for member in self._list(td, "members", where):
            target = resolve(member)
            if target is not None:
                g.add_type_ref(t, target)

        for literal in self._list(td, "literals", where):
            t.add_enum_literal(str(literal))

        # ---------- properties ----------
        for pd in self._objects(td, "properties", where):
            value = pd.get("value")
            t.add_property(Property(
                pd.get("name"),
                resolve(pd.get("type")),
                self._modifiers(pd),
                initial_value=str(value) if value is not None else None,
            ))

        # ---------- operations ----------
        for od in self._objects(td, "operations", where):
            t.add_operation(model, self._build_operation(resolve, od, od.get("name")))

        # ---------- constructors ----------
        for cd in self._objects(td, "constructors", where):
            t.add_constructor(self._build_operation(resolve, cd, cd.get("name") or t.name))

    def _build_operation(self, resolve, od: Dict[str, Any], name: Optional[str]) -> Operation:
        op = Operation(
            name,
            resolve(od.get("type")),
            self._modifiers(od),
            special=self._special(od.get("special")),
            body=od.get("body"),
        )
        for pd in self._objects(od, "parameters", str(name)):
            op.add_parameter(Parameter(pd.get("name"), resolve(pd.get("type")), self._modifiers(pd)))
        return op
