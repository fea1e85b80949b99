from __future__ import annotations

import logging

from idl.model import Model, Type

logger = logging.getLogger(__name__)


def merge_libraries(model: Model) -> int:
    """
    Collapse every Type sharing a name, across all Libraries, into one
    canonical Type carrying the union of all declared members.

    Libraries are visited in registration order; the first declaration of a
    name becomes canonical and later ones are folded into it.
    Returns the number of duplicate declarations folded.
    """
    model.check_mutable()
    folded = 0

    for library in model.libraries:
        for t in list(library.types):
            merged = model.canonical(t.name)
            if merged is None:
                model.register(t)
                continue
            # same object listed by two libraries
            if merged is t:
                continue
            fold_type(model, merged, t)
            folded += 1

    logger.info(
        "Merged %d libraries into %d canonical types (%d duplicate declarations folded)",
        len(model.libraries), len(model), folded,
    )
    return folded


def fold_type(model: Model, merged: Type, t: Type) -> None:
    """Fold the declaration `t` into the canonical `merged`."""
    g = model.graph

    if t.kind != merged.kind and not t.implicit:
        if merged.implicit:
            # placeholder kind is a guess; the first real declaration decides
            g.set_kind(merged, t.kind)
        else:
            model.warn(
                "kind_mismatch",
                f"{t.name}: {merged.kind.value} ({merged.library}) kept over "
                f"{t.kind.value} ({t.library})",
            )
    if not t.implicit:
        merged.implicit = False

    supertype = g.supertype(t)
    if supertype is not None:
        current = g.supertype(merged)
        if current is None:
            g.set_supertype(merged, supertype)
        elif current.name != supertype.name:
            model.warn(
                "supertype_mismatch",
                f"{t.name}: {current.name} kept over {supertype.name} ({t.library})",
            )

    # duplicate property names are appended as-is
    for prop in t.properties:
        merged.add_property(prop)

    for op in list(t.operations.values()):
        merged.add_operation(model, op)

    for ref in g.types(t):
        g.add_type_ref(merged, ref)

    for impl in g.implemented_by(t):
        if impl is merged:
            continue
        g.add_implemented_by(merged, impl)

    for literal in t.enum_literals:
        merged.add_enum_literal(literal)

    for ctor in t.constructors:
        merged.constructors.append(ctor)
