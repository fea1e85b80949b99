"""
Union decomposition.

Most target type systems cannot express an ad hoc union as a single callable
signature, so before any renderer sees the graph every operation with a
union-typed parameter is replaced by one overload per union member:

    append((Element or string) node)  ->  append(Element node)
                                          append(string node)

The replacements go through the owning Type's normal operation-merge path,
so they coexist with (or fold into) overloads that already have the same
signature. Union return types cannot be split this way and are widened to
"any".
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List, Optional, Set, Tuple

import config
from idl import classify
from idl.errors import AmbiguousUnionError
from idl.model import Model, Operation, Parameter, Type

logger = logging.getLogger(__name__)


def decompose_unions(model: Model, strict: Optional[bool] = None) -> int:
    """
    Rewrite every canonical Type so no operation, overload or constructor
    keeps a union parameter or return type. Returns the number of
    union-bearing variants that were split. Running it twice is a no-op.
    """
    model.check_mutable()
    if strict is None:
        strict = config.STRICT_UNIONS

    split = 0
    for t in model.types():
        split += _decompose_operations(model, t, strict)
        split += _decompose_constructors(model, t, strict)
        _widen_union_returns(model, t)

    logger.info("Decomposed %d union-typed operation variants", split)
    return split


def find_union_operations(model: Model) -> List[Tuple[Type, Operation]]:
    """(owner, variant) pairs that still carry a union parameter or return type."""
    g = model.graph
    found: List[Tuple[Type, Operation]] = []
    for t in model.types():
        for op in t.all_operations():
            if classify.union_parameters(g, op.parameters) or classify.is_union(g, op.type):
                found.append((t, op))
    return found


# ---------------- Helpers ----------------

def _union_parameter(model: Model, owner: Type, op: Operation, strict: bool) -> Optional[Parameter]:
    params = classify.union_parameters(model.graph, op.parameters)
    if not params:
        return None
    if len(params) > 1:
        detail = f"{owner.name}.{op.signature()} has {len(params)} union parameters"
        if strict:
            raise AmbiguousUnionError(detail)
        model.warn("ambiguous_union", f"{detail}; decomposing the first")
    return params[0]


def _with_parameter_type(op: Operation, param: Parameter, t: Optional[Type]) -> Operation:
    new_op = Operation(op.name, op.type, op.modifiers, special=op.special, body=op.body)
    for p in op.parameters:
        if p is param:
            new_op.add_parameter(Parameter(p.name, t, p.modifiers))
        else:
            new_op.add_parameter(p)
    return new_op


def _expand(model: Model, owner: Type, op: Operation, param: Parameter) -> List[Operation]:
    members = classify.union_members(model.graph, param.type)
    if not members:
        model.warn(
            "empty_union",
            f"{owner.name}.{op.signature()}: union {param.type.name} has no members; widened to any",
        )
        return [_with_parameter_type(op, param, model.get_type(config.ANY_TYPE))]
    return [_with_parameter_type(op, param, m) for m in members]


def _has_union_parameter(model: Model, op: Operation) -> bool:
    return bool(classify.union_parameters(model.graph, op.parameters))


# ---------------- Passes ----------------

def _decompose_operations(model: Model, t: Type, strict: bool) -> int:
    split = 0
    for name in list(t.operations):
        while True:
            primary = t.operations.get(name)
            if primary is None:
                break
            variant = next((v for v in primary.variants() if _has_union_parameter(model, v)), None)
            if variant is None:
                break

            param = _union_parameter(model, t, variant, strict)
            replacements = _expand(model, t, variant, param)
            t.remove_operation(variant)
            for new_op in replacements:
                t.add_operation(model, new_op)
            split += 1
    return split


def _decompose_constructors(model: Model, t: Type, strict: bool) -> int:
    ctors = [v for c in t.constructors for v in c.variants()]
    if not any(_has_union_parameter(model, c) for c in ctors):
        return 0

    split = 0
    out: List[Operation] = []
    by_sig: Dict[str, Operation] = {}
    synthesized: Set[int] = set()
    # (constructor, produced by a split)
    pending = deque((c.detached(), False) for c in ctors)
    while pending:
        ctor, synthetic = pending.popleft()
        param = _union_parameter(model, t, ctor, strict)
        if param is not None:
            pending.extendleft((c, True) for c in reversed(_expand(model, t, ctor, param)))
            split += 1
            continue

        sig = ctor.signature()
        existing = by_sig.get(sig)
        if existing is not None and (synthetic or id(existing) in synthesized):
            existing.merge(model, ctor)
            if existing.signature() != sig:
                by_sig = {}
                for c in out:
                    by_sig.setdefault(c.signature(), c)
            continue
        out.append(ctor)
        by_sig.setdefault(sig, ctor)
        if synthetic:
            synthesized.add(id(ctor))
    t.constructors = out
    return split


def _widen_union_returns(model: Model, t: Type) -> None:
    for op in t.all_operations():
        if op.type is not None and classify.is_union(model.graph, op.type):
            model.warn(
                "union_return",
                f"{t.name}.{op.signature()} returns {op.type.name}; widened to any",
            )
            op.type = model.get_type(config.ANY_TYPE)
