from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from idl import classify
from idl.errors import IDLStructureError
from idl.kinds import Kind
from idl.merge import merge_libraries
from idl.model import Model
from idl.unions import decompose_unions, find_union_operations

logger = logging.getLogger(__name__)


@dataclass
class PipelineReport:
    libraries: int
    types: int
    folded_declarations: int
    split_variants: int
    warnings: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "libraries": self.libraries,
            "types": self.types,
            "folded_declarations": self.folded_declarations,
            "split_variants": self.split_variants,
            "warnings": list(self.warnings),
        }


def validate_model(model: Model) -> None:
    """
    Structural checks on the scanned libraries. Anything that would let a
    corrupt graph reach merge or decomposition raises IDLStructureError.
    """
    g = model.graph
    for library in model.libraries:
        for t in library.types:
            if not isinstance(t.name, str) or not t.name.strip():
                raise IDLStructureError(f"Unnamed type in library {library.name!r}")
            if not isinstance(t.kind, Kind):
                raise IDLStructureError(f"Type {t.name!r} has no kind")

            if t.kind == Kind.ALIAS:
                classify.resolve_alias(g, t)
                if g.supertype(t) is None:
                    model.warn("dangling_alias", f"{t.name} ({library.name}) has no target type")
            elif t.kind == Kind.UNION:
                classify.union_members(g, t)

            for op in t.all_operations():
                if not op.name:
                    raise IDLStructureError(f"Unnamed operation on type {t.name!r}")


def run_pipeline(model: Model, strict_unions: Optional[bool] = None) -> PipelineReport:
    """
    validate -> merge -> decompose unions -> freeze.
    Either returns a report for a sound, union-free, frozen model or raises;
    a half-processed model is never handed on.
    """
    try:
        # 1) Structural checks
        validate_model(model)

        # 2) Fold duplicate declarations into canonical types
        folded = merge_libraries(model)

        # 3) Union parameters -> concrete overloads
        split = decompose_unions(model, strict=strict_unions)

        # 4) Postcondition
        leftovers = find_union_operations(model)
        if leftovers:
            owner, op = leftovers[0]
            raise IDLStructureError(
                f"{len(leftovers)} union-typed operations left after decomposition "
                f"(first: {owner.name}.{op.signature()})"
            )
    except IDLStructureError as e:
        logger.error("Pipeline aborted: %s", e)
        raise

    model.freeze()

    report = PipelineReport(
        libraries=len(model.libraries),
        types=len(model),
        folded_declarations=folded,
        split_variants=split,
        warnings=model.warnings,
    )
    logger.info(
        "Pipeline done: %d types, %d variants split, %d warnings",
        report.types, report.split_variants, len(report.warnings),
    )
    return report
