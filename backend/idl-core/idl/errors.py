class IDLStructureError(ValueError):
    """
    The graph is structurally corrupt (unnamed type, alias cycle, ...).
    Raised before or during a pass; the whole batch is aborted.
    """


class AmbiguousUnionError(IDLStructureError):
    """More than one union-typed parameter on one operation (strict mode only)."""


class FrozenModelError(RuntimeError):
    """Structural mutation attempted after Model.freeze()."""
