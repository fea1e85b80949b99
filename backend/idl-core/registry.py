from typing import Any, Dict

from adapters.dict_adapter import DictAdapter
from idl.model import Library, Model

ADAPTERS = {
    DictAdapter.source_format: DictAdapter(),
}


def build_library(model: Model, doc: Dict[str, Any], source_format: str = "json") -> Library:
    adapter = ADAPTERS.get((source_format or "").lower())
    if adapter is None:
        raise ValueError(f"Unsupported source format: {source_format}")
    return adapter.build_library(model, doc)
