import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException  # type: ignore
from pydantic import BaseModel  # type: ignore

import config
from idl.errors import IDLStructureError
from idl.model import Model
from idl.pipeline import run_pipeline
from registry import build_library

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="IDL Core (libraries -> merged, union-free type graph)")


class MergeRequest(BaseModel):
    libraries: List[Dict[str, Any]]          # one document per source, in registration order
    source_format: str = "json"
    strict_unions: Optional[bool] = None     # None -> IDL_STRICT_UNIONS


class MergeResponse(BaseModel):
    types: int
    folded_declarations: int
    split_variants: int
    warnings: List[Dict[str, str]]
    model: Dict[str, Any]


@app.post("/merge", response_model=MergeResponse)
def merge(req: MergeRequest):
    # fresh model per request; nothing is shared between batches
    model = Model()
    logger.info("Merge request: %d libraries", len(req.libraries))
    try:
        for doc in req.libraries:
            build_library(model, doc, req.source_format)
        report = run_pipeline(model, strict_unions=req.strict_unions)
    except IDLStructureError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return MergeResponse(
        types=report.types,
        folded_declarations=report.folded_declarations,
        split_variants=report.split_variants,
        warnings=report.warnings,
        model=model.to_debug_json(),
    )
