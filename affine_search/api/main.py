"""
HTTP surface for the affine transformation processor and query vector builder.
"""

import copy
from typing import Any, Dict

from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse

from util.logging import logger
from .schemas import (
    DocumentError,
    ErrorResponse,
    HealthResponse,
    QueryVectorResponse,
    SimulatedDocument,
    SimulateRequest,
    SimulateResponse,
)
from ..core.config import VERSION, debug_enabled, validate_config
from ..core.document import IngestDocument
from ..core.errors import AffineTransformationError
from ..core.registry import create_ingest_processor, parse_query_vector_builder

app = FastAPI(
    title="Affine Search API",
    version=VERSION,
    description="Affine transformation of dense vectors at ingest and query time",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

logger.log_config_issues(validate_config())


def _error_details(error: AffineTransformationError):
    if error.chain_index is None:
        return None
    return {"chain_index": error.chain_index}


@app.exception_handler(AffineTransformationError)
async def affine_error_handler(request: Request, exc: AffineTransformationError):
    logger.log_operation("http_request", "failed", {
        "path": request.url.path,
        "error": type(exc).__name__,
        "reason": str(exc),
    })
    body = ErrorResponse(
        error_type=type(exc).__name__,
        message=str(exc),
        details=_error_details(exc),
    )
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check service health and configuration."""
    issues = validate_config()
    return HealthResponse(
        status="healthy" if not issues else "degraded",
        version=VERSION,
        config_issues=issues
    )


@app.post("/_ingest/_simulate", response_model=SimulateResponse)
def simulate_ingest(req: SimulateRequest):
    """Run one processor over the given documents without storing them.

    Configuration errors fail the whole request; document errors are
    reported per document.
    """
    processor = create_ingest_processor(req.processor_type, req.processor)

    results = []
    failed = 0
    for source in req.docs:
        document = IngestDocument(copy.deepcopy(source))
        try:
            processor.execute(document)
        except AffineTransformationError as e:
            failed += 1
            results.append(SimulatedDocument(error=DocumentError(
                type=type(e).__name__,
                reason=str(e),
                chain_index=e.chain_index,
            )))
            continue
        results.append(SimulatedDocument(doc=document.to_dict()))

    logger.log_operation("simulate_ingest", "success", {
        "processor_type": req.processor_type,
        "docs": len(req.docs),
        "failed": failed,
    })
    return SimulateResponse(docs=results)


@app.post("/_query_vector", response_model=QueryVectorResponse)
async def build_query_vector(body: Dict[str, Dict[str, Any]] = Body(...)):
    """Build a query vector from a named builder such as `affine_transformation`."""
    builder = parse_query_vector_builder(body)
    vector = await builder.build()
    return QueryVectorResponse(query_vector=[float(v) for v in vector])
