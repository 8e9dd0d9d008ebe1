"""
FastAPI entrypoint.

This file focuses on:
- routing
- request/response handling
- mapping engine errors to status codes
- wiring together the sample provider + export manager
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from .artifacts import ANONYMOUS, ExportManager, build_artifact_store
from .errors import ArtifactNotFound, QueryProcessingError, QueryValidationError
from .query import run_query
from .sample_providers import SampleProvider, build_sample_provider
from .schemas import ErrorOut, QueryIn, QueryResponse
from .settings import settings


logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

# Constructed once; swap via app.dependency_overrides in tests.
sample_provider = build_sample_provider(settings)
export_manager = ExportManager(build_artifact_store(settings))


def get_sample_provider() -> SampleProvider:
    return sample_provider


def get_export_manager() -> ExportManager:
    return export_manager


def get_requester(x_user_id: Optional[str] = Header(None)) -> str:
    """Identity is resolved upstream; we only use it to namespace file names."""
    return x_user_id or ANONYMOUS


def error_response(status_code: int, kind: str, msg: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorOut(kind=kind, msg=msg).model_dump())


# -------------------------
# Error mapping
# -------------------------

@app.exception_handler(QueryValidationError)
async def handle_validation_error(request: Request, exc: QueryValidationError):
    return error_response(400, exc.kind, str(exc))


@app.exception_handler(RequestValidationError)
async def handle_bad_body(request: Request, exc: RequestValidationError):
    return error_response(400, "ValidationError", "Request body is malformed.")


@app.exception_handler(QueryProcessingError)
async def handle_processing_error(request: Request, exc: QueryProcessingError):
    # Full detail stays in the server log; the client gets a generic message.
    logger.error("Query processing failed (%s): %s", exc.kind, exc, exc_info=exc)
    return error_response(500, "ProcessingError", "Server error during data processing.")


@app.exception_handler(ArtifactNotFound)
async def handle_artifact_not_found(request: Request, exc: ArtifactNotFound):
    return error_response(404, exc.kind, "File not found.")


# -------------------------
# Routes
# -------------------------

@app.get("/", response_class=PlainTextResponse)
def health():
    return f"{settings.app_name} running"


@app.post("/api/weather/query", response_model=QueryResponse)
async def api_query(
    payload: QueryIn,
    requester: str = Depends(get_requester),
    provider: SampleProvider = Depends(get_sample_provider),
    exports: ExportManager = Depends(get_export_manager),
):
    """
    Historical statistics for a location/day:
    - per-variable mean + threshold exceedance probability
    - link to a one-time CSV download of the raw samples
    """
    results, rows = await run_query(payload.to_query(), provider, settings.sample_count)
    # Only promise a download link once the artifact actually exists.
    artifact = exports.create_artifact(rows, requester)
    return QueryResponse.build(results, artifact.download_link)


@app.get("/api/weather/download/{filename}")
def api_download(filename: str, exports: ExportManager = Depends(get_export_manager)):
    """Stream the CSV once; it is deleted after a complete download."""
    stream = exports.serve_and_retire(filename)
    return StreamingResponse(
        stream,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
