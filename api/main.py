"""
FastAPI application — POST /process-cv, POST /process-cv/batch, GET /health.

Each upload runs through the CV pipeline and, on success, lands as one row
in the shared Google Sheets ledger. The ledger writer is created once at
startup and drained on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import BatchResponse, ErrorResponse, HealthResponse, ProcessResponse
from backend import config
from backend.ingest.pipeline import process_batch, process_document
from backend.ledger.sheets import GoogleSheetsTable
from backend.ledger.writer import LedgerWriter
from backend.models import PDF_MEDIA_TYPE, Document

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    table = GoogleSheetsTable.from_config()
    if not table.configured:
        logger.warning("Google Sheets ledger is not configured; appends will fail.")
    app.state.ledger = LedgerWriter(table)
    logger.info("Ledger writer initialised.")
    yield
    await app.state.ledger.aclose()
    logger.info("Ledger writer closed.")


app = FastAPI(
    title="AI CV Parser",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_ledger(request: Request) -> LedgerWriter:
    return request.app.state.ledger


# ── POST /process-cv ─────────────────────────────────────────────────────────

@app.post(
    "/process-cv",
    response_model=ProcessResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse},
               422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def process_cv(
    file: UploadFile | None = File(None),
    fast: bool = Query(False, description="Extract from the first page image only"),
    ledger: LedgerWriter = Depends(get_ledger),
):
    """
    Parse one CV and append it to the ledger.

    422 carries the violated field rules; any other failure is a 500.
    """
    if file is None:
        return JSONResponse(status_code=400, content={"error": "No file provided"})

    content = await file.read()
    if len(content) > config.MAX_UPLOAD_MB * 1024 * 1024:
        return JSONResponse(
            status_code=413,
            content={"error": f"File exceeds {config.MAX_UPLOAD_MB} MB"},
        )

    document = Document(
        filename=file.filename or "upload.pdf",
        content=content,
        media_type=file.content_type or PDF_MEDIA_TYPE,
    )
    outcome = await process_document(document, ledger, fast=fast)

    if outcome.ok:
        return ProcessResponse(data=outcome.record)
    if outcome.stage == "validate":
        return JSONResponse(
            status_code=422,
            content={"error": outcome.error, "details": outcome.details},
        )
    return JSONResponse(status_code=500, content={"error": outcome.error})


# ── POST /process-cv/batch ───────────────────────────────────────────────────

@app.post("/process-cv/batch", response_model=BatchResponse)
async def process_cv_batch(
    files: list[UploadFile] = File(...),
    fast: bool = Query(False),
    ledger: LedgerWriter = Depends(get_ledger),
):
    """
    Parse several CVs in bounded-concurrency chunks.

    Non-PDF uploads are skipped, mirroring the upload widget's filter, as are
    files over MAX_UPLOAD_MB.
    """
    limit = config.MAX_UPLOAD_MB * 1024 * 1024
    documents: list[Document] = []
    skipped: list[str] = []
    for upload in files:
        if upload.content_type != PDF_MEDIA_TYPE:
            skipped.append(upload.filename or "")
            continue
        content = await upload.read()
        if len(content) > limit:
            logger.warning("Skipping %s: exceeds %s MB", upload.filename, config.MAX_UPLOAD_MB)
            skipped.append(upload.filename or "")
            continue
        documents.append(
            Document(
                filename=upload.filename or f"upload-{len(documents)}.pdf",
                content=content,
            )
        )

    outcomes = await process_batch(documents, ledger, fast=fast)
    succeeded = sum(1 for o in outcomes if o.ok)
    return BatchResponse(
        results=outcomes,
        succeeded=succeeded,
        failed=len(outcomes) - succeeded,
        skipped=skipped,
    )


# ── GET /health ──────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse)
async def health(ledger: LedgerWriter = Depends(get_ledger)):
    table = ledger.table
    return HealthResponse(
        status="ok",
        ledger_state=ledger.state,
        ledger_pending=ledger.pending,
        llm_configured=bool(config.OPENAI_API_KEY),
        ledger_configured=bool(getattr(table, "configured", True)),
    )
