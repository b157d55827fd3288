"""
CV pipeline — orchestrates the full flow from uploaded PDF to ledger row.

    PDF
      → rasterize pages (PyMuPDF)
      → transcribe each page (vision LLM, concurrent)
      → consolidate transcripts in page order
      → extract name / email / phone / companies (strict JSON)
      → validate fields
      → append to the shared ledger (single-flight queue)

Fast mode rasterizes only the first page and extracts straight from it.
"""

import asyncio
import logging
import time
from typing import Sequence

from backend import config
from backend.errors import PipelineError, ValidationError
from backend.ingest.consolidator import consolidate
from backend.ingest.extractor import extract_from_image, extract_from_text
from backend.ingest.rasterizer import rasterize_pdf
from backend.ingest.transcriber import transcribe_pages
from backend.ingest.validator import validate_record
from backend.ledger.writer import LedgerWriter
from backend.models import BatchOutcome, Document, ExtractedRecord, LedgerRow

logger = logging.getLogger(__name__)


# ── public API ────────────────────────────────────────────────────────────────

async def process_document(
    document: Document,
    ledger: LedgerWriter,
    *,
    fast: bool = False,
    strict: bool | None = None,
) -> BatchOutcome:
    """
    Run one document through every stage and report its outcome.

    Never raises for per-document failures: every error is converted into
    a failed ``BatchOutcome`` carrying the stage that failed.
    """
    strict = config.TRANSCRIPTION_STRICT if strict is None else strict
    name = document.filename
    t0 = time.time()
    logger.info("Processing %s (%s mode)", name, "fast" if fast else "full")

    try:
        record = await _extract_record(document, fast=fast, strict=strict)
        await ledger.append(LedgerRow.from_record(record))

    except ValidationError as e:
        logger.warning("%s failed validation: %s", name, "; ".join(e.details))
        return BatchOutcome(
            filename=name,
            status="failed",
            error=e.message,
            stage=e.stage,
            details=e.details,
            elapsed_seconds=round(time.time() - t0, 2),
        )
    except PipelineError as e:
        logger.error("%s failed at %s: %s", name, e.stage, e.message)
        return BatchOutcome(
            filename=name,
            status="failed",
            error=e.message,
            stage=e.stage,
            elapsed_seconds=round(time.time() - t0, 2),
        )
    except Exception as e:
        logger.exception("Unexpected failure while processing %s", name)
        return BatchOutcome(
            filename=name,
            status="failed",
            error=f"Failed to process CV: {e}",
            stage="internal",
            elapsed_seconds=round(time.time() - t0, 2),
        )

    elapsed = round(time.time() - t0, 2)
    logger.info("Processed %s → %s [%.1fs]", name, record.name, elapsed)
    return BatchOutcome(
        filename=name,
        status="succeeded",
        record=record,
        elapsed_seconds=elapsed,
    )


async def process_batch(
    documents: Sequence[Document],
    ledger: LedgerWriter,
    *,
    batch_size: int | None = None,
    fast: bool = False,
    strict: bool | None = None,
) -> list[BatchOutcome]:
    """
    Process *documents* in chunks of ``batch_size``.

    Documents within a chunk run concurrently; a chunk starts only after
    the previous one has fully resolved. Outcomes follow input order.
    """
    batch_size = config.BATCH_SIZE if batch_size is None else batch_size
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")

    outcomes: list[BatchOutcome] = []
    total = len(documents)
    for start in range(0, total, batch_size):
        chunk = documents[start : start + batch_size]
        logger.info("Batch chunk %d–%d of %d", start + 1, start + len(chunk), total)
        results = await asyncio.gather(
            *(process_document(doc, ledger, fast=fast, strict=strict) for doc in chunk)
        )
        outcomes.extend(results)

    succeeded = sum(1 for o in outcomes if o.ok)
    logger.info("Batch done: %d succeeded, %d failed, %d total", succeeded, total - succeeded, total)
    return outcomes


# ── private helpers ───────────────────────────────────────────────────────────

async def _extract_record(document: Document, *, fast: bool, strict: bool) -> ExtractedRecord:
    pages = await asyncio.to_thread(rasterize_pdf, document, first_page_only=fast)
    logger.debug("%s rasterized into %d page(s)", document.filename, len(pages))

    if fast:
        candidate = await extract_from_image(pages[0])
    else:
        transcripts = await transcribe_pages(pages, strict=strict)
        consolidated = consolidate(transcripts)
        candidate = await extract_from_text(consolidated)

    return validate_record(candidate)
