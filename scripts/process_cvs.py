#!/usr/bin/env python3
"""
CV processing CLI — run one PDF or a directory of PDFs through the pipeline.

Usage
-----
Single CV:
    python -m scripts.process_cvs --pdf data/cvs/jane_doe.pdf

Every PDF in a directory, ten at a time:
    python -m scripts.process_cvs --dir data/cvs/ --batch-size 10

First-page fast path (no per-page transcription):
    python -m scripts.process_cvs --dir data/cvs/ --fast

Fail a CV when any of its pages cannot be transcribed:
    python -m scripts.process_cvs --dir data/cvs/ --strict
"""

import argparse
import asyncio
import glob
import logging
import os
import sys

# Ensure repo root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend import config                                 # noqa: E402
from backend.ingest.pipeline import process_batch          # noqa: E402
from backend.ledger.sheets import GoogleSheetsTable        # noqa: E402
from backend.ledger.writer import LedgerWriter             # noqa: E402
from backend.models import Document                        # noqa: E402

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s │ %(levelname)-7s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("process_cvs")


def _load_documents(pdf_paths: list[str]) -> list[Document]:
    documents = []
    for path in pdf_paths:
        with open(path, "rb") as f:
            documents.append(Document(filename=os.path.basename(path), content=f.read()))
    return documents


def _preflight_checks() -> bool:
    """
    Verify the model endpoint and the ledger are configured before starting.
    Returns True if all checks pass, False otherwise.
    """
    ok = True

    # ── 1. Model API key ─────────────────────────────────────────────────────
    if not config.OPENAI_API_KEY:
        logger.error("✗ OPENAI_API_KEY is not set. Add it to your .env file.")
        ok = False
    else:
        logger.info("✓ Model API key found (%s)", config.OPENAI_BASE_URL)

    # ── 2. Google Sheets ledger ──────────────────────────────────────────────
    missing = [
        name for name, value in (
            ("GOOGLE_SERVICE_ACCOUNT_EMAIL", config.GOOGLE_SERVICE_ACCOUNT_EMAIL),
            ("GOOGLE_PRIVATE_KEY", config.GOOGLE_PRIVATE_KEY),
            ("GOOGLE_SPREADSHEET_ID", config.GOOGLE_SPREADSHEET_ID),
        ) if not value
    ]
    if missing:
        logger.error("✗ Ledger settings missing: %s", ", ".join(missing))
        ok = False
    else:
        logger.info("✓ Ledger spreadsheet %s", config.GOOGLE_SPREADSHEET_ID)

    return ok


async def run(args: argparse.Namespace) -> int:
    if not args.skip_checks and not _preflight_checks():
        logger.error("Pre-flight checks failed — aborting.")
        return 1

    if args.pdf:
        pdf_paths = [args.pdf]
    else:
        pdf_paths = sorted(glob.glob(os.path.join(args.dir, "*.pdf")))
        if not pdf_paths:
            logger.error("No PDF files found in %s", args.dir)
            return 1
        logger.info("Found %d PDFs in %s", len(pdf_paths), args.dir)

    documents = _load_documents(pdf_paths)
    ledger = LedgerWriter(GoogleSheetsTable.from_config())
    try:
        outcomes = await process_batch(
            documents,
            ledger,
            batch_size=args.batch_size,
            fast=args.fast,
            strict=args.strict or None,
        )
    finally:
        await ledger.aclose()

    failures = 0
    for outcome in outcomes:
        if outcome.ok:
            record = outcome.record
            logger.info(
                "✓ %s → %s | %s | %s | %d companies  [%.1fs]",
                outcome.filename, record.name, record.email, record.phone,
                len(record.companies), outcome.elapsed_seconds,
            )
        else:
            failures += 1
            detail = f" ({'; '.join(outcome.details)})" if outcome.details else ""
            logger.error("✗ %s — %s: %s%s", outcome.filename, outcome.stage, outcome.error, detail)

    logger.info("━" * 60)
    logger.info(
        "Done: %d succeeded, %d failed, %d total",
        len(outcomes) - failures, failures, len(outcomes),
    )
    return 1 if failures else 0


def main():
    parser = argparse.ArgumentParser(
        description="Extract CV contact details into the Google Sheets ledger.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--pdf", type=str, help="Path to a single PDF file")
    source.add_argument("--dir", type=str, help="Directory containing CV PDFs")

    parser.add_argument("--fast", action="store_true", help="Extract from the first page image only")
    parser.add_argument("--strict", action="store_true", help="Fail a CV when any page cannot be transcribed")
    parser.add_argument(
        "--batch-size", type=int, default=config.BATCH_SIZE,
        help=f"CVs processed concurrently per chunk (default {config.BATCH_SIZE})",
    )
    parser.add_argument("--skip-checks", action="store_true", help="Skip configuration checks")

    args = parser.parse_args()
    if args.batch_size < 1:
        parser.error("--batch-size must be at least 1")

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
