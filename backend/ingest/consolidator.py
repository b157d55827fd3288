"""
Join per-page transcripts into one document, in page order.
"""

from typing import Iterable

from backend.models import ConsolidatedDocument, PageTranscript

PAGE_SEPARATOR = "\n\n---\n\n"


def consolidate(
    transcripts: Iterable[PageTranscript],
    separator: str = PAGE_SEPARATOR,
) -> ConsolidatedDocument:
    ordered = sorted(transcripts, key=lambda t: t.page_index)
    return ConsolidatedDocument(
        text=separator.join(t.text for t in ordered),
        page_count=len(ordered),
    )
