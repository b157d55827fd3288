"""
Shared fixtures: synthetic PDFs, an in-memory ledger table, page images.
"""

import asyncio
import io

import pytest

from backend.models import Document, PageImage


class FakeTable:
    """In-memory append-only table that records concurrency and can fail on demand."""

    def __init__(self, fail_on=(), delay: float = 0.0):
        self.rows: list[list[str]] = []
        self.fail_on = set(fail_on)
        self.delay = delay
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False
        self.configured = True

    async def append_row(self, values):
        self.calls += 1
        call_no = self.calls
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if call_no in self.fail_on:
                raise RuntimeError(f"simulated failure on append #{call_no}")
            self.rows.append(list(values))
        finally:
            self.in_flight -= 1

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_table():
    return FakeTable()


@pytest.fixture
def table_factory():
    return FakeTable


@pytest.fixture
def make_pdf():
    """Return a builder: list of page texts → PDF bytes."""
    from reportlab.pdfgen import canvas as rl_canvas

    def _build(pages: list[str]) -> bytes:
        buf = io.BytesIO()
        c = rl_canvas.Canvas(buf)
        for text in pages:
            c.drawString(100, 750, text)
            c.showPage()
        c.save()
        return buf.getvalue()

    return _build


@pytest.fixture
def make_document(make_pdf):
    def _build(filename: str = "cv.pdf", pages: list[str] | None = None) -> Document:
        return Document(
            filename=filename,
            content=make_pdf(pages or ["Jane Doe — jane@example.com"]),
        )

    return _build


@pytest.fixture
def page_image():
    def _build(index: int = 0) -> PageImage:
        return PageImage(
            page_index=index,
            data=f"page-{index}".encode(),
            format="jpeg",
            width=2048,
            height=2650,
            density=100,
        )

    return _build
