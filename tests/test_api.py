"""
Tests for the FastAPI endpoints.
Uses TestClient; the pipeline is mocked so these test request/response shapes.
"""

import pytest
from fastapi.testclient import TestClient

from backend.models import BatchOutcome, ExtractedRecord

RECORD = ExtractedRecord(
    name="Jane Doe",
    email="jane@example.com",
    phone="+6281228051404",
    companies=["PT. A", "PT. B"],
)


@pytest.fixture
def client(monkeypatch, fake_table):
    """Create a test client whose ledger writes to an in-memory table."""
    monkeypatch.setattr("api.main.GoogleSheetsTable.from_config", lambda: fake_table)

    from api.main import app
    with TestClient(app) as tc:
        yield tc

    assert fake_table.closed


def _pdf(name="cv.pdf", content=b"%PDF-1.4", content_type="application/pdf"):
    return (name, content, content_type)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["ledger_state"] == "idle"
    assert data["ledger_pending"] == 0


def test_process_cv_no_file(client):
    resp = client.post("/process-cv")
    assert resp.status_code == 400
    assert resp.json() == {"error": "No file provided"}


def test_process_cv_success(client, monkeypatch):
    seen = {}

    async def mock_process_document(document, ledger, *, fast=False):
        seen["document"] = document
        seen["fast"] = fast
        return BatchOutcome(filename=document.filename, status="succeeded", record=RECORD)

    monkeypatch.setattr("api.main.process_document", mock_process_document)

    resp = client.post("/process-cv?fast=true", files={"file": _pdf("jane.pdf")})
    assert resp.status_code == 200
    assert resp.json() == {"data": RECORD.model_dump()}
    assert seen["document"].filename == "jane.pdf"
    assert seen["document"].content == b"%PDF-1.4"
    assert seen["fast"] is True


def test_process_cv_validation_failure(client, monkeypatch):
    async def mock_process_document(document, ledger, *, fast=False):
        return BatchOutcome(
            filename=document.filename,
            status="failed",
            error="Extracted record failed validation",
            stage="validate",
            details=["phone: '6281234567890' must be '+628' followed by 8-11 digits or 'N/A'"],
        )

    monkeypatch.setattr("api.main.process_document", mock_process_document)

    resp = client.post("/process-cv", files={"file": _pdf()})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "Extracted record failed validation"
    assert body["details"][0].startswith("phone:")


def test_process_cv_other_failure(client, monkeypatch):
    async def mock_process_document(document, ledger, *, fast=False):
        return BatchOutcome(
            filename=document.filename, status="failed",
            error="Sheets append rejected with HTTP 403", stage="ledger",
        )

    monkeypatch.setattr("api.main.process_document", mock_process_document)

    resp = client.post("/process-cv", files={"file": _pdf()})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Sheets append rejected with HTTP 403"}


def test_process_cv_too_large(client, monkeypatch):
    monkeypatch.setattr("backend.config.MAX_UPLOAD_MB", 0)
    resp = client.post("/process-cv", files={"file": _pdf()})
    assert resp.status_code == 413


def test_batch_skips_non_pdf(client, monkeypatch):
    seen = {}

    async def mock_process_batch(documents, ledger, *, fast=False):
        seen["names"] = [d.filename for d in documents]
        return [
            BatchOutcome(filename=documents[0].filename, status="succeeded", record=RECORD),
            BatchOutcome(filename=documents[1].filename, status="failed",
                         error="bad pdf", stage="rasterize"),
        ]

    monkeypatch.setattr("api.main.process_batch", mock_process_batch)

    resp = client.post(
        "/process-cv/batch",
        files=[
            ("files", _pdf("a.pdf")),
            ("files", _pdf("notes.txt", b"hello", "text/plain")),
            ("files", _pdf("b.pdf")),
        ],
    )
    assert resp.status_code == 200
    body = resp.json()
    assert seen["names"] == ["a.pdf", "b.pdf"]
    assert body["skipped"] == ["notes.txt"]
    assert body["succeeded"] == 1
    assert body["failed"] == 1
    assert [r["filename"] for r in body["results"]] == ["a.pdf", "b.pdf"]


def test_batch_skips_oversized_files(client, monkeypatch):
    seen = {}

    async def mock_process_batch(documents, ledger, *, fast=False):
        seen["names"] = [d.filename for d in documents]
        return [BatchOutcome(filename=d.filename, status="succeeded", record=RECORD) for d in documents]

    monkeypatch.setattr("api.main.process_batch", mock_process_batch)
    monkeypatch.setattr("backend.config.MAX_UPLOAD_MB", 0.00001)  # about 10 bytes

    resp = client.post(
        "/process-cv/batch",
        files=[
            ("files", _pdf("small.pdf")),
            ("files", _pdf("huge.pdf", b"%PDF-1.4" + b"0" * 64)),
        ],
    )
    assert resp.status_code == 200
    body = resp.json()
    assert seen["names"] == ["small.pdf"]
    assert body["skipped"] == ["huge.pdf"]
    assert body["succeeded"] == 1
