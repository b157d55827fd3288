"""
API request / response models for FastAPI.
"""

from pydantic import BaseModel, Field
from typing import Optional

from backend.models import BatchOutcome, ExtractedRecord


class ProcessResponse(BaseModel):
    data: ExtractedRecord


class ErrorResponse(BaseModel):
    error: str
    details: Optional[list[str]] = None


class BatchResponse(BaseModel):
    results: list[BatchOutcome] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0
    skipped: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    ledger_state: str = "idle"
    ledger_pending: int = 0
    llm_configured: bool = False
    ledger_configured: bool = False
