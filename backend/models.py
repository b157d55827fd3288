"""
Pydantic models shared across the backend.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PDF_MEDIA_TYPE = "application/pdf"

# Column order of the ledger sheet.
LEDGER_COLUMNS = ("Name", "Email", "Phone", "Companies")

NOT_AVAILABLE = "N/A"


class Document(BaseModel):
    """An uploaded file, immutable once received."""

    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes
    media_type: str = PDF_MEDIA_TYPE


class PageImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_index: int
    data: bytes
    format: str = "jpeg"
    width: int
    height: int
    density: int

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"


class PageTranscript(BaseModel):
    page_index: int
    text: str = ""


class ConsolidatedDocument(BaseModel):
    text: str = ""
    page_count: int = 0


class ExtractedRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    email: str
    phone: str
    companies: list[str] = Field(default_factory=list)


class LedgerRow(BaseModel):
    name: str
    email: str
    phone: str
    companies: str = ""

    @classmethod
    def from_record(cls, record: ExtractedRecord) -> "LedgerRow":
        return cls(
            name=record.name,
            email=record.email,
            phone=record.phone,
            companies=", ".join(record.companies),
        )

    def values(self) -> list[str]:
        """Cell values in ``LEDGER_COLUMNS`` order."""
        return [self.name, self.email, self.phone, self.companies]


class BatchOutcome(BaseModel):
    filename: str
    status: Literal["succeeded", "failed"]
    record: Optional[ExtractedRecord] = None
    error: Optional[str] = None
    stage: Optional[str] = None
    details: list[str] = Field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "succeeded"
