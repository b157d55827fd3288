"""
Per-document failure taxonomy.

Every error here is fatal for one document only; the pipeline converts it
into a failed ``BatchOutcome`` at the document boundary.
"""


class PipelineError(Exception):
    """Base class; ``stage`` names the pipeline step that failed."""

    stage = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RasterizationError(PipelineError):
    stage = "rasterize"


class TranscriptionDegradation(PipelineError):
    """A page could not be transcribed. Only raised in strict mode."""

    stage = "transcribe"

    def __init__(self, message: str, page_index: int):
        super().__init__(message)
        self.page_index = page_index


class ExtractionError(PipelineError):
    stage = "extract"


class ValidationError(PipelineError):
    """The extracted record broke one or more field rules."""

    stage = "validate"

    def __init__(self, details: list[str]):
        super().__init__("Extracted record failed validation")
        self.details = list(details)


class LedgerAppendError(PipelineError):
    stage = "ledger"
