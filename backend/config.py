"""
Central configuration — reads environment variables and provides defaults.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ── LLM (OpenAI-compatible) ───────────────────────────────────────────────────
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
VISION_MODEL: str = os.getenv("VISION_MODEL", "gpt-4o-mini")
EXTRACTION_MODEL: str = os.getenv("EXTRACTION_MODEL", VISION_MODEL)
LLM_TIMEOUT: float = float(os.getenv("LLM_TIMEOUT", "120"))
# 1 means a single attempt; higher values enable back-off retries.
LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "1"))

# ── Rasterization ─────────────────────────────────────────────────────────────
RASTER_FORMAT: str = os.getenv("RASTER_FORMAT", "jpeg").lower()
RASTER_WIDTH: int = int(os.getenv("RASTER_WIDTH", "2048"))
RASTER_DENSITY: int = int(os.getenv("RASTER_DENSITY", "100"))
JPEG_QUALITY: int = int(os.getenv("JPEG_QUALITY", "85"))

# ── Pipeline ──────────────────────────────────────────────────────────────────
TRANSCRIPTION_STRICT: bool = os.getenv("TRANSCRIPTION_STRICT", "false").lower() in ("1", "true", "yes")
BATCH_SIZE: int = int(os.getenv("BATCH_SIZE", "10"))

# ── Google Sheets ledger ──────────────────────────────────────────────────────
GOOGLE_SERVICE_ACCOUNT_EMAIL: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", "")
GOOGLE_PRIVATE_KEY: str = os.getenv("GOOGLE_PRIVATE_KEY", "").replace("\\n", "\n")
GOOGLE_SPREADSHEET_ID: str = os.getenv("GOOGLE_SPREADSHEET_ID", "")
GOOGLE_SHEET_RANGE: str = os.getenv("GOOGLE_SHEET_RANGE", "A:D")
SHEETS_API_URL: str = os.getenv("SHEETS_API_URL", "https://sheets.googleapis.com/v4")

# ── API ───────────────────────────────────────────────────────────────────────
MAX_UPLOAD_MB: int = int(os.getenv("MAX_UPLOAD_MB", "10"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
