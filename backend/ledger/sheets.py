"""
Google Sheets as an append-only table.

Rows are appended through the Sheets REST ``values:append`` call with a
service-account bearer token. No read interface is exposed.
"""

import asyncio
import logging
from typing import Protocol
from urllib.parse import quote

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from backend import config
from backend.errors import LedgerAppendError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class AppendOnlyTable(Protocol):
    async def append_row(self, values: list[str]) -> None: ...


class GoogleSheetsTable:
    """Appends rows to one spreadsheet range (first sheet by default)."""

    def __init__(
        self,
        spreadsheet_id: str,
        credentials=None,
        sheet_range: str = "A:D",
        base_url: str = "https://sheets.googleapis.com/v4",
        client: httpx.AsyncClient | None = None,
        service_account_email: str = "",
        private_key: str = "",
    ):
        self.spreadsheet_id = spreadsheet_id
        self.sheet_range = sheet_range
        self.base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._service_account_email = service_account_email
        self._private_key = private_key
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls) -> "GoogleSheetsTable":
        return cls(
            spreadsheet_id=config.GOOGLE_SPREADSHEET_ID,
            sheet_range=config.GOOGLE_SHEET_RANGE,
            base_url=config.SHEETS_API_URL,
            service_account_email=config.GOOGLE_SERVICE_ACCOUNT_EMAIL,
            private_key=config.GOOGLE_PRIVATE_KEY,
        )

    @property
    def configured(self) -> bool:
        has_creds = self._credentials is not None or (
            bool(self._service_account_email) and bool(self._private_key)
        )
        return bool(self.spreadsheet_id) and has_creds

    @property
    def append_url(self) -> str:
        rng = quote(self.sheet_range, safe="")
        return f"{self.base_url}/spreadsheets/{self.spreadsheet_id}/values/{rng}:append"

    async def append_row(self, values: list[str]) -> None:
        if not self.configured:
            raise LedgerAppendError("Google Sheets ledger is not configured")

        token = await self._access_token()
        client = self._get_client()
        try:
            resp = await client.post(
                self.append_url,
                params={
                    "valueInputOption": "USER_ENTERED",
                    "insertDataOption": "INSERT_ROWS",
                },
                json={"majorDimension": "ROWS", "values": [list(values)]},
                headers={"Authorization": f"Bearer {token}"},
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LedgerAppendError(
                f"Sheets append rejected with HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise LedgerAppendError(f"Sheets append failed: {e}") from e

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ── internals ────────────────────────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def _access_token(self) -> str:
        try:
            if self._credentials is None:
                self._credentials = service_account.Credentials.from_service_account_info(
                    {
                        "client_email": self._service_account_email,
                        "private_key": self._private_key,
                        "token_uri": TOKEN_URI,
                    },
                    scopes=SCOPES,
                )
            if not self._credentials.valid:
                # google-auth refreshes synchronously
                await asyncio.to_thread(self._credentials.refresh, Request())
        except (GoogleAuthError, ValueError) as e:
            raise LedgerAppendError(f"Google service-account auth failed: {e}") from e
        return self._credentials.token
