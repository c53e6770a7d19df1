"""
Google Sheets integration for the workout planner.

A ``SheetsRuntime`` is created once per process at startup. It loads the
bundled Sheets v4 discovery document in the background and signals readiness
through an ``asyncio.Event``. Each fetch binds an access token to the runtime,
which yields a ``SheetsClient`` whose API surface is then built from the
discovery document.

The google-api-python-client is blocking, so every request runs in a worker
thread via ``asyncio.to_thread``.
"""

import asyncio
import json
import logging
import os
from typing import Any, Callable, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build_from_document
from googleapiclient.discovery_cache import get_static_doc
from googleapiclient.errors import HttpError

from workout_planner.errors import RemoteUnavailable

logger = logging.getLogger(__name__)

SHEETS_READY_TIMEOUT_S = float(os.getenv("SHEETS_READY_TIMEOUT_S", "10"))

AUTH_EXPIRED_SIGNATURES = ("Invalid Credentials", "invalid authentication")


def _load_static_discovery() -> Optional[str]:
    return get_static_doc("sheets", "v4")


def column_letter(index: int) -> str:
    """Convert a 0-based column index to A1 notation letters (0 -> A, 26 -> AA)."""
    if index < 0:
        raise ValueError("column index must not be negative")
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def _error_payload(exc: Exception) -> dict:
    if not isinstance(exc, HttpError):
        return {}
    content = exc.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        data = json.loads(content or "{}")
    except ValueError:
        return {}
    error = data.get("error") if isinstance(data, dict) else None
    return error if isinstance(error, dict) else {}


def describe_error(exc: Exception) -> str:
    """Human readable message for a failed Google API call."""
    payload = _error_payload(exc)
    if payload.get("message"):
        return str(payload["message"])
    if isinstance(exc, HttpError):
        return exc.reason or str(exc)
    return str(exc)


def is_auth_expired(exc: Exception) -> bool:
    """Whether a failure means the access token is no longer accepted."""
    if isinstance(exc, HttpError):
        if exc.resp is not None and exc.resp.status == 401:
            return True
        if _error_payload(exc).get("status") == "UNAUTHENTICATED":
            return True

    message = describe_error(exc)
    return any(sig in message for sig in AUTH_EXPIRED_SIGNATURES)


class SheetsClient:
    """Sheets API access bound to one access token."""

    def __init__(self, document: str, access_token: str):
        self._document = document
        self.credentials = Credentials(token=access_token)
        self._service = None

    @property
    def loaded(self) -> bool:
        return self._service is not None

    async def load(self) -> None:
        """Build the Sheets API surface from the discovery document."""
        try:
            service = await asyncio.to_thread(
                build_from_document, self._document, credentials=self.credentials
            )
        except Exception as e:
            logger.error(f"Failed to load the Sheets API: {e}")
            raise RemoteUnavailable(
                "The Google Sheets API is being blocked. "
                "Please check your network settings"
            ) from e

        if not hasattr(service, "spreadsheets"):
            raise RemoteUnavailable("The Google Sheets API is not available.")
        self._service = service

    def _spreadsheets(self):
        if self._service is None:
            raise RemoteUnavailable("The Google Sheets API has not been loaded")
        return self._service.spreadsheets()

    async def _execute(self, request) -> Any:
        return await asyncio.to_thread(request.execute)

    async def get_sheet_names(self, sheet_id: str) -> List[str]:
        response = await self._execute(
            self._spreadsheets().get(spreadsheetId=sheet_id, fields="sheets.properties")
        )
        return [
            sheet.get("properties", {}).get("title", "")
            for sheet in response.get("sheets", [])
        ]

    async def get_title(self, sheet_id: str) -> Optional[str]:
        response = await self._execute(
            self._spreadsheets().get(spreadsheetId=sheet_id, fields="properties.title")
        )
        return response.get("properties", {}).get("title")

    async def get_values(self, sheet_id: str, range_: str) -> List[List[str]]:
        response = await self._execute(
            self._spreadsheets().values().get(spreadsheetId=sheet_id, range=range_)
        )
        return response.get("values", [])

    async def get_header_row(self, sheet_id: str, tab: str) -> List[str]:
        values = await self.get_values(sheet_id, f"{tab}!1:1")
        return list(values[0]) if values else []

    async def update_cell(
        self, sheet_id: str, tab: str, column_index: int, row: int, value: str
    ) -> None:
        """Write one cell. ``row`` is the 1-based sheet row."""
        cell = f"{tab}!{column_letter(column_index)}{row}"
        await self._execute(
            self._spreadsheets()
            .values()
            .update(
                spreadsheetId=sheet_id,
                range=cell,
                valueInputOption="RAW",
                body={"values": [[value]]},
            )
        )
        logger.info(f"Updated cell {cell} in spreadsheet {sheet_id}")

    async def append_header_cell(
        self, sheet_id: str, tab: str, header: List[str], value: str
    ) -> int:
        """Add ``value`` in the first free header column and return its index."""
        column_index = len(header)
        await self.update_cell(sheet_id, tab, column_index, 1, value)
        return column_index


class SheetsRuntime:
    """
    Process-wide handle on the Google API client runtime.

    Created once at startup and never torn down; ``start()`` loads the
    discovery document and sets the ready event whether or not loading
    succeeded so that waiters never hang on a failed load.
    """

    def __init__(
        self,
        ready_timeout_s: float = SHEETS_READY_TIMEOUT_S,
        loader: Callable[[], Optional[str]] = _load_static_discovery,
    ):
        self.ready_timeout_s = ready_timeout_s
        self._loader = loader
        self._ready = asyncio.Event()
        self._document: Optional[str] = None
        self._load_error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set() and self._document is not None

    @property
    def load_failed(self) -> bool:
        return self._ready.is_set() and self._document is None

    async def start(self) -> None:
        try:
            document = await asyncio.to_thread(self._loader)
            if not document:
                raise RuntimeError("Sheets discovery document not found")
            self._document = document
            logger.info("Google Sheets client runtime loaded")
        except Exception as e:
            self._load_error = str(e)
            logger.error(f"Failed to load Google Sheets client runtime: {e}")
        finally:
            self._ready.set()

    async def wait_ready(self) -> None:
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=self.ready_timeout_s)
        except asyncio.TimeoutError:
            raise RemoteUnavailable(
                "Timed out waiting for the Google API client to load"
            ) from None

        if self._document is None:
            raise RemoteUnavailable(
                f"The Google API client failed to load: {self._load_error}"
            )

    def bind(self, access_token: str) -> SheetsClient:
        if self._document is None:
            raise RemoteUnavailable("The Google API client is not ready")
        return SheetsClient(self._document, access_token)
