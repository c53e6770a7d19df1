from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from workout_planner.models import SheetHistoryEntry

logger = logging.getLogger(__name__)

SHEET_HISTORY_PATH = os.getenv("SHEET_HISTORY_PATH", "data/sheets_history.json")

_SHEET_URL_ID = re.compile(r"/d/([a-zA-Z0-9-_]+)")


def extract_sheet_id(value: str) -> str:
    """
    Accept either a Google Sheets URL or a bare spreadsheet id.

    Returns "" for a sheets URL without an id.
    """
    text = (value or "").strip()
    if "docs.google.com/spreadsheets" in text:
        match = _SHEET_URL_ID.search(text)
        return match.group(1) if match else ""
    return text


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SheetHistoryStore:
    """Recently opened spreadsheets, persisted as JSON."""

    def __init__(self, path: str = SHEET_HISTORY_PATH):
        self.path = Path(path)

    def load(self) -> Dict[str, SheetHistoryEntry]:
        """
        Load the history from disk. Returns an empty history if the file is
        missing or invalid.
        """
        try:
            if not self.path.exists():
                return {}
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return {sheet_id: SheetHistoryEntry(**entry) for sheet_id, entry in data.items()}
        except Exception as e:
            logger.warning(f"Ignoring unreadable sheet history {self.path}: {e}")
            return {}

    def save(self, history: Dict[str, SheetHistoryEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {sheet_id: entry.model_dump(mode="json") for sheet_id, entry in history.items()}
        self.path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    def touch(self, sheet_id: str) -> SheetHistoryEntry:
        """Record that ``sheet_id`` was opened now."""
        history = self.load()
        now = _now()
        entry = history.get(sheet_id)
        if entry is None:
            entry = SheetHistoryEntry(first_added=now, last_opened=now)
        else:
            entry.last_opened = now
        history[sheet_id] = entry
        self.save(history)
        return entry

    def set_title(self, sheet_id: str, title: str) -> None:
        history = self.load()
        entry = history.get(sheet_id)
        if entry is None:
            now = _now()
            entry = SheetHistoryEntry(first_added=now, last_opened=now)
        entry.title = title
        history[sheet_id] = entry
        self.save(history)

    def get(self, sheet_id: str) -> Optional[SheetHistoryEntry]:
        return self.load().get(sheet_id)

    def recent(self) -> List[Tuple[str, SheetHistoryEntry]]:
        """Most recently opened first."""
        return sorted(
            self.load().items(), key=lambda item: item[1].last_opened, reverse=True
        )

    def remove(self, sheet_id: str) -> bool:
        history = self.load()
        if history.pop(sheet_id, None) is None:
            return False
        self.save(history)
        return True
