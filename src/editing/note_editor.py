from __future__ import annotations

import logging
from typing import Dict, Optional, Set

from integration.sheets_client import describe_error, is_auth_expired
from workout_planner.errors import AuthExpired, WorkoutPlannerError, WriteFailed
from workout_planner.models import (
    DATE_COLUMN,
    EXERCISE_COLUMN,
    NOTES_COLUMN,
    SECTION_COLUMN,
    NoteKey,
    WorkoutRecord,
)
from workouts.store import StoreStatus, WorkoutDataStore

logger = logging.getLogger(__name__)

# Sheet row 1 holds the headers; record 0 lives on row 2.
HEADER_ROW = 1


def note_key_for(record: WorkoutRecord, position: int) -> NoteKey:
    return NoteKey(
        date=record.get(DATE_COLUMN, ""),
        section=record.get(SECTION_COLUMN, ""),
        exercise=record.get(EXERCISE_COLUMN, ""),
        position=position,
    )


def sheet_row_for(record_index: int) -> int:
    return HEADER_ROW + 1 + record_index


class NoteEditor:
    """
    Draft and save the Notes field of workout records.

    Drafts live only while a note is being edited. A save writes to the
    spreadsheet first and only then updates the store, and a failed save keeps
    the draft so nothing the user typed is lost.
    """

    def __init__(self, store: WorkoutDataStore):
        self.store = store
        self._drafts: Dict[NoteKey, str] = {}
        self._saving: Set[NoteKey] = set()
        self.errors: Dict[NoteKey, WorkoutPlannerError] = {}
        # Spreadsheet the drafts were typed against
        self.sheet_id: Optional[str] = None

    @property
    def drafts(self) -> Dict[NoteKey, str]:
        return dict(self._drafts)

    def draft(self, key: NoteKey) -> Optional[str]:
        return self._drafts.get(key)

    def is_editing(self, key: NoteKey) -> bool:
        return key in self._drafts

    def is_saving(self, key: NoteKey) -> bool:
        return key in self._saving

    def begin_edit(self, key: NoteKey, current_text: str = "") -> None:
        self._drafts[key] = current_text
        self.errors.pop(key, None)

    def update_draft(self, key: NoteKey, text: str) -> None:
        self._drafts[key] = text

    def cancel(self, key: NoteKey) -> None:
        self._drafts.pop(key, None)
        self.errors.pop(key, None)

    def clear(self) -> None:
        """Forget every draft, e.g. after the underlying record set was replaced."""
        self._drafts.clear()
        self.errors.clear()

    def bind_sheet(self, sheet_id: str) -> None:
        """Attach drafts to a spreadsheet, dropping those typed against another one."""
        if self.sheet_id is not None and self.sheet_id != sheet_id:
            logger.info(f"Spreadsheet changed from {self.sheet_id} to {sheet_id}, dropping drafts")
            self.clear()
        self.sheet_id = sheet_id

    async def save(self, key: NoteKey, record_index: int, text: str) -> bool:
        if key in self._saving:
            logger.info(f"Save already in progress for {key}, ignoring")
            return False

        self._saving.add(key)
        self._drafts[key] = text
        generation = self.store.generation
        try:
            await self._write_note(record_index, text)
            if self.store.generation != generation:
                # records were replaced while the write was in flight
                logger.warning(f"Store reloaded during save for {key}, skipping local update")
            else:
                self.store.apply_note_locally(record_index, text)
        except Exception as e:
            error = self._normalize(e)
            self.errors[key] = error
            logger.error(f"Failed to save note for {key}: {error.message}")
            return False
        finally:
            self._saving.discard(key)

        self._drafts.pop(key, None)
        self.errors.pop(key, None)
        logger.info(f"Saved note for {key}")
        return True

    async def _write_note(self, record_index: int, text: str) -> None:
        store = self.store
        if store.status != StoreStatus.READY or store.client is None:
            raise WriteFailed("Workout data is not loaded")
        if not 0 <= record_index < len(store.records):
            raise WriteFailed(f"No workout record at index {record_index}")

        client = store.client
        sheet_id = store.sheet_id
        tab = store.log_tab

        header = await client.get_header_row(sheet_id, tab)
        if NOTES_COLUMN in header:
            column = header.index(NOTES_COLUMN)
        else:
            # NOTE: two saves racing here can both append a Notes column
            column = await client.append_header_cell(sheet_id, tab, header, NOTES_COLUMN)
            logger.info(f"Added {NOTES_COLUMN} column to {tab} at index {column}")

        await client.update_cell(sheet_id, tab, column, sheet_row_for(record_index), text)

    def _normalize(self, e: Exception) -> WorkoutPlannerError:
        if isinstance(e, (WriteFailed, AuthExpired)):
            return e
        if is_auth_expired(e):
            return AuthExpired()
        return WriteFailed(f"Failed to save note: {describe_error(e)}")
