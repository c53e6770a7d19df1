from fastapi import HTTPException

from api import state
from calendar_nav.navigator import CalendarNavigator
from editing.note_editor import NoteEditor
from integration.sheets_client import SheetsRuntime
from storage.google_auth import AuthSession
from storage.sheet_history import SheetHistoryStore
from workouts.store import WorkoutDataStore


def _require(value, name: str):
    if value is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return value


def get_runtime() -> SheetsRuntime:
    return _require(state.runtime, "Sheets runtime")


def get_auth_session() -> AuthSession:
    return _require(state.auth_session, "Auth session")


def get_history_store() -> SheetHistoryStore:
    return _require(state.history_store, "Sheet history")


def get_store() -> WorkoutDataStore:
    return _require(state.store, "Workout store")


def get_note_editor() -> NoteEditor:
    return _require(state.note_editor, "Note editor")


def get_navigator() -> CalendarNavigator:
    return _require(state.navigator, "Calendar")
