from typing import Optional

from calendar_nav.navigator import CalendarNavigator
from editing.note_editor import NoteEditor
from integration.sheets_client import SheetsRuntime
from storage.google_auth import AuthSession
from storage.sheet_history import SheetHistoryStore
from workouts.store import WorkoutDataStore

# Global instances initialized at startup (single-user session)
runtime: Optional[SheetsRuntime] = None
auth_session: Optional[AuthSession] = None
history_store: Optional[SheetHistoryStore] = None
store: Optional[WorkoutDataStore] = None
note_editor: Optional[NoteEditor] = None
navigator: Optional[CalendarNavigator] = None

# Spreadsheet the user picked; survives logouts so a new login reloads it
current_sheet_id: Optional[str] = None


def configure(
    runtime_: SheetsRuntime,
    auth_session_: AuthSession,
    history_store_: SheetHistoryStore,
    **store_kwargs,
) -> None:
    """Create the session objects around an explicitly created runtime."""
    global runtime, auth_session, history_store, store, note_editor, navigator
    global current_sheet_id

    runtime = runtime_
    auth_session = auth_session_
    history_store = history_store_
    store = WorkoutDataStore(runtime_, on_title=history_store_.set_title, **store_kwargs)
    note_editor = NoteEditor(store)
    navigator = CalendarNavigator()
    current_sheet_id = None
