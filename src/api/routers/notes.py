import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.dependencies import get_note_editor, get_store
from api.metrics import NOTE_SAVES_TOTAL, REQUEST_LATENCY_SECONDS, REQUESTS_TOTAL
from api.responses import error_payload, raise_for_error
from editing.note_editor import NoteEditor, note_key_for
from workout_planner.errors import WriteFailed
from workout_planner.models import DATE_COLUMN, NOTES_COLUMN, NoteKey
from workouts.store import WorkoutDataStore

router = APIRouter()
logger = logging.getLogger(__name__)


class DraftIn(BaseModel):
    record_index: int
    text: Optional[str] = None


def _key_for_index(store: WorkoutDataStore, record_index: int) -> NoteKey:
    if not 0 <= record_index < len(store.records):
        raise HTTPException(status_code=404, detail=f"No workout record at index {record_index}")

    record = store.records[record_index]
    for position, (index, _) in enumerate(store.entries_on(record.get(DATE_COLUMN, ""))):
        if index == record_index:
            return note_key_for(record, position)
    # Records with an unparseable date are never listed by day
    return note_key_for(record, 0)


def _draft_payload(editor: NoteEditor, key: NoteKey, record_index: int) -> dict:
    error = editor.errors.get(key)
    return {
        "record_index": record_index,
        "key": key._asdict(),
        "draft": editor.draft(key),
        "saving": editor.is_saving(key),
        "error": error_payload(error) if error else None,
    }


@router.post("/notes/edit")
async def begin_edit(
    payload: DraftIn,
    store: WorkoutDataStore = Depends(get_store),
    editor: NoteEditor = Depends(get_note_editor),
) -> dict:
    key = _key_for_index(store, payload.record_index)
    current = payload.text
    if current is None:
        current = store.records[payload.record_index].get(NOTES_COLUMN, "")
    editor.begin_edit(key, current)
    return _draft_payload(editor, key, payload.record_index)


@router.put("/notes/draft")
async def update_draft(
    payload: DraftIn,
    store: WorkoutDataStore = Depends(get_store),
    editor: NoteEditor = Depends(get_note_editor),
) -> dict:
    key = _key_for_index(store, payload.record_index)
    editor.update_draft(key, payload.text or "")
    return _draft_payload(editor, key, payload.record_index)


@router.delete("/notes/draft/{record_index}")
async def cancel_edit(
    record_index: int,
    store: WorkoutDataStore = Depends(get_store),
    editor: NoteEditor = Depends(get_note_editor),
) -> dict:
    key = _key_for_index(store, record_index)
    editor.cancel(key)
    return _draft_payload(editor, key, record_index)


@router.post("/notes/save")
async def save_note(
    payload: DraftIn,
    store: WorkoutDataStore = Depends(get_store),
    editor: NoteEditor = Depends(get_note_editor),
) -> dict:
    start = time.time()
    key = _key_for_index(store, payload.record_index)
    text = payload.text if payload.text is not None else editor.draft(key)
    if text is None:
        raise HTTPException(status_code=400, detail="Nothing to save")

    if editor.is_saving(key):
        raise HTTPException(status_code=409, detail="Save already in progress")

    saved = await editor.save(key, payload.record_index, text)

    # Prometheus counters (best-effort)
    try:
        NOTE_SAVES_TOTAL.labels(outcome="saved" if saved else "failed").inc()
        REQUESTS_TOTAL.labels(
            endpoint="/notes/save", status="saved" if saved else "failed"
        ).inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint="/notes/save").observe(time.time() - start)
    except Exception:
        pass

    if not saved:
        raise_for_error(editor.errors.get(key) or WriteFailed())

    return {
        "status": "saved",
        "record_index": payload.record_index,
        "record": store.records[payload.record_index],
    }
