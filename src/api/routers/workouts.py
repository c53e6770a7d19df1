import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_note_editor, get_store
from api.responses import error_payload, raise_for_error, store_payload
from api.session import sync_store
from editing.note_editor import NoteEditor, note_key_for
from workout_planner.errors import AuthExpired
from workout_planner.models import EXERCISE_COLUMN, NOTES_COLUMN
from workouts.store import StoreStatus, WorkoutDataStore

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_ready(store: WorkoutDataStore) -> None:
    if store.status == StoreStatus.ERROR and store.error is not None:
        raise_for_error(store.error)
    if store.status != StoreStatus.READY:
        raise HTTPException(
            status_code=409,
            detail={"message": "Workout data not loaded", "status": store.status.value},
        )


@router.get("/workouts/status")
async def workouts_status(store: WorkoutDataStore = Depends(get_store)) -> dict:
    return store_payload(store)


@router.post("/workouts/reload")
async def reload_workouts(store: WorkoutDataStore = Depends(get_store)) -> dict:
    await sync_store(force=True)
    return store_payload(store)


@router.get("/workouts")
async def workouts_on(
    day: Optional[date] = None,
    store: WorkoutDataStore = Depends(get_store),
    editor: NoteEditor = Depends(get_note_editor),
) -> dict:
    """Records for one day (defaults to today) with their editing state."""
    _require_ready(store)
    day = day or date.today()

    entries = []
    for position, (index, record) in enumerate(store.entries_on(day)):
        key = note_key_for(record, position)
        error = editor.errors.get(key)
        entries.append(
            {
                "index": index,
                "record": record,
                "notes": record.get(NOTES_COLUMN, ""),
                "video": store.video_for(record.get(EXERCISE_COLUMN, "")),
                "draft": editor.draft(key),
                "saving": editor.is_saving(key),
                "error": error_payload(error) if error else None,
            }
        )

    return {
        "date": day.isoformat(),
        "has_workout": store.has_workout(day),
        "header": list(store.header),
        "entries": entries,
    }


@router.get("/workouts/dates")
async def workout_dates(store: WorkoutDataStore = Depends(get_store)) -> dict:
    _require_ready(store)
    return {"dates": [d.isoformat() for d in store.workout_days()]}


@router.get("/videos/{exercise}")
async def exercise_video(exercise: str, store: WorkoutDataStore = Depends(get_store)) -> dict:
    _require_ready(store)
    video = store.video_for(exercise)
    if video is None:
        raise HTTPException(status_code=404, detail=f"No video for {exercise}")
    return {"exercise": exercise, "video": video}


@router.post("/workouts/validate")
async def validate_sheet(store: WorkoutDataStore = Depends(get_store)) -> dict:
    """Re-run the schema check against the loaded spreadsheet."""
    if store.client is None or store.sheet_id is None:
        raise HTTPException(status_code=409, detail="No spreadsheet loaded")

    result = await store.validator.validate(store.client, store.sheet_id)
    if result.errors == [AuthExpired.default_message]:
        raise_for_error(AuthExpired())
    return result.model_dump()
