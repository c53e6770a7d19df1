import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api import state
from api.dependencies import get_history_store, get_store
from api.responses import store_payload
from api.session import open_sheet
from storage.sheet_history import SheetHistoryStore, extract_sheet_id
from workouts.store import WorkoutDataStore

router = APIRouter()
logger = logging.getLogger(__name__)


class OpenSheetIn(BaseModel):
    source: str  # spreadsheet URL or id


@router.get("/sheets")
async def list_sheets(history: SheetHistoryStore = Depends(get_history_store)) -> dict:
    """Recently opened spreadsheets, most recent first."""
    return {
        "current": state.current_sheet_id,
        "sheets": [
            {"sheet_id": sheet_id, **entry.model_dump(mode="json")}
            for sheet_id, entry in history.recent()
        ],
    }


@router.post("/sheets/open")
async def open_spreadsheet(
    payload: OpenSheetIn, store: WorkoutDataStore = Depends(get_store)
) -> dict:
    sheet_id = extract_sheet_id(payload.source)
    if not sheet_id:
        raise HTTPException(status_code=400, detail="Not a spreadsheet URL or id")

    await open_sheet(sheet_id)
    return store_payload(store)


@router.delete("/sheets/{sheet_id}")
async def forget_sheet(
    sheet_id: str, history: SheetHistoryStore = Depends(get_history_store)
) -> dict:
    if not history.remove(sheet_id):
        raise HTTPException(status_code=404, detail="Unknown spreadsheet")
    return {"status": "removed", "sheet_id": sheet_id}
