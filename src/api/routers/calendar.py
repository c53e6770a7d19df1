from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_navigator, get_store
from calendar_nav.navigator import CalendarNavigator
from workouts.store import StoreStatus, WorkoutDataStore

router = APIRouter()


class SelectDateIn(BaseModel):
    day: date
    from_month_grid: bool = False


class OffsetIn(BaseModel):
    offset: int


def _calendar_view(navigator: CalendarNavigator, store: WorkoutDataStore) -> dict:
    today = date.today()
    ready = store.status == StoreStatus.READY
    selection = navigator.selection
    return {
        "selected_date": selection.selected_date.isoformat(),
        "view_mode": selection.view_mode.value,
        "anchor_month": selection.anchor_month.isoformat(),
        "days": [
            navigator.day_flags(day, ready and store.has_workout(day), today)
            for day in navigator.visible_dates()
        ],
    }


@router.get("/calendar")
async def get_calendar(
    navigator: CalendarNavigator = Depends(get_navigator),
    store: WorkoutDataStore = Depends(get_store),
) -> dict:
    return _calendar_view(navigator, store)


@router.post("/calendar/select")
async def select_date(
    payload: SelectDateIn,
    navigator: CalendarNavigator = Depends(get_navigator),
    store: WorkoutDataStore = Depends(get_store),
) -> dict:
    navigator.select_date(payload.day, from_month_grid=payload.from_month_grid)
    return _calendar_view(navigator, store)


@router.post("/calendar/month")
async def change_month(
    payload: OffsetIn,
    navigator: CalendarNavigator = Depends(get_navigator),
    store: WorkoutDataStore = Depends(get_store),
) -> dict:
    navigator.change_month(payload.offset)
    return _calendar_view(navigator, store)


@router.post("/calendar/week")
async def shift_week(
    payload: OffsetIn,
    navigator: CalendarNavigator = Depends(get_navigator),
    store: WorkoutDataStore = Depends(get_store),
) -> dict:
    navigator.shift_week(payload.offset)
    return _calendar_view(navigator, store)


@router.post("/calendar/toggle")
async def toggle_view(
    navigator: CalendarNavigator = Depends(get_navigator),
    store: WorkoutDataStore = Depends(get_store),
) -> dict:
    navigator.toggle_view()
    return _calendar_view(navigator, store)


@router.post("/calendar/today")
async def go_to_today(
    today: Optional[date] = None,
    navigator: CalendarNavigator = Depends(get_navigator),
    store: WorkoutDataStore = Depends(get_store),
) -> dict:
    navigator.go_to_today(today)
    return _calendar_view(navigator, store)
