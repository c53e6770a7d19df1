from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from workout_planner.models import CalendarSelection, ViewMode

DateLike = Union[date, datetime, str]

WEEK_DAYS = 7
MONTH_GRID_DAYS = 42


def to_calendar_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Reduce a date, datetime or ISO string to its calendar day.

    Returns None for empty or unparseable values so callers can treat them as
    "never matches".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def is_same_day(a: Optional[DateLike], b: Optional[DateLike]) -> bool:
    day_a, day_b = to_calendar_date(a), to_calendar_date(b)
    return day_a is not None and day_a == day_b


def _sunday_on_or_before(day: date) -> date:
    # date.weekday(): Monday == 0 ... Sunday == 6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_of(day: date) -> List[date]:
    start = _sunday_on_or_before(day)
    return [start + timedelta(days=i) for i in range(WEEK_DAYS)]


def month_grid(anchor: date) -> List[date]:
    """Six full weeks starting at the Sunday on or before the 1st of the month."""
    start = _sunday_on_or_before(anchor.replace(day=1))
    return [start + timedelta(days=i) for i in range(MONTH_GRID_DAYS)]


def add_months(day: date, offset: int) -> date:
    """First day of the month ``offset`` months away from ``day``'s month."""
    month_index = day.year * 12 + (day.month - 1) + offset
    year, month = divmod(month_index, 12)
    return date(year, month + 1, 1)


class CalendarNavigator:
    """Week/month calendar view state over a ``CalendarSelection``."""

    def __init__(self, selection: Optional[CalendarSelection] = None, today: Optional[date] = None):
        self.selection = selection or CalendarSelection.starting_at(today or date.today())

    @property
    def selected_date(self) -> date:
        return self.selection.selected_date

    @property
    def view_mode(self) -> ViewMode:
        return self.selection.view_mode

    @property
    def anchor_month(self) -> date:
        return self.selection.anchor_month

    def select_date(self, day: date, from_month_grid: bool = False) -> None:
        self.selection.selected_date = day
        if from_month_grid:
            self.selection.view_mode = ViewMode.WEEK
            self.selection.anchor_month = day.replace(day=1)

    def change_month(self, offset: int) -> None:
        self.selection.anchor_month = add_months(self.selection.anchor_month, offset)

    def shift_week(self, offset: int) -> None:
        self.select_date(self.selected_date + timedelta(weeks=offset))

    def go_to_today(self, today: Optional[date] = None) -> None:
        today = today or date.today()
        self.selection.selected_date = today
        self.selection.anchor_month = today.replace(day=1)

    def toggle_view(self) -> ViewMode:
        if self.selection.view_mode == ViewMode.WEEK:
            self.selection.view_mode = ViewMode.MONTH
            self.selection.anchor_month = self.selected_date.replace(day=1)
        else:
            self.selection.view_mode = ViewMode.WEEK
        return self.selection.view_mode

    def visible_dates(self) -> List[date]:
        if self.selection.view_mode == ViewMode.MONTH:
            return month_grid(self.selection.anchor_month)
        return week_of(self.selected_date)

    def day_flags(self, day: date, has_record: bool, today: Optional[date] = None) -> dict:
        today = today or date.today()
        anchor = self.selection.anchor_month
        return {
            "date": day.isoformat(),
            "has_record": has_record,
            "selected": is_same_day(day, self.selected_date),
            "today": is_same_day(day, today),
            "in_anchor_month": (day.year, day.month) == (anchor.year, anchor.month),
        }
