"""
Workout data store.

Fetches the workout spreadsheet, checks it against the schema contract, maps
it into records and exposes read operations over the result.

State machine::

    IDLE -> LOADING -> READY
                    -> ERROR

Every load is tagged with a generation number. A result that arrives after a
newer load has started is discarded instead of being applied, so the state
always reflects the latest (access_token, sheet_id) pair.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, List, Optional, Tuple

from calendar_nav.navigator import DateLike, to_calendar_date
from integration.sheets_client import describe_error, is_auth_expired
from mapping.record_mapper import map_rows, map_video_index, split_table
from validation.schema_validator import SchemaValidator
from workout_planner.errors import (
    AUTH_EXPIRED_MESSAGE,
    AuthExpired,
    NoData,
    RemoteUnavailable,
    SchemaInvalid,
    WorkoutPlannerError,
)
from workout_planner.models import (
    DATE_COLUMN,
    NOTES_COLUMN,
    ExerciseVideoIndex,
    WorkoutRecord,
)

logger = logging.getLogger(__name__)

WORKOUT_LOG_RANGE = os.getenv("WORKOUT_LOG_RANGE", "WorkoutLog!A:Z")
EXERCISES_RANGE = os.getenv("EXERCISES_RANGE", "Exercises!A:D")
VALIDATE_SCHEMA = os.getenv("VALIDATE_SCHEMA", "true").lower() in {"1", "true", "yes"}

TitleCallback = Callable[[str, str], None]


class StoreStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass
class FetchResult:
    client: object
    header: List[str]
    records: List[WorkoutRecord]
    video_index: ExerciseVideoIndex = field(default_factory=dict)
    title: Optional[str] = None


def log_tab_name(range_: str = WORKOUT_LOG_RANGE) -> str:
    return range_.split("!", 1)[0]


class WorkoutDataStore:
    def __init__(
        self,
        runtime,
        validator: Optional[SchemaValidator] = None,
        on_title: Optional[TitleCallback] = None,
        log_range: str = WORKOUT_LOG_RANGE,
        exercises_range: str = EXERCISES_RANGE,
        validate_schema: bool = VALIDATE_SCHEMA,
    ):
        self.runtime = runtime
        self.validator = validator or SchemaValidator()
        self.on_title = on_title
        self.log_range = log_range
        self.exercises_range = exercises_range
        self.validate_schema = validate_schema

        self.status = StoreStatus.IDLE
        self.error: Optional[WorkoutPlannerError] = None
        self.header: List[str] = []
        self.records: List[WorkoutRecord] = []
        self.video_index: ExerciseVideoIndex = {}
        self.title: Optional[str] = None
        self.client = None

        self._inputs: Tuple[Optional[str], Optional[str]] = (None, None)
        self._generation = 0

    @property
    def access_token(self) -> Optional[str]:
        return self._inputs[0]

    @property
    def sheet_id(self) -> Optional[str]:
        return self._inputs[1]

    @property
    def log_tab(self) -> str:
        return log_tab_name(self.log_range)

    @property
    def generation(self) -> int:
        return self._generation

    def _reset_data(self) -> None:
        self.error = None
        self.header = []
        self.records = []
        self.video_index = {}
        self.title = None
        self.client = None

    def reset(self) -> None:
        """Drop all data and go back to IDLE. Outstanding loads become stale."""
        self._generation += 1
        self._inputs = (None, None)
        self._reset_data()
        self.status = StoreStatus.IDLE

    async def update_inputs(self, access_token: Optional[str], sheet_id: Optional[str]) -> StoreStatus:
        """Reload only when the (token, sheet) pair actually changed."""
        if not access_token or not sheet_id:
            if self.status != StoreStatus.IDLE:
                logger.info("Access token or sheet id missing, store going idle")
            self.reset()
            return self.status

        if (access_token, sheet_id) == self._inputs and self.status != StoreStatus.IDLE:
            return self.status
        return await self.load(access_token, sheet_id)

    async def reload(self) -> StoreStatus:
        token, sheet_id = self._inputs
        if not token or not sheet_id:
            return self.status
        return await self.load(token, sheet_id)

    async def load(self, access_token: str, sheet_id: str) -> StoreStatus:
        self._generation += 1
        generation = self._generation
        self._inputs = (access_token, sheet_id)
        self._reset_data()
        self.status = StoreStatus.LOADING
        logger.info(f"Loading workout data from {sheet_id} (generation {generation})")

        try:
            result = await self._fetch(access_token, sheet_id)
        except Exception as e:
            if not self._is_current(generation):
                logger.warning(f"Discarding stale failure for {sheet_id} (generation {generation})")
                return self.status
            self.error = self._normalize(e, "workout data")
            self.status = StoreStatus.ERROR
            logger.error(f"Failed to load workout data from {sheet_id}: {self.error.message}")
            return self.status

        if not self._is_current(generation):
            logger.warning(f"Discarding stale result for {sheet_id} (generation {generation})")
            return self.status

        self.client = result.client
        self.header = result.header
        self.records = result.records
        self.video_index = result.video_index
        self.title = result.title
        self.status = StoreStatus.READY
        logger.info(f"Loaded {len(self.records)} workout records from {sheet_id}")
        return self.status

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _normalize(self, e: Exception, what: str) -> WorkoutPlannerError:
        if isinstance(e, WorkoutPlannerError):
            return e
        if is_auth_expired(e):
            return AuthExpired()
        return RemoteUnavailable(f"Error fetching {what}: {describe_error(e)}")

    async def _fetch(self, access_token: str, sheet_id: str) -> FetchResult:
        # 1-3. runtime ready, token bound, API surface loaded
        await self.runtime.wait_ready()
        client = self.runtime.bind(access_token)
        await client.load()

        if self.validate_schema:
            validation = await self.validator.validate(client, sheet_id)
            if not validation.valid:
                if validation.errors == [AUTH_EXPIRED_MESSAGE]:
                    raise AuthExpired()
                raise SchemaInvalid(validation.errors)

        # 4. title is informational only
        title = None
        try:
            title = await client.get_title(sheet_id)
        except Exception as e:
            logger.warning(f"Could not fetch title for {sheet_id}: {describe_error(e)}")
        if title and self.on_title is not None:
            try:
                self.on_title(sheet_id, title)
            except Exception as e:
                logger.warning(f"Title callback failed for {sheet_id}: {e}")

        # 5. exercise videos
        try:
            lookup = await client.get_values(sheet_id, self.exercises_range)
        except Exception as e:
            raise self._normalize(e, "exercise videos") from e
        lookup_header, lookup_rows = split_table(lookup)
        video_index = map_video_index(lookup_header, lookup_rows)

        # 6. workout log
        try:
            values = await client.get_values(sheet_id, self.log_range)
        except Exception as e:
            raise self._normalize(e, "workout data") from e
        header, rows = split_table(values)
        if not rows:
            raise NoData()

        return FetchResult(
            client=client,
            header=header,
            records=map_rows(header, rows),
            video_index=video_index,
            title=title,
        )

    # Read operations

    def _record_day(self, record: WorkoutRecord) -> Optional[date]:
        return to_calendar_date(record.get(DATE_COLUMN))

    def has_workout(self, day: DateLike) -> bool:
        target = to_calendar_date(day)
        if target is None:
            return False
        return any(self._record_day(r) == target for r in self.records)

    def entries_on(self, day: DateLike) -> List[Tuple[int, WorkoutRecord]]:
        """(record index, record) pairs for one day, in sheet order."""
        target = to_calendar_date(day)
        if target is None:
            return []
        return [
            (i, r) for i, r in enumerate(self.records) if self._record_day(r) == target
        ]

    def records_on(self, day: DateLike) -> List[WorkoutRecord]:
        return [r for _, r in self.entries_on(day)]

    def workout_days(self) -> List[date]:
        days = {self._record_day(r) for r in self.records}
        return sorted(d for d in days if d is not None)

    def video_for(self, exercise: str) -> Optional[str]:
        return self.video_index.get(exercise)

    # Mutation

    def apply_note_locally(self, record_index: int, text: str) -> None:
        """Echo a confirmed remote Notes write into the local record set."""
        if not 0 <= record_index < len(self.records):
            raise IndexError(f"No workout record at index {record_index}")

        if NOTES_COLUMN not in self.header:
            # The write created the column remotely; keep key sets uniform
            self.header.append(NOTES_COLUMN)
            for record in self.records:
                record.setdefault(NOTES_COLUMN, "")

        self.records[record_index][NOTES_COLUMN] = text
