from typing import NoReturn

from fastapi import HTTPException

from workout_planner.errors import (
    AuthExpired,
    NoData,
    RemoteUnavailable,
    SchemaInvalid,
    WorkoutPlannerError,
    WriteFailed,
)
from workouts.store import WorkoutDataStore

_STATUS_CODES = {
    AuthExpired: 401,
    SchemaInvalid: 422,
    NoData: 404,
    RemoteUnavailable: 503,
    WriteFailed: 502,
}


def error_payload(error: WorkoutPlannerError) -> dict:
    payload = {"type": type(error).__name__, "message": error.message}
    if isinstance(error, SchemaInvalid):
        payload["errors"] = error.errors
    return payload


def raise_for_error(error: WorkoutPlannerError) -> NoReturn:
    status_code = _STATUS_CODES.get(type(error), 500)
    raise HTTPException(status_code=status_code, detail=error_payload(error))


def store_payload(store: WorkoutDataStore) -> dict:
    return {
        "status": store.status.value,
        "sheet_id": store.sheet_id,
        "title": store.title,
        "record_count": len(store.records),
        "header": list(store.header),
        "error": error_payload(store.error) if store.error is not None else None,
    }
