import logging
import time
from typing import Optional

from api import state
from api.metrics import FETCHES_TOTAL, RECORDS_LOADED, REQUEST_LATENCY_SECONDS
from workouts.store import StoreStatus

logger = logging.getLogger(__name__)


def _record_outcome(status: StoreStatus, started: float) -> None:
    # Prometheus counters (best-effort)
    try:
        store = state.store
        if status == StoreStatus.READY:
            FETCHES_TOTAL.labels(outcome="ready").inc()
        elif status == StoreStatus.ERROR and store is not None and store.error is not None:
            FETCHES_TOTAL.labels(outcome=type(store.error).__name__).inc()
        RECORDS_LOADED.set(len(store.records) if store is not None else 0)
        REQUEST_LATENCY_SECONDS.labels(endpoint="sheets_fetch").observe(
            time.time() - started
        )
    except Exception:
        pass


async def sync_store(force: bool = False) -> Optional[StoreStatus]:
    """
    Point the workout store at the current (access token, sheet id) pair.

    Only reloads when the pair changed unless ``force`` is set.
    """
    store = state.store
    if store is None:
        return None

    token = state.auth_session.access_token if state.auth_session else None
    sheet_id = state.current_sheet_id

    if sheet_id and state.note_editor is not None:
        state.note_editor.bind_sheet(sheet_id)

    started = time.time()
    if force and token and sheet_id:
        status = await store.load(token, sheet_id)
    else:
        status = await store.update_inputs(token, sheet_id)

    if status in (StoreStatus.READY, StoreStatus.ERROR):
        _record_outcome(status, started)
    return status


async def open_sheet(sheet_id: str) -> Optional[StoreStatus]:
    state.current_sheet_id = sheet_id
    if state.history_store is not None:
        state.history_store.touch(sheet_id)
    logger.info(f"Opening spreadsheet {sheet_id}")
    return await sync_store()
