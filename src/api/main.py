import asyncio
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import state
from api.routers import auth, calendar, notes, ops, sheets, workouts
from api.session import sync_store
from integration.sheets_client import SheetsRuntime
from storage.google_auth import AuthSession
from storage.sheet_history import SheetHistoryStore

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

app = FastAPI(title="Workout Planner")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(sheets.router)
app.include_router(workouts.router)
app.include_router(calendar.router)
app.include_router(notes.router)
app.include_router(ops.router)

# Keeps background tasks referenced until they finish
_background_tasks: set = set()


def _spawn(coro) -> None:
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


@app.on_event("startup")
async def startup() -> None:
    if state.runtime is None:
        runtime = SheetsRuntime()
        state.configure(runtime, AuthSession(), SheetHistoryStore())
        _spawn(runtime.start())
        logger.info("Google Sheets client runtime loading")

        recent = state.history_store.recent()
        if recent:
            state.current_sheet_id = recent[0][0]
            logger.info(f"Reopening last spreadsheet {state.current_sheet_id}")

    # A cached login plus a remembered sheet can load straight away
    if state.current_sheet_id and state.auth_session and state.auth_session.is_authenticated:
        _spawn(sync_store())
