import logging
import os

from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api import state
from api.metrics import RECORDS_LOADED

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint for container orchestration."""
    health = {
        "status": "healthy",
        "profile": os.getenv("DEPLOYMENT_PROFILE", "unknown"),
        "sheets_runtime": "ready" if state.runtime and state.runtime.is_ready else "loading",
    }

    store = state.store
    if store is None:
        health["status"] = "degraded"
        health["store"] = "not initialized"
        return health

    health["store"] = store.status.value
    health["record_count"] = len(store.records)
    if state.runtime is not None and state.runtime.load_failed:
        health["status"] = "degraded"
    return health


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    try:
        RECORDS_LOADED.set(len(state.store.records) if state.store else 0)
    except Exception:
        pass

    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
