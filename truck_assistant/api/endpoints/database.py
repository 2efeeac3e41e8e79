"""Record store diagnostics.

GET  /api/database/test    -- connectivity check
POST /api/database/test    -- ``test-truck-operations`` or ``test-query``
GET  /api/database/status  -- backend and connectivity
POST /api/database/status  -- create the relational schema
"""

from datetime import datetime, timezone
from typing import Callable, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException

from truck_assistant.api.deps import get_settings, get_store
from truck_assistant.api.schemas import DatabaseActionRequest
from truck_assistant.config import Settings
from truck_assistant.storage.base import RecordStore, StoreError
from truck_assistant.storage.schemas import TruckCreate, TruckUpdate

logger = structlog.get_logger()

router = APIRouter()

# Read-only probes available to ``test-query``; arbitrary queries are not run.
_QUERIES: Dict[str, Callable[[RecordStore], list]] = {
    "trucks": lambda store: store.list_trucks(),
    "conversations": lambda store: store.list_conversations(),
    "service-locations": lambda store: store.list_service_locations(),
    "repair-guides": lambda store: store.list_repair_guides(),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _connection(store: RecordStore) -> dict:
    try:
        store.ping()
        return {"connected": True, "error": None, "timestamp": _now()}
    except StoreError as exc:
        logger.warning("store_ping_failed", backend=store.backend, error=str(exc))
        return {"connected": False, "error": str(exc), "timestamp": _now()}


@router.get("/test")
def test_connection(store: RecordStore = Depends(get_store)):
    return {"success": True, "backend": store.backend, "database": _connection(store), "timestamp": _now()}


def _truck_round_trip(store: RecordStore) -> list:
    """Create, read, update and delete a throwaway truck."""
    steps = []
    truck = store.create_truck(TruckCreate(make="Test Make", model="Test Model", year=2023))
    steps.append({"operation": "create", "ok": True, "truckId": truck.id})
    try:
        steps.append({"operation": "read", "ok": store.get_truck(truck.id) is not None})
        updated = store.update_truck(truck.id, TruckUpdate(mileage=1))
        steps.append({"operation": "update", "ok": updated is not None and updated.mileage == 1})
    finally:
        steps.append({"operation": "delete", "ok": store.delete_truck(truck.id)})
    return steps


@router.post("/test")
def run_database_action(request: DatabaseActionRequest, store: RecordStore = Depends(get_store)):
    if request.action == "test-truck-operations":
        steps = _truck_round_trip(store)
        return {
            "success": all(s["ok"] for s in steps),
            "message": "Database operations test completed",
            "backend": store.backend,
            "operations": steps,
            "timestamp": _now(),
        }

    query = request.data.get("query")
    if not query:
        raise HTTPException(status_code=400, detail="Query is required for test-query action")
    probe = _QUERIES.get(str(query))
    if probe is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown query '{query}'. Expected one of: {', '.join(_QUERIES)}",
        )
    rows = probe(store)
    return {
        "success": True,
        "result": {"query": query, "count": len(rows)},
        "timestamp": _now(),
    }


@router.get("/status")
def database_status(
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    return {
        "success": True,
        "backend": store.backend,
        "configured": {
            "postgres": bool(settings.db_host),
            "mongodb": bool(settings.mongodb_uri),
        },
        "database": _connection(store),
        "timestamp": _now(),
    }


@router.post("/status")
def initialize_database(store: RecordStore = Depends(get_store)):
    """Create tables for the relational backend; other backends need nothing."""
    created = store.initialize_schema()
    logger.info("database_schema_initialized", backend=store.backend, created=created)
    return {
        "success": True,
        "backend": store.backend,
        "schemaCreated": created,
        "message": "Schema initialized" if created else "No schema required for this backend",
        "timestamp": _now(),
    }
