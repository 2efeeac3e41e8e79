"""Owned trucks with their maintenance history and diagnostic sessions."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from truck_assistant.api.deps import get_store
from truck_assistant.storage.base import RecordStore
from truck_assistant.storage.schemas import (
    DiagnosticSessionCreate,
    MaintenanceRecordCreate,
    Truck,
    TruckCreate,
    TruckUpdate,
)

router = APIRouter()


def _dump(record) -> dict:
    return record.model_dump(by_alias=True, mode="json")


def _truck_or_404(store: RecordStore, truck_id: str) -> Truck:
    truck = store.get_truck(truck_id)
    if truck is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Truck {truck_id} not found")
    return truck


@router.get("/trucks")
def list_fleet_trucks(
    user_id: Optional[str] = Query(None, alias="userId"),
    store: RecordStore = Depends(get_store),
):
    trucks = store.list_trucks(user_id)
    return {"success": True, "trucks": [_dump(t) for t in trucks], "count": len(trucks)}


@router.post("/trucks", status_code=status.HTTP_201_CREATED)
def create_fleet_truck(data: TruckCreate, store: RecordStore = Depends(get_store)):
    return {"success": True, "truck": _dump(store.create_truck(data))}


@router.get("/trucks/{truck_id}")
def get_fleet_truck(truck_id: str, store: RecordStore = Depends(get_store)):
    return {"success": True, "truck": _dump(_truck_or_404(store, truck_id))}


@router.patch("/trucks/{truck_id}")
def update_fleet_truck(truck_id: str, changes: TruckUpdate, store: RecordStore = Depends(get_store)):
    truck = store.update_truck(truck_id, changes)
    if truck is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Truck {truck_id} not found")
    return {"success": True, "truck": _dump(truck)}


@router.delete("/trucks/{truck_id}")
def delete_fleet_truck(truck_id: str, store: RecordStore = Depends(get_store)):
    """Removes the truck's maintenance records and sessions with it."""
    if not store.delete_truck(truck_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Truck {truck_id} not found")
    return {"success": True, "deleted": truck_id}


# -- maintenance ------------------------------------------------------------

@router.get("/trucks/{truck_id}/maintenance")
def list_maintenance(truck_id: str, store: RecordStore = Depends(get_store)):
    _truck_or_404(store, truck_id)
    records = store.list_maintenance_records(truck_id)
    return {"success": True, "records": [_dump(r) for r in records], "count": len(records)}


@router.post("/trucks/{truck_id}/maintenance", status_code=status.HTTP_201_CREATED)
def add_maintenance(
    truck_id: str,
    data: MaintenanceRecordCreate,
    store: RecordStore = Depends(get_store),
):
    record = store.create_maintenance_record(data.model_copy(update={"truck_id": truck_id}))
    return {"success": True, "record": _dump(record)}


# -- diagnostic sessions ----------------------------------------------------

@router.get("/trucks/{truck_id}/sessions")
def list_sessions(truck_id: str, store: RecordStore = Depends(get_store)):
    _truck_or_404(store, truck_id)
    sessions = store.list_diagnostic_sessions(truck_id)
    return {"success": True, "sessions": [_dump(s) for s in sessions], "count": len(sessions)}


@router.post("/trucks/{truck_id}/sessions", status_code=status.HTTP_201_CREATED)
def add_session(
    truck_id: str,
    data: DiagnosticSessionCreate,
    store: RecordStore = Depends(get_store),
):
    session = store.create_diagnostic_session(data.model_copy(update={"truck_id": truck_id}))
    return {"success": True, "session": _dump(session)}
