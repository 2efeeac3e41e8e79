"""Stored service locations and repair guides."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from truck_assistant.api.deps import get_store
from truck_assistant.storage.base import DEFAULT_NEARBY_LIMIT, DEFAULT_NEARBY_RADIUS_KM, RecordStore
from truck_assistant.storage.schemas import ServiceLocationCreate

router = APIRouter()


def _dump(record) -> dict:
    return record.model_dump(by_alias=True, mode="json")


@router.get("/service-locations")
def list_service_locations(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: float = Query(DEFAULT_NEARBY_RADIUS_KM, alias="radiusKm", gt=0),
    limit: int = Query(DEFAULT_NEARBY_LIMIT, ge=1, le=100),
    store: RecordStore = Depends(get_store),
):
    """All locations, or those within ``radiusKm`` of ``lat``/``lng`` nearest first."""
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=400, detail="lat and lng must be given together")
    if lat is not None and lng is not None:
        locations = store.find_nearby_locations(lat, lng, radius_km, limit)
    else:
        locations = store.list_service_locations()
    return {"success": True, "locations": [_dump(loc) for loc in locations], "count": len(locations)}


@router.post("/service-locations", status_code=status.HTTP_201_CREATED)
def create_service_location(data: ServiceLocationCreate, store: RecordStore = Depends(get_store)):
    return {"success": True, "location": _dump(store.create_service_location(data))}


@router.get("/repair-guides")
def list_repair_guides(
    category: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store),
):
    guides = store.list_repair_guides(category)
    return {"success": True, "guides": [_dump(g) for g in guides], "count": len(guides)}


@router.get("/repair-guides/{guide_id}")
def get_repair_guide(guide_id: str, store: RecordStore = Depends(get_store)):
    guide = store.get_repair_guide(guide_id)
    if guide is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Repair guide {guide_id} not found")
    return {"success": True, "guide": _dump(guide)}
